"""Store configuration settings.

Constants shared by the handle manager, the storage layer and the CLI.
"""

from pathlib import Path
import os

# Store file
DB_FILENAME = "clinote.db"
DB_FILE_MODE = 0o600  # owner read/write only
DEFAULT_CONFIG_DIR = Path(os.environ.get("CLINOTE_CONFIG_DIR", Path.home() / ".config" / "clinote"))

# Engine sizing
MAP_SIZE = 64 * 1024 * 1024  # 64MB
MAX_BUCKETS = 8

# Seconds without activity before the store file is closed
IDLE_CLOSE_TIMEOUT = 5.0

# Logging
LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

__all__ = [
	'DB_FILENAME','DB_FILE_MODE','DEFAULT_CONFIG_DIR','MAP_SIZE','MAX_BUCKETS',
	'IDLE_CLOSE_TIMEOUT','LOG_LEVEL','LOG_FORMAT'
]
