"""Configuration settings and constants for notestore.

The constants live in `settings`; they are re-exported here so callers can
write `from notestore.config import IDLE_CLOSE_TIMEOUT`.
"""

from .settings import (
	DB_FILENAME, DB_FILE_MODE, DEFAULT_CONFIG_DIR, MAP_SIZE, MAX_BUCKETS,
	IDLE_CLOSE_TIMEOUT, LOG_LEVEL, LOG_FORMAT
)

__all__ = [
	'DB_FILENAME', 'DB_FILE_MODE', 'DEFAULT_CONFIG_DIR', 'MAP_SIZE', 'MAX_BUCKETS',
	'IDLE_CLOSE_TIMEOUT', 'LOG_LEVEL', 'LOG_FORMAT'
]
