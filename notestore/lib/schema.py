"""Bucket and key names of the store file."""

# 0: Initial layout.
# 1: Added credential store, moved the OAuth token out of the settings.
SOFTWARE_DB_VERSION = 1

# Buckets
DB_BUCKET = b"db_data"
SETTINGS_BUCKET = b"settings"
CACHE_BUCKET = b"cache"

# Keys
DB_VERSION_KEY = b"dbVersion"               # DB_BUCKET
SETTINGS_KEY = b"user_settings"             # SETTINGS_BUCKET
CREDENTIALS_KEY = b"user_credentials"       # SETTINGS_BUCKET
NOTEBOOK_CACHE_KEY = b"notebook_cache"      # CACHE_BUCKET
SEARCH_CACHE_KEY = b"note_search_cache"     # CACHE_BUCKET
NOTE_RECOVER_CACHE_KEY = b"note_recover_cache"  # CACHE_BUCKET
