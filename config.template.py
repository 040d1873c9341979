# Subsonic Rating Importer Configuration Template
# Copy this file to config.py and update with your settings

# ========== SUBSONIC CONNECTION SETTINGS ==========
SUBSONIC_SERVER = "localhost"       # Subsonic server host name
SUBSONIC_PORT = 4040                # Subsonic server port
SUBSONIC_PROTOCOL = "https"         # "https" or "http"
SUBSONIC_USERNAME = "YOUR_USERNAME_HERE"

# File holding the password; it is only used to derive the auth token
SUBSONIC_PASSWORD_FILE = "~/.subsonic_password"

# API version announced to the server (2.0.0 and above use /rest2)
SUBSONIC_API_VERSION = "1.15.0"

# ========== IMPORT BEHAVIOUR ==========
# Songs whose 0-5 rating is at least this value are also starred
STAR_RATING = 4

# Catalog index cache (use --clear-cache to rebuild it)
CACHE_PATH = "~/.subsonic_cache"

# ========== API RATE LIMITING ==========
REQUEST_DELAY = 0.0             # Seconds between Subsonic API requests
MAX_RETRIES = 3                 # Maximum attempts for unavailable-server errors
RETRY_DELAY = 2.0               # Base delay for exponential backoff
REQUEST_TIMEOUT = 30            # Seconds before a request times out

# ========== LOGGING SETTINGS ==========
LOG_LEVEL = "INFO"              # DEBUG, INFO, WARNING, ERROR
