"""Session storage constants."""

ACCESS_TOKEN_KEY = "mtaa_access_token"
REFRESH_TOKEN_KEY = "mtaa_refresh_token"

TOKEN_FILENAME = "session.json"
LOCK_SUFFIX = ".lock"
