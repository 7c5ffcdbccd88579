"""Constants for the HTTP client.

Centralizes defaults shared by the engine, the transport factory and the
circuit registry.
"""

# HTTP Status Code Ranges
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300
HTTP_STATUS_TOO_MANY_REQUESTS = 429
HTTP_STATUS_SERVER_ERROR_MIN = 500
HTTP_STATUS_SERVER_ERROR_MAX = 600

# Transport defaults
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_CONNECTIONS = 2000
DEFAULT_MAX_KEEPALIVE_CONNECTIONS = 2000
DEFAULT_KEEPALIVE_EXPIRY_SECONDS = 90.0

# Dump truncation for request/response bodies (bytes)
DEFAULT_DUMP_BODY_LIMIT = 8192

# Circuit breaker defaults
DEFAULT_ERROR_THRESHOLD_PERCENTAGE = 70
DEFAULT_REQUEST_VOLUME_THRESHOLD = 10
DEFAULT_ROLLING_WINDOW_SECONDS = 10.0
DEFAULT_NUM_BUCKETS = 10
DEFAULT_SLEEP_WINDOW_SECONDS = 10.0
DEFAULT_REQUIRED_SUCCESSES = 1

# Upper bound on configurable retries
MAX_RETRY = 100
