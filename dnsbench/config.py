"""Constants and defaults for dnsbench."""

# Probe timeouts (seconds)
DEFAULT_DNS_TIMEOUT = 3.0
DEFAULT_HTTP_TIMEOUT = 15.0

# HTTP retry: one extra attempt after a transport failure
HTTP_RETRY_DELAY = 0.5
HTTP_ATTEMPTS = 2

# Default benchmark shape
DEFAULT_REPETITIONS = 5
DEFAULT_TOP_N = 3
DEFAULT_SCHEME = "https"
DNS_PORT = 53

# Latency colour thresholds (milliseconds)
DNS_THRESHOLDS = {"medium": 100.0, "slow": 500.0}
HTTP_THRESHOLDS = {"medium": 500.0, "slow": 2000.0}

# HTTP connection pool limits
HTTP_MAX_CONNECTIONS = 100
HTTP_KEEPALIVE_EXPIRY = 90.0

USER_AGENT = "dnsbench/2.0.0"
