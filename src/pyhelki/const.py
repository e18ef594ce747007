"""Constants for pyhelki library."""

from __future__ import annotations


# API Configuration
API_HOST_TEMPLATE = "https://{api_name}.helki.com"
API_PREFIX = "api/v2"
TOKEN_PATH = "client/token"
DEFAULT_TIMEOUT = 10  # seconds, per attempt

# Token lifecycle
MIN_TOKEN_LIFETIME = 60  # seconds of validity required before a request
GRANT_TYPE_PASSWORD = "password"

# Retry Configuration
DEFAULT_RETRY_ATTEMPTS = 5
DEFAULT_BACKOFF_BASE_DELAY = 0.1  # seconds
DEFAULT_BACKOFF_MAX_DELAY = 30.0  # seconds
BACKOFF_JITTER_RATIO = 0.2
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})

# Node status values
STATUS_MODES = frozenset({"auto", "manual", "off"})
TEMPERATURE_UNITS = frozenset({"C", "F"})
