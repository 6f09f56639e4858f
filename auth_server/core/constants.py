"""
Constants for the Auth Server

Module: core.constants
Date: 2026-10-19
Version: 0.1.0

CHANGELOG:
[2026-10-19 v0.1.0] Initial constants definition
  - Server identity and defaults
  - Routes and response messages
  - Session cookie attributes
  - Hashing, token and rate limit defaults

SECURITY NOTES:
- Session cookie is always HttpOnly, Secure, SameSite=None
- No default signing secret (must be configured)
- bcrypt cost defaults to 10
"""

from typing import Final

# ============================================================================
# Server Configuration
# ============================================================================

SERVER_NAME: Final[str] = "AuthServer"
SERVER_VERSION: Final[str] = "0.1.0"

DEFAULT_HOST: Final[str] = "0.0.0.0"
DEFAULT_PORT: Final[int] = 3000

TRANSPORT_AIOHTTP: Final[str] = "aiohttp"
TRANSPORT_TCP: Final[str] = "tcp"
SUPPORTED_TRANSPORTS = (TRANSPORT_AIOHTTP, TRANSPORT_TCP)

DEFAULT_SNAPSHOT_PATH: Final[str] = "./db.json"

# Default limits
MAX_BODY_SIZE: Final[int] = 1024 * 1024  # 1 MB
MAX_HEADER_SIZE: Final[int] = 16 * 1024  # 16 KB
READ_CHUNK_SIZE: Final[int] = 64 * 1024

# ============================================================================
# Routes
# ============================================================================

ROUTE_SIGNUP: Final[str] = "/api/signup"
ROUTE_LOGIN: Final[str] = "/api/login"
ROUTE_PROTECTED: Final[str] = "/protected"
ROUTE_UNPROTECTED: Final[str] = "/unprotected"

# ============================================================================
# Response Messages
# ============================================================================

MSG_INVALID_BODY: Final[str] = "Invalid request body."
MSG_BODY_TOO_LARGE: Final[str] = "Request body too large."
MSG_INVALID_SCHEMA: Final[str] = "Invalid schema."
MSG_USER_EXISTS: Final[str] = "User already exists."
MSG_INVALID_CREDENTIALS: Final[str] = "Invalid credentials."
MSG_UNAUTHORIZED: Final[str] = "Unauthorized."
MSG_INTERNAL_ERROR: Final[str] = "Internal server error."
MSG_NOT_FOUND: Final[str] = "Not found."
MSG_PROTECTED: Final[str] = "Hello from protected endpoint."
MSG_UNPROTECTED: Final[str] = "Hello from unprotected endpoint."
MSG_RATE_LIMITED: Final[str] = (
    "Too many authentication requests from this IP, please try again after 15 minutes."
)

# ============================================================================
# Session Token
# ============================================================================

TOKEN_COOKIE_NAME: Final[str] = "token"
TOKEN_BODY_FIELD: Final[str] = "token"
TOKEN_ALGORITHM: Final[str] = "HS256"
TOKEN_EXPIRE_MINUTES: Final[int] = 60
MIN_SECRET_LENGTH: Final[int] = 32
BEARER_SCHEME: Final[str] = "Bearer"

COOKIE_HTTP_ONLY: Final[bool] = True
COOKIE_SECURE: Final[bool] = True
COOKIE_SAME_SITE: Final[str] = "None"

# ============================================================================
# Password Hashing
# ============================================================================

BCRYPT_ROUNDS: Final[int] = 10
BCRYPT_MIN_ROUNDS: Final[int] = 4
BCRYPT_MAX_ROUNDS: Final[int] = 31

# ============================================================================
# Rate Limiting (auth endpoints)
# ============================================================================

RATE_LIMIT_WINDOW_SECONDS: Final[int] = 15 * 60
RATE_LIMIT_MAX_REQUESTS: Final[int] = 10000
