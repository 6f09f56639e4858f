"""
Auth Server

Issues and validates bearer session tokens for a user directory backed by a
bcrypt-hashed credential store.

CHANGELOG:
[2026-10-19 v0.1.0] Initial release
  - Streaming request body assembly
  - Credential store with JSON snapshot persistence
  - JWT session tokens (body + cookie)
  - aiohttp and raw TCP HTTP bindings

ARCHITECTURE:
- Layer 1 : Transport (aiohttp, TCP)
- Layer 2 : Protocol (Body assembly, request shapes, pipeline)
- Layer 3 : Security (Credential store, token issuer, rate limiter)
- Layer 4 : Persistence (JSON snapshot)

SECURITY NOTES:
- Passwords hashed with bcrypt, never logged
- Signing secret is mandatory (no insecure default)
- Session cookie is HttpOnly, Secure, SameSite=None
- Tokens are stateless: no server-side revocation
"""

__version__ = "0.1.0"

from .core.config import ServerConfig, ConfigError
from .core.auth_server import AuthServer
from .transport.base_transport import BaseTransport

__all__ = [
    "AuthServer",
    "ServerConfig",
    "ConfigError",
    "BaseTransport",
]
