"""
Authentication module - Credential store and session tokens

Provides:
- CredentialStore: bcrypt-hashed user table with JSON snapshot
- TokenIssuer: JWT signing and verification (HS256)
"""

from .credential_store import (
    CredentialStore,
    UserRecord,
    Credential,
    Selector,
    CredentialStoreError,
    AlreadyExistsError,
    UserNotFoundError,
    InvalidCredentialsError,
    InvalidSelectorError,
    SnapshotError,
    SnapshotFormatError,
)
from .token_issuer import (
    TokenIssuer,
    IssuedToken,
    TokenClaims,
    TokenError,
    TokenInvalidError,
    TokenExpiredError,
    TokenClaimError,
    TokenSigningError,
)

__all__ = [
    "CredentialStore",
    "UserRecord",
    "Credential",
    "Selector",
    "CredentialStoreError",
    "AlreadyExistsError",
    "UserNotFoundError",
    "InvalidCredentialsError",
    "InvalidSelectorError",
    "SnapshotError",
    "SnapshotFormatError",
    "TokenIssuer",
    "IssuedToken",
    "TokenClaims",
    "TokenError",
    "TokenInvalidError",
    "TokenExpiredError",
    "TokenClaimError",
    "TokenSigningError",
]
