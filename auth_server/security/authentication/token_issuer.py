"""
Token Issuer - Signed session tokens (JWT)

Module: security.authentication.token_issuer
Date: 2026-10-19
Version: 0.1.0

CHANGELOG:
[2026-10-19 v0.1.0] Initial implementation
  - HS256 session token signing (sub = email)
  - Signature / expiry verification and claim extraction
  - Session cookie construction
  - Signer failures wrapped in TokenSigningError

ARCHITECTURE:
TokenIssuer provides:
  - Stateless bearer tokens: validity = signature + expiry
  - Async issue(): signing runs in the default executor
  - verify(): synchronous decode + claim checks
  - session_cookie(): HttpOnly / Secure / SameSite=None cookie

SECURITY NOTES:
- Secret key must be 32+ characters
- No revocation: a token stays valid until exp
- All times in UTC
- Verification errors carry no secret material
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from ...core.constants import (
    COOKIE_HTTP_ONLY,
    COOKIE_SAME_SITE,
    COOKIE_SECURE,
    MIN_SECRET_LENGTH,
    TOKEN_ALGORITHM,
    TOKEN_COOKIE_NAME,
    TOKEN_EXPIRE_MINUTES,
)
from ...transport.base_transport import ResponseCookie


class TokenError(Exception):
    """Base token error"""
    pass


class TokenInvalidError(TokenError):
    """Token is invalid (malformed, bad signature)"""
    pass


class TokenExpiredError(TokenError):
    """Token has expired"""
    pass


class TokenClaimError(TokenError):
    """Token claim validation failed"""
    pass


class TokenSigningError(Exception):
    """Signing backend failed"""
    pass


@dataclass
class IssuedToken:
    """Freshly signed token"""
    token: str
    issued_at: datetime
    expires_at: datetime


@dataclass
class TokenClaims:
    """Verified token claims"""
    sub: str              # Subject (email)
    iat: datetime         # Issued at
    exp: datetime         # Expiration


class TokenIssuer:
    """
    Issues and verifies signed session tokens.

    Tokens are JWTs signed with a shared secret; the subject claim is the
    user's email.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = TOKEN_ALGORITHM,
        expire_minutes: int = TOKEN_EXPIRE_MINUTES,
    ):
        """
        Initialize token issuer

        Args:
            secret_key: Shared signing secret (32+ characters)
            algorithm: JWT algorithm (default HS256)
            expire_minutes: Token lifetime in minutes

        Raises:
            ValueError: If secret_key too short
        """
        if not secret_key or len(secret_key) < MIN_SECRET_LENGTH:
            raise ValueError(f"Secret key must be at least {MIN_SECRET_LENGTH} characters")

        self.logger = logging.getLogger("security.token_issuer")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire = timedelta(minutes=expire_minutes)

        self.logger.info(
            f"Token issuer initialized (algo={algorithm}, expires={expire_minutes}min)"
        )

    async def issue(self, email: str) -> IssuedToken:
        """
        Sign a session token for a verified identity

        Args:
            email: Subject claim

        Returns:
            IssuedToken

        Raises:
            TokenSigningError: If the signer fails
        """
        now = datetime.now(timezone.utc)
        expires_at = now + self.expire
        claims = {
            "sub": email,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }

        loop = asyncio.get_running_loop()
        try:
            token = await loop.run_in_executor(None, self._sign, claims)
        except Exception as e:
            self.logger.error(f"Token signing failed: {e}")
            raise TokenSigningError("Token signing failed") from e

        self.logger.info(f"Token issued for {email}")
        return IssuedToken(token=token, issued_at=now, expires_at=expires_at)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify signature and expiry, extract claims

        Args:
            token: JWT string

        Returns:
            TokenClaims

        Raises:
            TokenInvalidError: If token invalid or bad signature
            TokenExpiredError: If token expired
            TokenClaimError: If required claims missing
        """
        if not token or not isinstance(token, str):
            raise TokenInvalidError("Token must be non-empty string")

        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError(f"Token expired: {e}")
        except jwt.MissingRequiredClaimError as e:
            raise TokenClaimError(f"Missing claim: {e.claim}")
        except jwt.InvalidSignatureError as e:
            raise TokenInvalidError(f"Invalid signature: {e}")
        except jwt.DecodeError as e:
            raise TokenInvalidError(f"Decode error: {e}")
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError(f"Invalid token: {e}")

        if not isinstance(payload["sub"], str) or not payload["sub"]:
            raise TokenClaimError("Invalid subject claim")

        try:
            iat = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
            exp = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        except (ValueError, TypeError, OverflowError) as e:
            raise TokenClaimError(f"Invalid timestamp: {e}")

        return TokenClaims(sub=payload["sub"], iat=iat, exp=exp)

    def session_cookie(self, token: str) -> ResponseCookie:
        """
        Build the session cookie carrying a token

        Args:
            token: Signed token

        Returns:
            ResponseCookie (HttpOnly, Secure, SameSite=None)
        """
        return ResponseCookie(
            name=TOKEN_COOKIE_NAME,
            value=token,
            http_only=COOKIE_HTTP_ONLY,
            secure=COOKIE_SECURE,
            same_site=COOKIE_SAME_SITE,
        )

    def _sign(self, claims: dict) -> str:
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)
