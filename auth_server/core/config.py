"""
Server Configuration

Module: core.config
Date: 2026-10-19
Version: 0.1.0

CHANGELOG:
[2026-10-19 v0.1.0] Initial implementation
  - ServerConfig dataclass with defaults
  - Environment variable loading
  - Validation of secret, cost factor and limits

SECURITY NOTES:
- JWT_SECRET_KEY is mandatory; a missing or short secret is fatal
- bcrypt cost is bounded to the range bcrypt accepts
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .constants import (
    BCRYPT_MAX_ROUNDS,
    BCRYPT_MIN_ROUNDS,
    BCRYPT_ROUNDS,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SNAPSHOT_PATH,
    MAX_BODY_SIZE,
    MIN_SECRET_LENGTH,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_WINDOW_SECONDS,
    SUPPORTED_TRANSPORTS,
    TOKEN_EXPIRE_MINUTES,
    TRANSPORT_AIOHTTP,
)


class ConfigError(Exception):
    """Invalid or missing configuration"""
    pass


_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass
class ServerConfig:
    """Auth server configuration"""
    jwt_secret_key: str = ""
    token_expire_minutes: int = TOKEN_EXPIRE_MINUTES
    bcrypt_rounds: int = BCRYPT_ROUNDS
    snapshot_path: str = DEFAULT_SNAPSHOT_PATH
    autosave: bool = True
    transport: str = TRANSPORT_AIOHTTP
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    max_body_size: int = MAX_BODY_SIZE
    rate_limit_window: int = RATE_LIMIT_WINDOW_SECONDS
    rate_limit_max: int = RATE_LIMIT_MAX_REQUESTS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Build configuration from environment variables

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Validated ServerConfig

        Raises:
            ConfigError: If a value is missing or malformed
        """
        env = os.environ if environ is None else environ

        config = cls(
            jwt_secret_key=env.get("JWT_SECRET_KEY", ""),
            token_expire_minutes=_int(env, "AUTH_TOKEN_EXPIRE_MINUTES", TOKEN_EXPIRE_MINUTES),
            bcrypt_rounds=_int(env, "AUTH_BCRYPT_ROUNDS", BCRYPT_ROUNDS),
            snapshot_path=env.get("AUTH_SNAPSHOT_PATH", DEFAULT_SNAPSHOT_PATH),
            autosave=_bool(env, "AUTH_AUTOSAVE", True),
            transport=env.get("AUTH_TRANSPORT", TRANSPORT_AIOHTTP).lower(),
            host=env.get("AUTH_HOST", DEFAULT_HOST),
            port=_int(env, "AUTH_PORT", DEFAULT_PORT),
            max_body_size=_int(env, "AUTH_MAX_BODY_SIZE", MAX_BODY_SIZE),
            rate_limit_window=_int(env, "AUTH_RATE_LIMIT_WINDOW", RATE_LIMIT_WINDOW_SECONDS),
            rate_limit_max=_int(env, "AUTH_RATE_LIMIT_MAX", RATE_LIMIT_MAX_REQUESTS),
            log_level=env.get("AUTH_LOG_LEVEL", "INFO").upper(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """
        Check every field

        Raises:
            ConfigError: On the first invalid field
        """
        if not self.jwt_secret_key:
            raise ConfigError("JWT_SECRET_KEY is not set")
        if len(self.jwt_secret_key) < MIN_SECRET_LENGTH:
            raise ConfigError(
                f"JWT_SECRET_KEY must be at least {MIN_SECRET_LENGTH} characters"
            )
        if not BCRYPT_MIN_ROUNDS <= self.bcrypt_rounds <= BCRYPT_MAX_ROUNDS:
            raise ConfigError(
                f"bcrypt rounds must be between {BCRYPT_MIN_ROUNDS} and {BCRYPT_MAX_ROUNDS}"
            )
        if self.token_expire_minutes <= 0:
            raise ConfigError("Token expiration must be positive")
        if self.transport not in SUPPORTED_TRANSPORTS:
            raise ConfigError(
                f"Unknown transport '{self.transport}' (expected one of {', '.join(SUPPORTED_TRANSPORTS)})"
            )
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"Invalid port: {self.port}")
        if self.max_body_size <= 0:
            raise ConfigError("Max body size must be positive")
        if self.rate_limit_window <= 0 or self.rate_limit_max <= 0:
            raise ConfigError("Rate limit window and maximum must be positive")


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{raw}'")


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got '{raw}'")
