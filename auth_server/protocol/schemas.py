"""
Request schemas for the auth endpoints

Module: protocol.schemas
Date: 2026-10-19
Version: 0.1.0

Shape checks only: the pipeline treats validate_shape() as a yes/no
predicate and keeps using the raw payload values (emails are matched
exactly, without normalization).
"""

import logging
from typing import Any, Dict, Type

from pydantic import BaseModel, EmailStr, Field, ValidationError, field_validator

logger = logging.getLogger("protocol.schemas")

# bcrypt only considers the first 72 bytes; longer passwords are rejected
# rather than silently truncated
MAX_PASSWORD_BYTES = 72


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(
                f"Password must be at most {MAX_PASSWORD_BYTES} bytes (UTF-8); "
                "bcrypt would ignore anything longer"
            )
        return value


class SignupRequest(LoginRequest):
    name: str = Field(min_length=1)


def validate_shape(payload: Dict[str, Any], schema: Type[BaseModel]) -> bool:
    """
    Check that payload is well-formed for schema

    Args:
        payload: Decoded request body
        schema: LoginRequest or SignupRequest

    Returns:
        True if valid
    """
    try:
        schema.model_validate(payload)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        logger.info(f"{schema.__name__} rejected ({problems})")
        return False
    return True
