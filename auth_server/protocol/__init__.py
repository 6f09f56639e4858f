"""
Protocol module - Body assembly, request shapes and the request pipeline
"""

from .body_assembler import (
    BodyAssembler,
    BodyAssemblyError,
    BodyParseError,
    BodyTooLargeError,
    StreamAbortedError,
)
from .request_pipeline import (
    RequestPipeline,
    PipelineError,
    ShapeInvalidError,
    UnauthorizedError,
)
from .schemas import LoginRequest, SignupRequest, validate_shape

__all__ = [
    "BodyAssembler",
    "BodyAssemblyError",
    "BodyParseError",
    "BodyTooLargeError",
    "StreamAbortedError",
    "RequestPipeline",
    "PipelineError",
    "ShapeInvalidError",
    "UnauthorizedError",
    "LoginRequest",
    "SignupRequest",
    "validate_shape",
]
