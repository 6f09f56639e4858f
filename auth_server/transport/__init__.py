"""
Transport module - HTTP bindings behind one interface

Provides:
- BaseTransport: abstract binding (receive chunks, send responses)
- TCPTransport: HTTP/1.1 on raw asyncio streams
- AioHTTPTransport: HTTP on aiohttp.web
"""

from .base_transport import (
    BaseTransport,
    BodyChunk,
    HTTPRequest,
    HTTPResponse,
    ResponseCookie,
)
from .tcp_transport import TCPTransport, TCPConfig
from .aiohttp_transport import AioHTTPTransport, AioHTTPConfig

__all__ = [
    "BaseTransport",
    "BodyChunk",
    "HTTPRequest",
    "HTTPResponse",
    "ResponseCookie",
    "TCPTransport",
    "TCPConfig",
    "AioHTTPTransport",
    "AioHTTPConfig",
]
