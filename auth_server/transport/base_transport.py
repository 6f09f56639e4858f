"""
Base Transport Class - Abstract interface for all transport bindings

Module: transport.base_transport
Date: 2026-10-19
Version: 0.1.0

CHANGELOG:
[2026-10-19 v0.1.0] Initial implementation
  - Abstract BaseTransport class
  - HTTPRequest / HTTPResponse exchange types
  - BodyChunk streaming unit
  - ResponseCookie with Set-Cookie rendering
  - Request dispatch with generic 500 on unexpected errors

ARCHITECTURE:
BaseTransport is the abstract base class that every binding (raw asyncio
TCP, aiohttp) inherits from. A binding:
- Accepts connections and parses request line + headers
- Exposes the body as an async iterable of BodyChunk (not pre-read)
- Hands an HTTPRequest to the registered handler
- Writes back the HTTPResponse, or drops the connection if the handler
  returned None (peer already gone)

Not responsible for:
1. Body decoding (protocol layer)
2. Authentication (protocol/security layers)
3. Routing (protocol layer)
"""

from abc import ABC, abstractmethod
from http import HTTPStatus
from http.cookies import SimpleCookie
from typing import Optional, Dict, Any, Callable, Awaitable, AsyncIterator, List
import json
import logging
from dataclasses import dataclass, field


# ============================================================================
# Types and Data Classes
# ============================================================================

@dataclass
class BodyChunk:
    """
    One fragment of a request body

    Attributes:
        data: Raw bytes (may be empty)
        final: True for the last fragment of the body
    """
    data: bytes
    final: bool = False


async def _no_body() -> AsyncIterator[BodyChunk]:
    yield BodyChunk(b"", final=True)


@dataclass
class HTTPRequest:
    """
    Request handed from a transport to the pipeline

    Attributes:
        method: Upper-case HTTP method
        path: Request path without query string
        headers: Header names lower-cased
        cookies: Parsed Cookie header
        body: Async iterable of BodyChunk
        has_body: False when the request carries no body at all
        remote: Client address (used for rate limiting)
    """
    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    cookies: Dict[str, str] = field(default_factory=dict)
    body: Optional[AsyncIterator[BodyChunk]] = None
    has_body: bool = False
    remote: str = "unknown"

    def __post_init__(self):
        """Normalize method and header names, default to an empty body"""
        self.method = self.method.upper()
        self.headers = {k.lower(): v for k, v in self.headers.items()}
        if self.body is None:
            self.body = _no_body()

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup"""
        return self.headers.get(name.lower(), default)


@dataclass
class ResponseCookie:
    """Cookie attached to a response"""
    name: str
    value: str
    http_only: bool = True
    secure: bool = True
    same_site: Optional[str] = "None"
    path: str = "/"
    max_age: Optional[int] = None

    def to_header(self) -> str:
        """
        Render as a Set-Cookie header value

        Returns:
            str: e.g. "token=abc; HttpOnly; Path=/; SameSite=None; Secure"
        """
        cookie = SimpleCookie()
        cookie[self.name] = self.value
        morsel = cookie[self.name]
        morsel["path"] = self.path
        if self.http_only:
            morsel["httponly"] = True
        if self.secure:
            morsel["secure"] = True
        if self.same_site:
            morsel["samesite"] = self.same_site
        if self.max_age is not None:
            morsel["max-age"] = self.max_age
        return morsel.OutputString()


@dataclass
class HTTPResponse:
    """
    Response produced by the pipeline

    Attributes:
        status: HTTP status code
        body: JSON-serializable payload (None for an empty body)
        headers: Extra response headers
        cookies: Cookies to set
    """
    status: int = 200
    body: Optional[Dict[str, Any]] = None
    headers: Dict[str, str] = field(default_factory=dict)
    cookies: List[ResponseCookie] = field(default_factory=list)

    @property
    def reason(self) -> str:
        """Standard reason phrase for the status code"""
        try:
            return HTTPStatus(self.status).phrase
        except ValueError:
            return "Unknown"

    def encode_body(self) -> bytes:
        """Serialize body to UTF-8 JSON (empty bytes when there is no body)"""
        if self.body is None:
            return b""
        return json.dumps(self.body).encode("utf-8")

    @staticmethod
    def json(status: int, body: Dict[str, Any]) -> "HTTPResponse":
        """Shortcut for a JSON response"""
        return HTTPResponse(status=status, body=body)

    @staticmethod
    def message(status: int, message: str) -> "HTTPResponse":
        """Shortcut for a {"message": ...} response"""
        return HTTPResponse(status=status, body={"message": message})


RequestHandler = Callable[[HTTPRequest], Awaitable[Optional[HTTPResponse]]]


# ============================================================================
# Abstract Base Transport Class
# ============================================================================

class BaseTransport(ABC):
    """
    Abstract base class for all transport bindings

    The transport layer is responsible for:
    1. Listening and connection management
    2. HTTP framing (request line, headers, body chunks)
    3. Writing responses

    The pipeline is implemented once against this interface.
    """

    def __init__(self, name: str):
        """
        Initialize transport

        Args:
            name: Name of this transport instance
        """
        self.name = name
        self.is_running = False
        self.logger = logging.getLogger(f"transport.{name}")

        self._request_handler: Optional[RequestHandler] = None

    @property
    def status(self) -> str:
        """Get current transport status"""
        return "running" if self.is_running else "stopped"

    @property
    @abstractmethod
    def bound_port(self) -> Optional[int]:
        """Port actually bound (useful when configured with port 0)"""
        pass

    @abstractmethod
    async def start(self) -> None:
        """
        Start listening

        Must return once the socket is bound; serving continues in the
        background until stop().

        Raises:
            Exception: If transport cannot be started
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """
        Stop listening and close open connections
        """
        pass

    def set_request_handler(self, handler: RequestHandler) -> None:
        """
        Register request handler

        Args:
            handler: Async callable(HTTPRequest) -> Optional[HTTPResponse]
        """
        self._request_handler = handler
        self.logger.info("Request handler registered")

    async def _dispatch_request(self, request: HTTPRequest) -> Optional[HTTPResponse]:
        """
        Pass a request to the handler

        Unexpected handler failures become a generic 500; internal details
        are only logged.

        Args:
            request: Parsed request

        Returns:
            Response to write, or None to drop the connection
        """
        if self._request_handler is None:
            self.logger.error("No request handler registered")
            return HTTPResponse.message(503, "Service unavailable.")

        try:
            return await self._request_handler(request)
        except Exception as e:
            self.logger.error(
                f"Error in request handler ({request.method} {request.path}): {e}",
                exc_info=True,
            )
            return HTTPResponse.message(500, "Internal server error.")
