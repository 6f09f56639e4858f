"""
TCP Socket Transport - Minimal HTTP/1.1 binding on asyncio streams

Module: transport.tcp_transport
Date: 2026-10-19
Version: 0.1.1

CHANGELOG:
[2026-10-19 v0.1.0] Initial implementation
  - TCPTransport server on asyncio.start_server
  - Request line / header parsing
  - Body streamed as BodyChunk (Content-Length or chunked encoding)
  - Expect: 100-continue
  - Keep-alive when the body was fully consumed

[2026-10-19 v0.1.1] Bounded chunk reads
  - Chunked bodies read in read_chunk_size slices so the size limit
    applies before a declared chunk is fully received

ARCHITECTURE:
One TCPClientConnection per socket. The connection loop reads one request
head, hands an HTTPRequest to the pipeline with a lazy chunk generator as
body, then writes the response. A body that ends early raises a
ConnectionError inside the generator, which the body assembler turns into
an aborted stream; the pipeline then returns None and the socket is
closed without a response.

SECURITY NOTES:
- Header block size bounded (max_header_size)
- Body reads bounded by read_chunk_size for both framings
- Read/write timeouts on every socket operation
- No TLS (terminate TLS in front of this binding)
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from http.cookies import CookieError, SimpleCookie
from typing import AsyncIterator, Dict, Optional, Tuple
from urllib.parse import urlsplit

from ..core.constants import DEFAULT_HOST, DEFAULT_PORT, MAX_HEADER_SIZE, READ_CHUNK_SIZE
from .base_transport import BaseTransport, BodyChunk, HTTPRequest, HTTPResponse


class HTTPParseError(Exception):
    """Request head cannot be parsed"""
    pass


@dataclass
class TCPConfig:
    """TCP Transport Configuration"""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    backlog: int = 128
    read_timeout: float = 30.0
    write_timeout: float = 10.0
    max_header_size: int = MAX_HEADER_SIZE
    read_chunk_size: int = READ_CHUNK_SIZE


RequestHead = Tuple[str, str, str, Dict[str, str]]


class TCPClientConnection:
    """Represents a single TCP client connection"""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        connection_id: str,
        config: TCPConfig
    ):
        """Initialize TCP client connection"""
        self.reader = reader
        self.writer = writer
        self.connection_id = connection_id
        self.config = config
        self.connected = True
        self.body_complete = True
        self.logger = logging.getLogger(f"transport.tcp.{connection_id[:8]}")
        self.peername = writer.get_extra_info("peername")
        self.logger.debug(f"Connection from {self.peername}")

    @property
    def remote(self) -> str:
        """Client host, or 'unknown'"""
        if isinstance(self.peername, tuple) and self.peername:
            return str(self.peername[0])
        return "unknown"

    async def read_head(self) -> Optional[RequestHead]:
        """
        Read request line and headers

        Returns:
            (method, path, version, headers) or None if the peer closed
            the connection between requests

        Raises:
            HTTPParseError: If the head is malformed or too large
        """
        try:
            raw = await asyncio.wait_for(
                self.reader.readuntil(b"\r\n\r\n"),
                timeout=self.config.read_timeout
            )
        except asyncio.IncompleteReadError as e:
            if e.partial.strip():
                raise HTTPParseError("Truncated request head")
            return None
        except asyncio.LimitOverrunError:
            raise HTTPParseError("Request head too large")
        except asyncio.TimeoutError:
            self.logger.info("Idle timeout")
            return None

        if len(raw) > self.config.max_header_size:
            raise HTTPParseError("Request head too large")

        try:
            text = raw.decode("latin-1")
        except UnicodeDecodeError:
            raise HTTPParseError("Undecodable request head")

        lines = text.split("\r\n")
        parts = lines[0].split(" ")
        if len(parts) != 3 or not parts[2].startswith("HTTP/1."):
            raise HTTPParseError(f"Bad request line: {lines[0][:80]!r}")
        method, target, version = parts

        headers: Dict[str, str] = {}
        for line in lines[1:]:
            if not line:
                continue
            name, sep, value = line.partition(":")
            if not sep or not name or name != name.strip():
                raise HTTPParseError(f"Bad header line: {line[:80]!r}")
            name = name.lower()
            value = value.strip()
            if name in headers:
                joiner = "; " if name == "cookie" else ", "
                headers[name] = headers[name] + joiner + value
            else:
                headers[name] = value

        return method.upper(), urlsplit(target).path or "/", version, headers

    def body_length(self, headers: Dict[str, str]) -> Optional[int]:
        """
        Declared body size; None for chunked transfer encoding

        Raises:
            HTTPParseError: On an invalid Content-Length
        """
        if "chunked" in headers.get("transfer-encoding", "").lower():
            return None
        raw = headers.get("content-length", "0")
        try:
            length = int(raw)
        except ValueError:
            raise HTTPParseError(f"Bad Content-Length: {raw!r}")
        if length < 0:
            raise HTTPParseError(f"Bad Content-Length: {raw!r}")
        return length

    async def body_chunks(
        self,
        headers: Dict[str, str],
        length: Optional[int],
    ) -> AsyncIterator[BodyChunk]:
        """
        Stream the request body as BodyChunk

        Args:
            headers: Request headers
            length: Content-Length, or None for chunked encoding

        Raises:
            ConnectionError: If the peer goes away mid-body
            asyncio.IncompleteReadError: If a chunk is truncated
        """
        if headers.get("expect", "").lower() == "100-continue":
            self.writer.write(b"HTTP/1.1 100 Continue\r\n\r\n")
            await self._drain()

        if length is None:
            async for chunk in self._chunked_body():
                yield chunk
            return

        remaining = length
        if remaining == 0:
            self.body_complete = True
            yield BodyChunk(b"", final=True)
            return

        while remaining > 0:
            data = await self._read(self.reader.read(min(self.config.read_chunk_size, remaining)))
            if not data:
                raise ConnectionResetError(
                    f"Peer closed with {remaining} body bytes outstanding"
                )
            remaining -= len(data)
            if remaining == 0:
                self.body_complete = True
            yield BodyChunk(data, final=remaining == 0)

    async def _chunked_body(self) -> AsyncIterator[BodyChunk]:
        while True:
            size_line = await self._read(self.reader.readuntil(b"\r\n"))
            size_text = size_line.split(b";", 1)[0].strip()
            try:
                size = int(size_text, 16)
            except ValueError:
                raise ConnectionAbortedError(f"Bad chunk size: {size_text[:16]!r}")

            if size == 0:
                # Trailer section ends with an empty line
                while (await self._read(self.reader.readuntil(b"\r\n"))) != b"\r\n":
                    pass
                self.body_complete = True
                yield BodyChunk(b"", final=True)
                return

            # Declared chunk sizes are untrusted: read in bounded slices
            remaining = size
            while remaining > 0:
                data = await self._read(
                    self.reader.read(min(self.config.read_chunk_size, remaining))
                )
                if not data:
                    raise ConnectionResetError(
                        f"Peer closed with {remaining} chunk bytes outstanding"
                    )
                remaining -= len(data)
                yield BodyChunk(data, final=False)

            if await self._read(self.reader.readexactly(2)) != b"\r\n":
                raise ConnectionAbortedError("Missing CRLF after chunk")

    async def _read(self, operation):
        try:
            return await asyncio.wait_for(operation, timeout=self.config.read_timeout)
        except asyncio.TimeoutError:
            raise ConnectionAbortedError("Read timeout")
        except asyncio.LimitOverrunError:
            raise ConnectionAbortedError("Chunk header too large")

    async def _drain(self) -> None:
        await asyncio.wait_for(self.writer.drain(), timeout=self.config.write_timeout)

    async def send_response(self, response: HTTPResponse, keep_alive: bool) -> None:
        """Write status line, headers and body"""
        body = response.encode_body()

        lines = [f"HTTP/1.1 {response.status} {response.reason}"]
        if body:
            lines.append("Content-Type: application/json; charset=utf-8")
        lines.append(f"Content-Length: {len(body)}")
        lines.append(f"Connection: {'keep-alive' if keep_alive else 'close'}")
        for name, value in response.headers.items():
            lines.append(f"{name}: {value}")
        for cookie in response.cookies:
            lines.append(f"Set-Cookie: {cookie.to_header()}")

        head = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")

        try:
            self.writer.write(head + body)
            await self._drain()
            self.logger.debug(f"Sent {response.status} ({len(body)} bytes)")
        except asyncio.TimeoutError:
            self.logger.error("Write timeout")
            self.connected = False
        except ConnectionError as e:
            self.logger.info(f"Send error: {e}")
            self.connected = False

    async def close(self) -> None:
        """Close TCP connection"""
        self.connected = False
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except ConnectionError as e:
            self.logger.debug(f"Close error: {e}")
        self.logger.debug("Connection closed")


class TCPTransport(BaseTransport):
    """
    HTTP/1.1 over raw asyncio streams.

    Supports multiple concurrent connections and keep-alive.
    """

    def __init__(self, config: Optional[TCPConfig] = None):
        """
        Initialize TCP Transport

        Args:
            config: TCPConfig instance (uses defaults if None)
        """
        super().__init__(name="tcp")
        self.config = config or TCPConfig()
        self.server: Optional[asyncio.Server] = None
        self.clients: Dict[str, TCPClientConnection] = {}

    @property
    def bound_port(self) -> Optional[int]:
        """Port the listening socket is bound to"""
        if self.server is None or not self.server.sockets:
            return None
        return self.server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        """Bind and start accepting connections"""
        try:
            self.server = await asyncio.start_server(
                self._handle_client,
                self.config.host,
                self.config.port,
                backlog=self.config.backlog,
                limit=self.config.max_header_size,
            )
        except OSError as e:
            self.logger.error(f"Server startup failed: {e}")
            self.is_running = False
            raise

        self.is_running = True
        self.logger.info(f"TCP server started on {self.config.host}:{self.bound_port}")

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter
    ) -> None:
        """Serve requests on one connection until close"""
        connection_id = str(uuid.uuid4())
        connection = TCPClientConnection(reader, writer, connection_id, self.config)
        self.clients[connection_id] = connection

        try:
            while connection.connected and self.is_running:
                try:
                    head = await connection.read_head()
                    if head is None:
                        break
                    method, path, version, headers = head
                    length = connection.body_length(headers)
                except HTTPParseError as e:
                    self.logger.warning(f"Bad request from {connection.remote}: {e}")
                    await connection.send_response(
                        HTTPResponse.message(400, "Bad request."), keep_alive=False
                    )
                    break

                cookies = self._parse_cookies(headers.get("cookie"))
                has_body = length is None or length > 0
                connection.body_complete = not has_body
                request = HTTPRequest(
                    method=method,
                    path=path,
                    headers=headers,
                    cookies=cookies,
                    body=connection.body_chunks(headers, length),
                    has_body=has_body,
                    remote=connection.remote,
                )

                response = await self._dispatch_request(request)
                if response is None:
                    break

                keep_alive = connection.body_complete and self._wants_keep_alive(version, headers)
                await connection.send_response(response, keep_alive)
                if not keep_alive:
                    break

        except Exception as e:
            self.logger.error(f"Client error: {e}")
        finally:
            await connection.close()
            self.clients.pop(connection_id, None)

    @staticmethod
    def _wants_keep_alive(version: str, headers: Dict[str, str]) -> bool:
        token = headers.get("connection", "").lower()
        if version == "HTTP/1.0":
            return token == "keep-alive"
        return token != "close"

    def _parse_cookies(self, header: Optional[str]) -> Dict[str, str]:
        if not header:
            return {}
        cookie = SimpleCookie()
        try:
            cookie.load(header)
        except CookieError as e:
            self.logger.debug(f"Ignoring malformed Cookie header: {e}")
            return {}
        return {name: morsel.value for name, morsel in cookie.items()}

    async def stop(self) -> None:
        """Stop TCP server and close all connections"""
        self.is_running = False

        if self.server:
            self.server.close()

        for connection in list(self.clients.values()):
            await connection.close()
        self.clients.clear()

        if self.server:
            await self.server.wait_closed()
            self.server = None

        self.logger.info("TCP transport stopped")

    def get_client_count(self) -> int:
        """Get number of open TCP connections"""
        return len(self.clients)
