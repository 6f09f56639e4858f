"""
aiohttp Transport - HTTP binding on aiohttp.web

Module: transport.aiohttp_transport
Date: 2026-10-19
Version: 0.1.0

CHANGELOG:
[2026-10-19 v0.1.0] Initial implementation
  - Catch-all aiohttp route feeding the request pipeline
  - Body streamed from request.content as BodyChunk
  - HTTPResponse -> web.Response conversion (headers, cookies)

ARCHITECTURE:
AioHTTPTransport runs an aiohttp Application through AppRunner/TCPSite.
Every request, whatever its method or path, goes to _handle(), which
wraps it in an HTTPRequest and lets the pipeline do the routing.

The body is not pre-read: _body_chunks() yields whatever aiohttp has
buffered, then an empty final chunk at EOF. A dropped connection
surfaces as a ConnectionError inside the generator.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from aiohttp import ClientPayloadError, web
from aiohttp.http_exceptions import HttpProcessingError

from ..core.constants import DEFAULT_HOST, DEFAULT_PORT
from .base_transport import BaseTransport, BodyChunk, HTTPRequest, HTTPResponse


@dataclass
class AioHTTPConfig:
    """aiohttp Transport Configuration"""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    shutdown_timeout: float = 5.0


class AioHTTPTransport(BaseTransport):
    """
    HTTP transport backed by aiohttp.web

    Same contract as TCPTransport; only the HTTP machinery differs.
    """

    def __init__(self, config: Optional[AioHTTPConfig] = None):
        """
        Initialize aiohttp Transport

        Args:
            config: AioHTTPConfig instance (uses defaults if None)
        """
        super().__init__(name="aiohttp")
        self.config = config or AioHTTPConfig()
        self.app: Optional[web.Application] = None
        self.runner: Optional[web.AppRunner] = None

    @property
    def bound_port(self) -> Optional[int]:
        """Port the site is bound to"""
        if self.runner is None or not self.runner.addresses:
            return None
        return self.runner.addresses[0][1]

    def build_app(self) -> web.Application:
        """Create the aiohttp application with the catch-all route"""
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", self._handle)
        return app

    async def start(self) -> None:
        """Start aiohttp server"""
        try:
            self.app = self.build_app()
            self.runner = web.AppRunner(
                self.app,
                access_log=None,
                shutdown_timeout=self.config.shutdown_timeout,
            )
            await self.runner.setup()
            site = web.TCPSite(self.runner, self.config.host, self.config.port)
            await site.start()
        except OSError as e:
            self.logger.error(f"Server startup failed: {e}")
            self.is_running = False
            if self.runner:
                await self.runner.cleanup()
                self.runner = None
            raise

        self.is_running = True
        self.logger.info(f"aiohttp server started on {self.config.host}:{self.bound_port}")

    async def stop(self) -> None:
        """Stop aiohttp server"""
        self.is_running = False
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
        self.logger.info("aiohttp transport stopped")

    async def _handle(self, request: web.Request) -> web.StreamResponse:
        """Adapt one aiohttp request to the pipeline"""
        http_request = HTTPRequest(
            method=request.method,
            path=request.path,
            headers=dict(request.headers),
            cookies=dict(request.cookies),
            body=self._body_chunks(request),
            has_body=request.body_exists,
            remote=request.remote or "unknown",
        )

        response = await self._dispatch_request(http_request)

        if response is None:
            # Peer is gone; nothing can be delivered
            if request.transport is not None:
                request.transport.close()
            return web.Response(status=400)

        return self._to_web_response(response)

    async def _body_chunks(self, request: web.Request) -> AsyncIterator[BodyChunk]:
        try:
            async for data in request.content.iter_any():
                yield BodyChunk(data, final=False)
        except (ClientPayloadError, HttpProcessingError) as e:
            raise ConnectionResetError(f"Payload error: {e}") from e
        except asyncio.TimeoutError as e:
            raise ConnectionAbortedError("Read timeout") from e

        yield BodyChunk(b"", final=True)

    @staticmethod
    def _to_web_response(response: HTTPResponse) -> web.Response:
        body = response.encode_body()
        web_response = web.Response(
            status=response.status,
            body=body or None,
            headers=response.headers,
            content_type="application/json" if body else None,
            charset="utf-8" if body else None,
        )
        for cookie in response.cookies:
            web_response.set_cookie(
                cookie.name,
                cookie.value,
                path=cookie.path,
                max_age=cookie.max_age,
                secure=cookie.secure,
                httponly=cookie.http_only,
                samesite=cookie.same_site,
            )
        return web_response
