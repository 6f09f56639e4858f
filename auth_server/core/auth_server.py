"""
Auth Server - Service object and lifecycle

Module: core.auth_server
Date: 2026-10-19
Version: 0.1.0

CHANGELOG:
[2026-10-19 v0.1.0] Initial implementation
  - AuthServer owning store, token issuer, rate limiter and pipeline
  - Transport selection (aiohttp / tcp) from configuration
  - start(): load snapshot, start transport
  - stop(): stop transport, save snapshot
  - run(): serve until stop() or interruption

ARCHITECTURE:
AuthServer is the explicitly constructed service object: nothing in the
pipeline reads global state. The transport is pluggable; the pipeline's
handle() is registered as the transport's request handler.

Typical usage:
    config = ServerConfig.from_env()
    server = AuthServer(config)
    await server.run()
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .config import ServerConfig
from .constants import SERVER_NAME, SERVER_VERSION, TRANSPORT_TCP
from ..protocol.request_pipeline import RequestPipeline
from ..security.authentication import CredentialStore, TokenIssuer
from ..security.rate_limiter import RateLimiter
from ..transport.base_transport import BaseTransport
from ..transport.aiohttp_transport import AioHTTPConfig, AioHTTPTransport
from ..transport.tcp_transport import TCPConfig, TCPTransport


@dataclass
class ServerStatus:
    """Status information about the server"""
    name: str
    version: str
    is_running: bool
    transport: Optional[str]
    port: Optional[int]
    users: int
    uptime_seconds: float


class AuthServer:
    """
    Auth server

    Wires configuration, credential store, token issuer, rate limiter,
    request pipeline and transport together.
    """

    def __init__(self, config: ServerConfig, transport: Optional[BaseTransport] = None):
        """
        Initialize Auth Server

        Args:
            config: Validated server configuration
            transport: Transport to use (built from config if None)

        Raises:
            ConfigError: If the configuration is invalid
        """
        self.logger = logging.getLogger("core.auth_server")
        config.validate()
        self.config = config

        self.store = CredentialStore(config.snapshot_path, rounds=config.bcrypt_rounds)
        self.issuer = TokenIssuer(
            secret_key=config.jwt_secret_key,
            expire_minutes=config.token_expire_minutes,
        )
        self.rate_limiter = RateLimiter(
            window_seconds=config.rate_limit_window,
            max_requests=config.rate_limit_max,
        )
        self.pipeline = RequestPipeline(
            store=self.store,
            issuer=self.issuer,
            rate_limiter=self.rate_limiter,
            max_body_size=config.max_body_size,
            autosave=config.autosave,
        )

        self.transport = transport or self._build_transport(config)
        self.transport.set_request_handler(self.pipeline.handle)

        self._is_running = False
        self._startup_time: Optional[datetime] = None
        self._stop_event: Optional[asyncio.Event] = None

        self.logger.info(f"Server initialized: {SERVER_NAME} v{SERVER_VERSION}")

    @staticmethod
    def _build_transport(config: ServerConfig) -> BaseTransport:
        if config.transport == TRANSPORT_TCP:
            return TCPTransport(TCPConfig(host=config.host, port=config.port))
        return AioHTTPTransport(AioHTTPConfig(host=config.host, port=config.port))

    @property
    def is_running(self) -> bool:
        """Check if server is running"""
        return self._is_running

    @property
    def port(self) -> Optional[int]:
        """Port the transport is bound to"""
        return self.transport.bound_port

    @property
    def uptime_seconds(self) -> float:
        """Get uptime in seconds"""
        if not self._startup_time:
            return 0.0
        return (datetime.now(timezone.utc) - self._startup_time).total_seconds()

    async def start(self) -> None:
        """
        Load the snapshot and start the transport

        Raises:
            SnapshotError: If the snapshot file is unreadable
            OSError: If the transport cannot bind
        """
        if self._is_running:
            self.logger.warning("Server already running")
            return

        await self.store.load()
        await self.transport.start()

        self._is_running = True
        self._startup_time = datetime.now(timezone.utc)
        self._stop_event = asyncio.Event()

        self.logger.info(
            f"Server started: {SERVER_NAME} v{SERVER_VERSION} "
            f"({self.transport.name} on {self.config.host}:{self.port})"
        )

    async def stop(self) -> None:
        """
        Stop the transport and save the snapshot
        """
        if not self._is_running:
            return

        self._is_running = False

        try:
            await self.transport.stop()
        finally:
            await self.store.save()
            if self._stop_event is not None:
                self._stop_event.set()

        self.logger.info("Server stopped")

    async def run(self) -> None:
        """
        Start, then serve until stop() is called or the task is cancelled
        """
        await self.start()
        try:
            await self._stop_event.wait()
        finally:
            await self.stop()

    def request_stop(self) -> None:
        """Ask run() to return (safe to call from a signal handler)"""
        if self._stop_event is not None:
            self._stop_event.set()

    def get_status(self) -> ServerStatus:
        """
        Get server status

        Returns:
            ServerStatus: Current server status
        """
        return ServerStatus(
            name=SERVER_NAME,
            version=SERVER_VERSION,
            is_running=self._is_running,
            transport=self.transport.name if self.transport else None,
            port=self.port,
            users=len(self.store),
            uptime_seconds=self.uptime_seconds,
        )
