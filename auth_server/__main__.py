"""
Auth Server Entry Point

Allows running the server directly via `python -m auth_server`.
Loads .env, builds the configuration (environment, then command line
overrides), configures logging to stderr and serves until interrupted.
"""

import argparse
import asyncio
import logging
import signal
import sys

from dotenv import load_dotenv

from .core.auth_server import AuthServer
from .core.config import ConfigError, ServerConfig
from .core.constants import SUPPORTED_TRANSPORTS


def setup_logging(level: str) -> None:
    """Configure logging to stderr"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="auth_server", description="Session token auth server")
    parser.add_argument("--transport", choices=SUPPORTED_TRANSPORTS, help="HTTP binding")
    parser.add_argument("--host", help="Bind address")
    parser.add_argument("--port", type=int, help="Bind port")
    parser.add_argument("--snapshot", help="Path of the user snapshot file")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, ...)")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Environment configuration with command line overrides applied"""
    config = ServerConfig.from_env()
    if args.transport:
        config.transport = args.transport
    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.snapshot:
        config.snapshot_path = args.snapshot
    if args.log_level:
        config.log_level = args.log_level.upper()
    config.validate()
    return config


async def main(argv=None) -> int:
    """Main entry point"""
    load_dotenv()
    args = parse_args(argv)

    try:
        config = build_config(args)
    except ConfigError as e:
        setup_logging("INFO")
        logging.getLogger("main").critical(f"Invalid configuration: {e}")
        return 2

    setup_logging(config.log_level)
    logger = logging.getLogger("main")

    server = AuthServer(config)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, server.request_stop)
        except NotImplementedError:
            # Windows event loops; KeyboardInterrupt still applies
            pass

    try:
        logger.info(f"Starting auth server ({config.transport})...")
        await server.run()
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        return 1

    return 0


def run() -> None:
    """Console script entry point"""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    run()
