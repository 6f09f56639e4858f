"""
Core module - Configuration, constants and the server service object
"""

from .config import ServerConfig, ConfigError

__all__ = [
    "ServerConfig",
    "ConfigError",
]
