"""
Gateway configuration and logging setup.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import BaseModel, Field

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "[IPFS] {message}"
)


class ServerConfig(BaseModel):
    """Gateway listener configuration."""

    host: str = Field(
        default="127.0.0.1",
        description="Listen address; the gateway is meant for local use only"
    )
    port: int = Field(default=0, description="Listen port (0 picks a random free port)")
    scheme: str = Field(default="ipfs", description="URL scheme served by the gateway")

    ipfs_api: Optional[str] = Field(
        default=None,
        description="IPFS daemon API multiaddr (default: read from the repo config)"
    )
    ipfs_path: Optional[Path] = Field(
        default=None,
        description="IPFS repo directory (default: $IPFS_PATH or ~/.ipfs)"
    )

    log_level: str = Field(default="INFO", description="Log verbosity")

    @classmethod
    def from_env(cls) -> "ServerConfig":
        ipfs_path = os.getenv("IPFS_PATH")
        return cls(
            host=os.getenv("IPFS_GATEWAY_HOST", "127.0.0.1"),
            port=int(os.getenv("IPFS_GATEWAY_PORT", "0")),
            ipfs_api=os.getenv("IPFS_API") or None,
            ipfs_path=Path(ipfs_path) if ipfs_path else None,
            log_level=os.getenv("IPFS_GATEWAY_LOG_LEVEL", "INFO"),
        )


def configure_logging(log_level: str = "INFO"):
    """
    Apply the log verbosity to both loguru and the stdlib loggers.

    Args:
        log_level: Level name (TRACE, DEBUG, INFO, WARNING, ERROR)
    """
    level = log_level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)

    # stdlib has no TRACE level
    stdlib_level = "DEBUG" if level == "TRACE" else level
    package_logger = logging.getLogger("ipfsgate")
    package_logger.setLevel(stdlib_level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)-8s | [IPFS] %(message)s"))
        package_logger.addHandler(handler)
