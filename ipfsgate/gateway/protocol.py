"""
``ipfs:`` protocol registration.

The host runtime knows the scheme by this descriptor: on registration the
local gateway listener is started, and from then on every ``ipfs:`` request
is rewritten to a nonce-carrying request against that listener.
"""

from typing import Dict, Optional

from loguru import logger

from ipfsgate.api_server import GatewayListener, GatewayState
from ipfsgate.backends.ipfs_backend import IPFSNode
from ipfsgate.config import ServerConfig


class IPFSProtocol:
    """Protocol descriptor plus the request rewrite for the host runtime."""

    scheme = "ipfs"
    label = "IPFS"
    is_standard_url = False
    is_internal = False

    def __init__(self, config: Optional[ServerConfig] = None, node: Optional[IPFSNode] = None):
        self.config = config or ServerConfig(scheme=self.scheme)
        self.listener = GatewayListener(self.config, node=node)
        self.state: Optional[GatewayState] = None

    async def register(self) -> GatewayState:
        """Start the listener; generates the process nonce."""
        if self.state is None:
            self.state = await self.listener.start()
            logger.debug("Registered {}: protocol", self.scheme)
        return self.state

    def rewrite_request(self, method: str, url: str) -> Dict[str, str]:
        """
        Map an ``ipfs:`` request onto the local listener.

        Args:
            method: Original request method
            url: Original ``ipfs:`` URL

        Returns:
            ``{"method": ..., "url": ...}`` for the host runtime to fetch
        """
        if self.state is None:
            raise RuntimeError(f"{self.scheme}: protocol is not registered")
        return {"method": method, "url": self.state.gateway_url(url)}

    async def close(self):
        if self.state is not None:
            await self.listener.stop()
            self.state = None
