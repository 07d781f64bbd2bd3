"""
Tests for ``ipfs:`` protocol registration.
"""

import pytest

from ipfsgate.api_server import GatewayState
from ipfsgate.gateway.protocol import IPFSProtocol

from helpers_gateway import NONCE


class TestIPFSProtocol:
    """Test the descriptor and request rewriting."""

    def test_descriptor(self, node):
        protocol = IPFSProtocol(node=node)
        assert protocol.scheme == "ipfs"
        assert protocol.label == "IPFS"
        assert protocol.is_standard_url is False
        assert protocol.is_internal is False

    def test_rewrite_requires_registration(self, node):
        with pytest.raises(RuntimeError):
            IPFSProtocol(node=node).rewrite_request("GET", "ipfs:/ipfs/QmRoot/")

    def test_rewrite_targets_local_listener(self, node):
        protocol = IPFSProtocol(node=node)
        protocol.state = GatewayState("127.0.0.1", 4321, NONCE)

        request = protocol.rewrite_request("POST", "ipfs:/ipfs/QmRoot/")
        assert request["method"] == "POST"
        assert request["url"] == (
            f"http://127.0.0.1:4321/?url=ipfs%3A%2Fipfs%2FQmRoot%2F&nonce={NONCE}"
        )

    @pytest.mark.asyncio
    async def test_register_once(self, node, resolver):
        protocol = IPFSProtocol(node=node)
        protocol.listener.resolver = resolver
        try:
            state = await protocol.register()
            assert await protocol.register() is state
            assert protocol.rewrite_request("GET", "ipfs:/ipfs/QmRoot/")["url"].startswith(state.base_url)
        finally:
            await protocol.close()
        assert protocol.state is None
