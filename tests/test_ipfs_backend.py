"""
Tests for the IPFS daemon backend.

The ``ipfshttpclient`` client is mocked; no daemon is needed.
"""

import asyncio
import json
from unittest.mock import MagicMock, patch

import pytest
from ipfshttpclient import exceptions as ipfs_exceptions

from ipfsgate.backends.ipfs_backend import IPFSApi, IPFSNode
from ipfsgate.core.content_key import LinkEntry
from ipfsgate.errors import ConnectionLost, FetchFailed, NotReady


def mock_client(version="0.30.0"):
    client = MagicMock()
    client.version.return_value = {"Version": version}
    return client


class TestIPFSApi:
    """Test API calls and error mapping."""

    @pytest.mark.asyncio
    async def test_fetch_links(self):
        client = mock_client()
        client.object.links.return_value = {
            "Hash": "QmRoot",
            "Links": [
                {"Name": "index.html", "Hash": "QmIndex", "Size": 120},
                {"Name": "docs", "Hash": "QmDocs", "Size": 0},
            ],
        }

        links = await IPFSApi(client).fetch_links("/ipfs/QmRoot")
        assert links == [LinkEntry("index.html", "QmIndex", 120), LinkEntry("docs", "QmDocs", 0)]
        client.object.links.assert_called_once_with("/ipfs/QmRoot")

    @pytest.mark.asyncio
    async def test_fetch_links_leaf_has_none(self):
        client = mock_client()
        client.object.links.return_value = {"Hash": "QmLeaf", "Links": None}
        assert await IPFSApi(client).fetch_links("QmLeaf") == []

    @pytest.mark.asyncio
    async def test_fetch_payload(self):
        client = mock_client()
        client.object.data.return_value = b"\x08\x02\x12\x02hi"
        assert await IPFSApi(client).fetch_payload("QmLeaf") == b"\x08\x02\x12\x02hi"

    @pytest.mark.asyncio
    async def test_connection_error_is_connection_lost(self):
        client = mock_client()
        client.object.links.side_effect = ipfs_exceptions.ConnectionError(Exception("refused"))
        with pytest.raises(ConnectionLost):
            await IPFSApi(client).fetch_links("QmRoot")

    @pytest.mark.asyncio
    async def test_api_error_is_fetch_failed(self):
        client = mock_client()
        client.object.data.side_effect = ipfs_exceptions.ErrorResponse("merkledag: not found", None)
        with pytest.raises(FetchFailed) as exc_info:
            await IPFSApi(client).fetch_payload("QmGone")
        assert not isinstance(exc_info.value, ConnectionLost)


class TestIPFSNode:
    """Test handle lifecycle: setup, invalidation, shutdown."""

    def test_require_api_without_setup(self):
        node = IPFSNode(ipfs_api="/ip4/127.0.0.1/tcp/5001")
        assert node.get_api() is None
        with pytest.raises(NotReady):
            node.require_api()

    @pytest.mark.asyncio
    async def test_setup_connects(self):
        client = mock_client()
        with patch("ipfshttpclient.connect", return_value=client) as connect:
            node = IPFSNode(ipfs_api="/ip4/127.0.0.1/tcp/5001", timeout=5)
            await node.setup()

        connect.assert_called_once_with("/ip4/127.0.0.1/tcp/5001", timeout=5)
        assert node.require_api().client is client
        assert not node.is_setting_up

    @pytest.mark.asyncio
    async def test_failed_setup_leaves_handle_empty(self):
        error = ipfs_exceptions.ConnectionError(Exception("refused"))
        with patch("ipfshttpclient.connect", side_effect=error):
            node = IPFSNode(ipfs_api="/ip4/127.0.0.1/tcp/5001")
            await node.setup()
        assert node.get_api() is None

    @pytest.mark.asyncio
    async def test_single_setup_in_flight(self):
        release = asyncio.Event()
        node = IPFSNode(ipfs_api="/ip4/127.0.0.1/tcp/5001")

        async def slow_setup():
            await release.wait()

        with patch.object(node, "_setup", slow_setup):
            first = node.setup()
            second = node.setup()
            assert first is second
            assert node.is_setting_up
            release.set()
            await first
        assert not node.is_setting_up

    @pytest.mark.asyncio
    async def test_api_address_from_repo_config(self, tmp_path):
        (tmp_path / "config").write_text(json.dumps({
            "Addresses": {"API": "/ip4/127.0.0.1/tcp/5002"},
        }))
        client = mock_client()
        with patch("ipfshttpclient.connect", return_value=client) as connect:
            node = IPFSNode(ipfs_path=tmp_path)
            await node.setup()

        assert connect.call_args.args[0] == "/ip4/127.0.0.1/tcp/5002"
        assert node.get_api() is not None

    def test_missing_repo_config(self, tmp_path):
        node = IPFSNode(ipfs_path=tmp_path / "missing")
        with pytest.raises(FileNotFoundError):
            node._resolve_api_addr()

    def test_repo_path_from_environment(self, tmp_path, monkeypatch):
        (tmp_path / "config").write_text(json.dumps({"Addresses": {}}))
        monkeypatch.setenv("IPFS_PATH", str(tmp_path))
        with pytest.raises(ValueError):
            IPFSNode()._resolve_api_addr()

    def test_invalidate_and_shutdown(self):
        client = mock_client()
        node = IPFSNode()
        node._api = IPFSApi(client)

        node.invalidate()
        assert node.get_api() is None

        node._api = IPFSApi(client)
        node.shutdown()
        assert node.get_api() is None
        client.close.assert_called_once()
