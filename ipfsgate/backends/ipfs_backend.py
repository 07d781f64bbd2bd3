"""
IPFS daemon backend.

Wraps the local daemon's HTTP API (via ``ipfshttpclient``) behind the two
read calls the gateway needs, and keeps the process-wide API handle.
"""

from typing import Any, Dict, List, Optional
from pathlib import Path
import asyncio
import json
import logging
import os

import ipfshttpclient
from ipfshttpclient import exceptions as ipfs_exceptions

from ipfsgate.core.content_key import LinkEntry
from ipfsgate.errors import ConnectionLost, FetchFailed, NotReady

logger = logging.getLogger(__name__)

DEFAULT_IPFS_PATH = Path.home() / ".ipfs"


class IPFSApi:
    """
    Async facade over a connected ``ipfshttpclient`` client.

    The client is blocking, so each call runs in a worker thread.
    """

    def __init__(self, client):
        self.client = client

    async def fetch_links(self, key: str) -> List[LinkEntry]:
        """
        Fetch the link table of a DAG node.

        Args:
            key: Content hash or ``/ipfs/...`` / ``/ipns/...`` path

        Returns:
            Link entries in the order the daemon returned them

        Raises:
            ConnectionLost: The daemon is not reachable any more
            FetchFailed: Any other API failure
        """
        result = await self._call(self.client.object.links, key)
        return [LinkEntry.from_api(link) for link in (result.get("Links") or [])]

    async def fetch_payload(self, key: str) -> bytes:
        """
        Fetch the raw payload (UnixFS envelope) of a DAG node.

        Raises:
            ConnectionLost: The daemon is not reachable any more
            FetchFailed: Any other API failure
        """
        return await self._call(self.client.object.data, key)

    def close(self):
        try:
            self.client.close()
        except ipfs_exceptions.Error as e:
            logger.debug(f"Error closing IPFS client: {e}")

    async def _call(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except ipfs_exceptions.ConnectionError as e:
            raise ConnectionLost(f"IPFS daemon unreachable: {e}") from e
        except ipfs_exceptions.Error as e:
            raise FetchFailed(f"IPFS API call failed: {e}") from e


class IPFSNode:
    """
    Holder of the process-wide IPFS API handle.

    The handle is replaced wholesale, never mutated: setup swaps a freshly
    connected ``IPFSApi`` in, invalidation swaps ``None`` in. Readers that
    grabbed the old handle simply see their next call fail.
    """

    def __init__(
        self,
        ipfs_api: Optional[str] = None,
        ipfs_path: Optional[Path] = None,
        timeout: int = 60,
    ):
        """
        Initialize handle holder.

        Args:
            ipfs_api: Daemon API multiaddr; read from the repo config when None
            ipfs_path: IPFS repo directory (default: $IPFS_PATH or ~/.ipfs)
            timeout: Timeout for individual API calls (seconds)
        """
        self.ipfs_api = ipfs_api
        self.ipfs_path = ipfs_path
        self.timeout = timeout
        self._api: Optional[IPFSApi] = None
        self._setup_task: Optional[asyncio.Task] = None

    def get_api(self) -> Optional[IPFSApi]:
        return self._api

    def require_api(self) -> IPFSApi:
        api = self._api
        if api is None:
            logger.warning("IPFS daemon has not been set up yet")
            raise NotReady("IPFS daemon not available")
        return api

    @property
    def is_setting_up(self) -> bool:
        return self._setup_task is not None and not self._setup_task.done()

    def setup(self) -> asyncio.Task:
        """
        Start connecting to the daemon in the background.

        Only one attempt runs at a time; calling again while an attempt is in
        flight returns the running task. Must be called from the event loop.
        """
        if self.is_setting_up:
            return self._setup_task
        self._setup_task = asyncio.get_running_loop().create_task(self._setup())
        return self._setup_task

    async def _setup(self):
        try:
            api = await asyncio.to_thread(self._connect)
        except Exception as e:
            # keep running without IPFS; the next request retries setup
            logger.error(f"Failed to setup IPFS: {e}")
            return
        self._api = api

    def _connect(self) -> IPFSApi:
        addr = self._resolve_api_addr()
        logger.debug(f"Connecting to daemon at {addr}")
        try:
            client = ipfshttpclient.connect(addr, timeout=self.timeout)
            version = client.version()
        except ipfs_exceptions.Error as e:
            logger.error(
                "Make sure the IPFS daemon is running: ipfs daemon\n"
                "Install IPFS: https://docs.ipfs.tech/install/"
            )
            raise ConnectionError(f"IPFS connection failed: {e}") from e
        logger.info(f"Using IPFS version {version.get('Version')}")
        return IPFSApi(client)

    def _resolve_api_addr(self) -> str:
        if self.ipfs_api:
            return self.ipfs_api
        config = self._read_repo_config()
        try:
            return config["Addresses"]["API"]
        except KeyError as e:
            raise ValueError(f"IPFS config has no Addresses.API entry: {e}") from e

    def _read_repo_config(self) -> Dict[str, Any]:
        repo = self.ipfs_path or Path(os.getenv("IPFS_PATH", DEFAULT_IPFS_PATH))
        config_file = Path(repo) / "config"
        if not config_file.exists():
            raise FileNotFoundError(
                f"IPFS daemon not initialized at {repo}. ipfs: protocol disabled."
            )
        return json.loads(config_file.read_text())

    def invalidate(self):
        """Drop the handle after the daemon vanished."""
        if self._api is not None:
            logger.warning("IPFS daemon connection lost, dropping API handle")
        self._api = None

    def shutdown(self):
        api, self._api = self._api, None
        if api is not None:
            api.close()
        if self.is_setting_up:
            self._setup_task.cancel()
