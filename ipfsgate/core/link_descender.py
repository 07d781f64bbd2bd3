"""
DAG path descent.

Walks a Merkle DAG one path segment at a time: fetch the link table of the
node under the cursor, pick the entry named by the next segment, move the
cursor to its target, repeat until the last segment is consumed.
"""

from collections import deque
from typing import Iterable, List, Optional, Union
import logging

from ipfsgate.core.content_key import ContentKey, LinkEntry
from ipfsgate.errors import NotFound

logger = logging.getLogger(__name__)

DEFAULT_INDEX = "index.html"


def split_path(path: Optional[str]) -> List[str]:
    """
    Split a request path into segments.

    A single leading '/' is dropped. An empty path yields one empty segment,
    which ``find_link`` maps to the default index.
    """
    if not path:
        path = ""
    if path.startswith("/"):
        path = path[1:]
    return path.split("/")


def find_link(links: Iterable[LinkEntry], segment: Optional[str]) -> Optional[LinkEntry]:
    """Find the entry whose name equals the segment exactly."""
    if not segment or segment == "/":
        segment = DEFAULT_INDEX
    if segment.startswith("/"):
        segment = segment[1:]

    for link in links:
        if link.name == segment:
            return link
    return None


class LinkDescender:
    """
    Resolves paths below a root key against the backing IPFS API.

    The descender holds the node handle holder rather than an API client, so
    every level re-reads the current handle; once the handle is invalidated,
    walks in flight fail on their next fetch.
    """

    def __init__(self, node):
        """
        Initialize descender.

        Args:
            node: Backing handle holder exposing ``require_api()``
        """
        self.node = node

    async def descend(self, root: Union[ContentKey, str], path: Union[str, List[str]]) -> LinkEntry:
        """
        Resolve a path below a root key.

        Args:
            root: Root content key (or bare hash / API path)
            path: Slash separated path, or pre-split segments

        Returns:
            The link entry named by the final segment

        Raises:
            NotFound: A segment is missing; carries that level's link table
            NotReady: The backing API handle is gone
            FetchFailed: Transport failure (``ConnectionLost`` if the daemon vanished)
        """
        cursor = root.path if isinstance(root, ContentKey) else root
        segments = deque(split_path(path) if isinstance(path, str) else path or [""])

        logger.debug(f"Looking up {list(segments)} in {cursor}")
        while True:
            links = await self.node.require_api().fetch_links(cursor)
            logger.debug(f"Folder listing for {cursor}: {len(links)} links")

            segment = segments.popleft()
            link = find_link(links, segment)
            if link is None:
                raise NotFound(f"No link {segment or DEFAULT_INDEX!r} in {cursor}", links=links)

            if not segments:
                return link

            cursor = link.target
