"""
Gateway request protocol.

Turns one ``(method, query)`` pair from the local listener into exactly one
``GatewayResponse``: authenticate, parse the embedded ``ipfs:`` URL, resolve
the key, walk the DAG, and serve the leaf, a redirect, a listing or an error
page. This is the only place where gateway errors become HTTP statuses.
"""

import secrets
from typing import Mapping, Optional
from urllib.parse import quote

from loguru import logger

from ipfsgate.core.content_key import ContentKey, parse_target_url
from ipfsgate.core.content_type import ContentTypeSniffer
from ipfsgate.core.link_descender import LinkDescender
from ipfsgate.core.request_lifecycle import REQUEST_TIMEOUT_S, RequestLifecycle
from ipfsgate.core.unixfs import Tree, unmarshal
from ipfsgate.errors import (
    ConnectionLost,
    FetchFailed,
    InvalidPayload,
    LookupFailed,
    NotFound,
    NotReady,
)
from ipfsgate.gateway.responses import (
    DAEMON_NOT_FOUND,
    GatewayResponse,
    content_response,
    error_response,
    listing_response,
    redirect_response,
)
from ipfsgate.naming.dnslink import DNSLinkResolver


class GatewayServer:
    """
    Serves ``ipfs:`` URLs out of the backing IPFS node.

    Requests are only honoured when they carry the process nonce; anything
    else on the local port is refused.
    """

    def __init__(
        self,
        node,
        nonce: str,
        resolver: Optional[DNSLinkResolver] = None,
        sniffer: Optional[ContentTypeSniffer] = None,
        scheme: str = "ipfs",
        request_timeout: float = REQUEST_TIMEOUT_S,
    ):
        """
        Initialize gateway.

        Args:
            node: Backing handle holder (``IPFSNode`` or compatible)
            nonce: Process-wide request nonce
            resolver: Mutable-name resolver
            sniffer: Content type classifier
            scheme: URL scheme served by this gateway
            request_timeout: Deadline for resolving one request (seconds)
        """
        self.node = node
        self.nonce = nonce
        self.resolver = resolver or DNSLinkResolver()
        self.sniffer = sniffer or ContentTypeSniffer()
        self.descender = LinkDescender(node)
        self.scheme = scheme
        self.request_timeout = request_timeout

    def new_lifecycle(self) -> RequestLifecycle:
        return RequestLifecycle(
            timeout=self.request_timeout,
            timeout_response=lambda: error_response(408, "Timed out"),
        )

    async def handle(
        self,
        method: str,
        query: Mapping[str, str],
        lifecycle: Optional[RequestLifecycle] = None,
    ) -> Optional[GatewayResponse]:
        """
        Handle one gateway request.

        Args:
            method: HTTP method of the original request
            query: Query parameters of the gateway request (``url``, ``nonce``)
            lifecycle: Request lifecycle; a fresh one is created when None

        Returns:
            The response to write, or None if the client aborted
        """
        # only this process may use the server
        if not self._check_nonce(query.get("nonce")):
            return error_response(403, "Forbidden")

        target = parse_target_url(query.get("url"), self.scheme)
        if target is None:
            return error_response(404, "Invalid URL")
        folder_key, req_path = target

        if method != "GET":
            return error_response(405, "Method Not Supported")

        # redirect if no path, otherwise sub-resource requests will fail
        if req_path == "":
            return self._redirect_to_folder(folder_key, req_path)

        if self.node.get_api() is None:
            self.node.setup()
            return error_response(500, DAEMON_NOT_FOUND)

        if lifecycle is None:
            lifecycle = self.new_lifecycle()
        logger.debug("Attempting to list folder {}", folder_key)
        return await lifecycle.run(self._serve(folder_key, req_path))

    def _check_nonce(self, nonce: Optional[str]) -> bool:
        if not nonce:
            return False
        return secrets.compare_digest(nonce.encode("utf-8"), self.nonce.encode("utf-8"))

    def _redirect_to_folder(self, folder_key: ContentKey, req_path: str) -> GatewayResponse:
        # req_path is decoded; re-quote so "#" and "?" in names stay in the path
        return redirect_response(f"{self.scheme}:{folder_key.path}{quote(req_path, safe='/')}/")

    async def _serve(self, folder_key: ContentKey, req_path: str) -> GatewayResponse:
        try:
            return await self._fetch(folder_key, req_path)

        except NotFound as e:
            # if we're looking for a directory, just give a file listing
            if e.links is not None and req_path.endswith("/"):
                return listing_response(req_path, e.links)
            logger.debug("Not found: {}", e)
            return error_response(404, "File Not Found")

        except NotReady:
            self.node.setup()
            return error_response(500, DAEMON_NOT_FOUND)

        except ConnectionLost as e:
            logger.warning("IPFS daemon went away: {}", e)
            self.node.invalidate()
            return error_response(500, "Failed")

        except (FetchFailed, LookupFailed, InvalidPayload) as e:
            logger.debug("Lookup failed for {}{}: {}", folder_key, req_path, e)
            return error_response(500, "Failed")

    async def _fetch(self, folder_key: ContentKey, req_path: str) -> GatewayResponse:
        root = folder_key
        if folder_key.needs_resolution:
            root = await self.resolver.resolve(folder_key.identifier)

        link = await self.descender.descend(root, req_path)
        logger.debug("Link found: {} {}", req_path or link.name, link)

        envelope = await self.node.require_api().fetch_payload(link.target)
        node = unmarshal(envelope)

        # directory? redirect with a '/' appended
        if isinstance(node, Tree):
            return self._redirect_to_folder(folder_key, req_path)

        mime_type = self.sniffer.classify(node.data, link.name)
        return content_response(node.data, mime_type)
