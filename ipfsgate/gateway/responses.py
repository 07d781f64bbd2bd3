"""
Framework-independent gateway responses.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Union

from ipfsgate.core.content_key import LinkEntry
from ipfsgate.gateway.pages import directory_listing, error_page, redirect_document

# content security policies
CSP = "default-src 'self' ipfs:; img-src 'self' data:; plugin-types 'none';"
ERROR_CSP = "default-src 'unsafe-inline';"

DAEMON_NOT_FOUND = "IPFS Daemon not found. Start the daemon and try again."


@dataclass
class GatewayResponse:
    """One HTTP-shaped response: status, status text, headers, body."""
    status: int
    status_text: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "")


def _encode(body: Union[str, bytes]) -> bytes:
    return body.encode("utf-8") if isinstance(body, str) else body


def error_response(code: int, status: str) -> GatewayResponse:
    return GatewayResponse(
        status=code,
        status_text=status,
        headers={"Content-Type": "text/html", "Content-Security-Policy": ERROR_CSP},
        body=_encode(error_page(code, status)),
    )


def html_response(body: str) -> GatewayResponse:
    return GatewayResponse(
        status=200,
        status_text="OK",
        headers={"Content-Type": "text/html", "Content-Security-Policy": CSP},
        body=_encode(body),
    )


def redirect_response(url: str) -> GatewayResponse:
    return html_response(redirect_document(url))


def listing_response(req_path: str, links: Iterable[LinkEntry]) -> GatewayResponse:
    return html_response(directory_listing(req_path, links))


def content_response(data: bytes, mime_type: str) -> GatewayResponse:
    return GatewayResponse(
        status=200,
        status_text="OK",
        headers={"Content-Type": mime_type, "Content-Security-Policy": CSP},
        body=data,
    )
