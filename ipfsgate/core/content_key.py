"""
Content keys and link entries.

A content key names a DAG node either directly by its multihash (``/ipfs/``)
or indirectly through a mutable name (``/ipns/``) that has to be resolved
first. Keys are rendered as paths because that is what the IPFS API accepts.
"""

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple
from urllib.parse import unquote

import base58

IPFS_NAMESPACE = "ipfs"
IPNS_NAMESPACE = "ipns"

# Identifier grammar: base58/base32/hex hashes and DNS names all fit
# alphanumerics plus '.' and '-'.
IDENTIFIER_PATTERN = r"[0-9A-Za-z][0-9A-Za-z.\-]*"

# Multihash function codes (single-byte varints) we accept as content hashes
MULTIHASH_CODES = {
    0x11,  # sha1
    0x12,  # sha2-256
    0x13,  # sha2-512
    0x14,  # sha3-512
    0x15,  # sha3-384
    0x16,  # sha3-256
    0x17,  # sha3-224
}


@dataclass(frozen=True)
class ContentKey:
    """Identifier of a DAG node, possibly behind a mutable name."""
    namespace: str
    identifier: str

    @property
    def path(self) -> str:
        return f"/{self.namespace}/{self.identifier}"

    @property
    def is_mutable(self) -> bool:
        return self.namespace == IPNS_NAMESPACE

    @property
    def needs_resolution(self) -> bool:
        """True for IPNS names that are not themselves a multihash."""
        return self.is_mutable and not is_multihash(self.identifier)

    @classmethod
    def from_path(cls, path: str) -> "ContentKey":
        """
        Parse a ``/<namespace>/<identifier>[/sub/path]`` string.

        Any sub-path stays part of the identifier so that the key still
        renders back to the full path the daemon should resolve.
        """
        parts = path.lstrip("/").split("/", 1)
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ValueError(f"Not a content path: {path!r}")
        return cls(namespace=parts[0], identifier=parts[1].rstrip("/"))

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True)
class LinkEntry:
    """One named child reference inside a DAG node's link table."""
    name: str
    target: str
    size: Optional[int] = None

    @classmethod
    def from_api(cls, link: Mapping[str, Any]) -> "LinkEntry":
        """Build from a ``{"Name", "Hash", "Size"}`` record of the IPFS API."""
        size = link.get("Size")
        return cls(
            name=link.get("Name") or "",
            target=str(link["Hash"]),
            size=int(size) if size is not None else None,
        )


def is_multihash(value: str) -> bool:
    """
    Check whether a string is a base58 encoded multihash.

    Args:
        value: Candidate identifier

    Returns:
        True if it decodes to ``<code><length><digest>`` with a known code
    """
    try:
        raw = base58.b58decode(value)
    except ValueError:
        return False
    if len(raw) < 3:
        return False
    code, length = raw[0], raw[1]
    return code in MULTIHASH_CODES and length == len(raw) - 2


def target_url_pattern(scheme: str) -> "re.Pattern[str]":
    return re.compile(rf"^{re.escape(scheme)}:(/([a-z]+)/({IDENTIFIER_PATTERN}))")


def parse_target_url(url: Optional[str], scheme: str = "ipfs") -> Optional[Tuple[ContentKey, str]]:
    """
    Split an embedded ``<scheme>:/<namespace>/<identifier><path>`` URL.

    Args:
        url: The target URL taken from the gateway query string
        scheme: Expected URL scheme

    Returns:
        Tuple of (folder key, request path) or None if the URL does not match.
        The request path has its fragment and query removed and is
        percent-decoded; it is empty for a bare key.
    """
    if not url:
        return None
    match = target_url_pattern(scheme).match(url)
    if match is None:
        return None

    folder_key = ContentKey(namespace=match.group(2), identifier=match.group(3))
    req_path = url[match.end():]
    for marker in ("#", "?"):
        if marker in req_path:
            req_path = req_path[:req_path.index(marker)]
    return folder_key, unquote(req_path)
