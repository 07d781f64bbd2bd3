"""
Resolution core: content keys, DAG descent, payload envelopes, content types
and the per-request lifecycle.
"""

from .content_key import ContentKey, LinkEntry, parse_target_url, is_multihash
from .content_type import ContentTypeSniffer
from .link_descender import LinkDescender, split_path, find_link
from .request_lifecycle import RequestLifecycle, RequestState, REQUEST_TIMEOUT_S
from .unixfs import Leaf, NodeKind, Tree, marshal, unmarshal

__all__ = [
    "ContentKey",
    "LinkEntry",
    "parse_target_url",
    "is_multihash",
    "ContentTypeSniffer",
    "LinkDescender",
    "split_path",
    "find_link",
    "RequestLifecycle",
    "RequestState",
    "REQUEST_TIMEOUT_S",
    "Leaf",
    "NodeKind",
    "Tree",
    "marshal",
    "unmarshal",
]
