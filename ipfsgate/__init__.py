"""
ipfsgate - IPFS content over a local, nonce-gated gateway.

Serves ``ipfs:/ipfs/<hash>/<path>`` and ``ipfs:/ipns/<name>/<path>`` URLs out
of a local IPFS daemon: DNSLink names are resolved, the DAG is walked one
path segment at a time, and leaves are served with a sniffed content type.

Quick Start:
    >>> import ipfsgate
    >>> from ipfsgate.gateway.protocol import IPFSProtocol
    >>>
    >>> ipfsgate.configure(log_level="DEBUG")
    >>> protocol = IPFSProtocol()
    >>> state = await protocol.register()
    >>> protocol.rewrite_request("GET", "ipfs:/ipns/example.org/")
"""

from typing import Optional

from ipfsgate.config import ServerConfig, configure_logging

__version__ = "0.1.0"


def configure(log_level: Optional[str] = None):
    """Apply runtime options; only the log verbosity is tunable."""
    if log_level:
        configure_logging(log_level)


__all__ = ["configure", "ServerConfig", "__version__"]
