"""
Storage backends for the gateway.

Only the local IPFS daemon is supported.
"""

from .ipfs_backend import IPFSApi, IPFSNode

__all__ = ["IPFSApi", "IPFSNode"]
