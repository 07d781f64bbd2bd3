"""
Gateway request handling and ``ipfs:`` protocol registration.
"""

from .handler import GatewayServer
from .responses import GatewayResponse

__all__ = ["GatewayServer", "GatewayResponse"]
