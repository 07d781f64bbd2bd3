"""
Mutable name resolution (DNSLink).
"""

from .dnslink import DNSLinkResolver

__all__ = ["DNSLinkResolver"]
