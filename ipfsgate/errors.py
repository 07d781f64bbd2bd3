"""
Gateway error taxonomy.

Resolution components raise these; the gateway handler is the only place
that turns them into user-visible HTTP statuses.
"""

from typing import List, Optional


class GatewayError(Exception):
    """Base class for all gateway errors."""


class NotReady(GatewayError):
    """No backing IPFS API handle is available."""


class NotFound(GatewayError):
    """
    A name or path segment could not be found.

    When raised by the link descender, ``links`` holds the link table of the
    level where the miss happened so a directory listing can be rendered.
    """

    def __init__(self, message: str = "not found", links: Optional[List] = None):
        super().__init__(message)
        self.links = links


class FetchFailed(GatewayError):
    """Transport failure talking to the backing IPFS API."""


class ConnectionLost(FetchFailed):
    """The backing daemon went away; the cached API handle is stale."""


class LookupFailed(GatewayError):
    """DNS failure other than "no such name"."""


class InvalidPayload(GatewayError):
    """The object payload is not a valid UnixFS envelope."""
