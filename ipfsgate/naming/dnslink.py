"""
DNSLink resolution for mutable names.

Resolves ``/ipns/<domain>`` keys to content paths by reading the domain's
TXT records, e.g.:

    example.org.  IN  TXT  "dnslink=/ipfs/QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"
"""

import logging
import re
from typing import Awaitable, Callable, List, Optional

import dns.asyncresolver
import dns.exception
import dns.resolver

from ipfsgate.core.content_key import ContentKey
from ipfsgate.errors import LookupFailed, NotFound

logger = logging.getLogger(__name__)

DNSLINK_PATTERN = re.compile(r"^dnslink=(/ip[nf]s/.*)")

TxtLookup = Callable[[str], Awaitable[List[str]]]


class DNSLinkResolver:
    """
    Resolve mutable names through DNS TXT records.

    The first record matching ``dnslink=/ipfs/...`` or ``dnslink=/ipns/...``
    wins, in the order the resolver returned them. No retries: the caller
    decides whether to retry the whole request.
    """

    def __init__(self, lookup: Optional[TxtLookup] = None, dns_timeout: float = 10):
        """
        Initialize resolver.

        Args:
            lookup: TXT lookup coroutine (default: dnspython async resolver)
            dns_timeout: Timeout for DNS queries (seconds)
        """
        self.dns_timeout = dns_timeout
        self.lookup = lookup or self.lookup_text_records

    async def lookup_text_records(self, name: str) -> List[str]:
        """
        Query TXT records for a name.

        Returns:
            One string per record (multi-string records are concatenated)

        Raises:
            NotFound: The name does not exist or has no TXT records
            LookupFailed: Timeout or any other DNS failure
        """
        try:
            resolver = dns.asyncresolver.Resolver()
            resolver.timeout = self.dns_timeout
            resolver.lifetime = self.dns_timeout
            answers = await resolver.resolve(name, "TXT")
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer) as e:
            raise NotFound(f"No TXT records for {name}") from e
        except dns.exception.Timeout as e:
            raise LookupFailed(f"DNS query timeout for {name}") from e
        except dns.exception.DNSException as e:
            raise LookupFailed(f"DNS error for {name}: {e}") from e

        return [b"".join(rdata.strings).decode("utf-8", "replace") for rdata in answers]

    async def resolve(self, name: str) -> ContentKey:
        """
        Resolve a mutable name to a content key.

        Args:
            name: Name after the ``/ipns/`` prefix; a trailing '/' is ignored

        Returns:
            The content key the first DNSLink record points at

        Raises:
            NotFound: No such name, or no record matches the DNSLink pattern
            LookupFailed: Any other resolution failure
        """
        if name.endswith("/"):
            name = name[:-1]

        logger.debug(f"DNS TXT lookup for name: {name}")
        records = await self.lookup(name)
        logger.debug(f"DNS TXT results for {name}: {records}")

        for record in records:
            match = DNSLINK_PATTERN.match(record)
            if not match:
                continue
            try:
                key = ContentKey.from_path(match.group(1))
            except ValueError:
                logger.debug(f"Skipping malformed dnslink record: {record}")
                continue
            logger.debug(f"DNS resolved {name} to {key}")
            return key

        raise NotFound(f"No dnslink record for {name}")
