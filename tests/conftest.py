"""
Shared fixtures for gateway tests.
"""

import pytest

from ipfsgate.gateway.handler import GatewayServer
from ipfsgate.naming.dnslink import DNSLinkResolver

from helpers_gateway import NONCE, FakeIPFSApi, FakeNode, build_site


@pytest.fixture
def api():
    links, payloads = build_site()
    return FakeIPFSApi(links, payloads)


@pytest.fixture
def node(api):
    return FakeNode(api)


@pytest.fixture
def dns_records():
    """Name -> TXT records served by the fake resolver."""
    return {"example.org": ["v=spf1 -all", "dnslink=/ipfs/QmRoot"]}


@pytest.fixture
def resolver(dns_records):
    async def lookup(name):
        return dns_records.get(name, [])

    return DNSLinkResolver(lookup=lookup)


@pytest.fixture
def gateway(node, resolver):
    return GatewayServer(node, nonce=NONCE, resolver=resolver)
