"""Unit tests for peer directory and endpoint resolution"""

import asyncio

import pytest

from screen2screen.common.config import PeerConfig
from screen2screen.common.errors import PeerLookupError
from screen2screen.common.types import PeerEndpoint
from screen2screen.discovery.peers import PeerDirectory, endpoint_parse, endpoint_resolve


class TestPeerDirectory:
    """Test discovered host bookkeeping"""

    def test_duplicates_ignored(self):
        directory = PeerDirectory()
        first = PeerEndpoint("desk", "Desk", "10.0.0.2", 8080)
        assert directory.peer_add(first)
        assert not directory.peer_add(PeerEndpoint("desk", "Desk", "10.0.0.3", 8080))
        assert directory.peers_list() == [first]

    def test_lookup_by_name(self):
        directory = PeerDirectory()
        endpoint = PeerEndpoint("desk", "Desk workstation", "10.0.0.2", 8080)
        directory.peer_add(endpoint)
        assert directory.peer_get("Desk workstation") == endpoint
        assert directory.peer_get("desk") == endpoint

    def test_unknown_peer_raises(self):
        with pytest.raises(PeerLookupError):
            PeerDirectory().peer_get("nowhere")

    def test_remove(self):
        directory = PeerDirectory()
        directory.peer_add(PeerEndpoint("desk", "Desk", "10.0.0.2", 8080))
        directory.peer_remove("desk")
        directory.peer_remove("desk")
        assert directory.peers_list() == []

    def test_from_config(self):
        directory = PeerDirectory.fromConfig_create(
            [PeerConfig(id="a", name="A", address="h", port=9000)]
        )
        assert directory.peer_get("a") == PeerEndpoint("a", "A", "h", 9000)


class TestEndpointParse:
    """Test HOST[:PORT] parsing"""

    def test_host_and_port(self):
        assert endpoint_parse("10.0.0.2:9000") == PeerEndpoint(
            "10.0.0.2:9000", "10.0.0.2", "10.0.0.2", 9000
        )

    def test_default_port(self):
        assert endpoint_parse("desk.local").port == 8080
        assert endpoint_parse("desk.local", default_port=7000).port == 7000

    def test_bad_port(self):
        with pytest.raises(ValueError):
            endpoint_parse("desk:http")

    def test_bare_ipv6_uses_default_port(self):
        endpoint = endpoint_parse("fe80::1")
        assert endpoint.address == "fe80::1"
        assert endpoint.port == 8080
        assert endpoint.identifier == "[fe80::1]:8080"

    def test_bracketed_ipv6_with_port(self):
        assert endpoint_parse("[::1]:9000") == PeerEndpoint("[::1]:9000", "::1", "::1", 9000)

    def test_bracketed_ipv6_without_port(self):
        endpoint = endpoint_parse("[::1]")
        assert endpoint.address == "::1"
        assert endpoint.port == 8080

    @pytest.mark.parametrize("value", ["[::1", "[::1]9000", "[]:9000", "[::1]:http"])
    def test_malformed_ipv6(self, value):
        with pytest.raises(ValueError):
            endpoint_parse(value)


class TestEndpointResolve:
    """Test bounded resolution"""

    def test_numeric_address(self):
        endpoint = PeerEndpoint("local", "local", "127.0.0.1", 8080)
        resolved = asyncio.run(endpoint_resolve(endpoint, timeout=5.0))
        assert resolved.address == "127.0.0.1"
        assert resolved.identifier == "local"

    def test_timeout_is_lookup_error(self, monkeypatch):
        async def runner():
            loop = asyncio.get_running_loop()

            async def never(*args, **kwargs):
                await asyncio.sleep(10)

            monkeypatch.setattr(loop, "getaddrinfo", never)
            await endpoint_resolve(PeerEndpoint("x", "x", "x", 1), timeout=0.05)

        with pytest.raises(PeerLookupError, match="timed out"):
            asyncio.run(runner())

    def test_resolution_failure_is_lookup_error(self, monkeypatch):
        async def runner():
            loop = asyncio.get_running_loop()

            async def fail(*args, **kwargs):
                raise OSError("name not known")

            monkeypatch.setattr(loop, "getaddrinfo", fail)
            await endpoint_resolve(PeerEndpoint("x", "x", "x", 1))

        with pytest.raises(PeerLookupError):
            asyncio.run(runner())
