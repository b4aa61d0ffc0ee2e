"""
Peer lookup for the viewer.

Hosts are announced by whatever discovery source the deployment has (the
static `viewer.peers` list in config.yml by default). The directory keeps
one entry per identifier and resolves addresses with a bounded wait.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import Iterable

from screen2screen.common.config import PeerConfig
from screen2screen.common.errors import PeerLookupError
from screen2screen.common.settings import settings
from screen2screen.common.types import PeerEndpoint

logger = logging.getLogger(__name__)

__all__ = ["PeerDirectory", "endpoint_parse", "endpoint_resolve"]


class PeerDirectory:
    """
    Known hosts, deduplicated by identifier.

    Discovery sources may report the same host repeatedly and in any order;
    the first report of an identifier wins.
    """

    def __init__(self) -> None:
        """Initialize an empty directory."""
        self._peers: dict[str, PeerEndpoint] = {}

    def peer_add(self, endpoint: PeerEndpoint) -> bool:
        """
        Record a discovered host.

        Args:
            endpoint:
                Reported host.

        Returns:
            `True` when the identifier was new, `False` for a duplicate.
        """
        if endpoint.identifier in self._peers:
            logger.debug("Ignoring duplicate peer %s", endpoint.identifier)
            return False
        self._peers[endpoint.identifier] = endpoint
        logger.info("Discovered %s at %s:%s", endpoint.name, endpoint.address, endpoint.port)
        return True

    def peers_add(self, endpoints: Iterable[PeerEndpoint]) -> int:
        """
        Record several hosts.

        Returns:
            Number of new identifiers.
        """
        return sum(1 for endpoint in endpoints if self.peer_add(endpoint))

    def peer_remove(self, identifier: str) -> None:
        """Forget a host that went away."""
        self._peers.pop(identifier, None)

    def peer_get(self, identifier: str) -> PeerEndpoint:
        """
        Look up a host by identifier or display name.

        Raises:
            PeerLookupError:
                Raised when no such host is known.
        """
        if identifier in self._peers:
            return self._peers[identifier]
        for endpoint in self._peers.values():
            if endpoint.name == identifier:
                return endpoint
        raise PeerLookupError(f"Unknown peer {identifier!r}")

    def peers_list(self) -> list[PeerEndpoint]:
        """Return known hosts in discovery order."""
        return list(self._peers.values())

    @classmethod
    def fromConfig_create(cls, peers: Iterable[PeerConfig]) -> PeerDirectory:
        """
        Build a directory from configured peers.

        Args:
            peers:
                `viewer.peers` entries.
        """
        directory = cls()
        directory.peers_add(
            PeerEndpoint(identifier=peer.id, name=peer.name, address=peer.address, port=peer.port)
            for peer in peers
        )
        return directory


def endpoint_parse(value: str, default_port: int = settings.DEFAULT_SIGNALING_PORT) -> PeerEndpoint:
    """
    Parse `HOST[:PORT]` into an endpoint.

    IPv6 literals are accepted bare (`fe80::1`) or bracketed, with an
    optional port (`[::1]:8080`).

    Args:
        value:
            Host with optional port.
        default_port:
            Port used when none is given.

    Raises:
        ValueError:
            Raised when the port is not an integer or a bracket is unbalanced.
    """
    port_text: str | None = None
    if value.startswith("["):
        host, bracket, rest = value[1:].partition("]")
        if not bracket or not host or (rest and not rest.startswith(":")):
            raise ValueError(f"Malformed bracketed address {value!r}")
        port_text = rest[1:] if rest else None
    elif value.count(":") > 1:
        host = value
    else:
        host, sep, tail = value.rpartition(":")
        if sep and host:
            port_text = tail
        else:
            host = value

    port = default_port
    if port_text is not None:
        try:
            port = int(port_text)
        except ValueError:
            raise ValueError(f"Invalid port in {value!r}") from None
    host_part = f"[{host}]" if ":" in host else host
    return PeerEndpoint(identifier=f"{host_part}:{port}", name=host, address=host, port=port)


async def endpoint_resolve(
    endpoint: PeerEndpoint, timeout: float = settings.PEER_RESOLVE_TIMEOUT_SEC
) -> PeerEndpoint:
    """
    Resolve an endpoint's address to a numeric IP within a bounded wait.

    Args:
        endpoint:
            Host to resolve.
        timeout:
            Seconds before giving up.

    Returns:
        Endpoint with a numeric address.

    Raises:
        PeerLookupError:
            Raised when resolution fails or times out.
    """
    loop = asyncio.get_running_loop()
    try:
        infos = await asyncio.wait_for(
            loop.getaddrinfo(endpoint.address, endpoint.port, type=socket.SOCK_STREAM),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        raise PeerLookupError(
            f"Resolving {endpoint.address} timed out after {timeout:.1f}s"
        ) from None
    except OSError as exc:
        raise PeerLookupError(f"Resolving {endpoint.address} failed: {exc}") from exc
    if not infos:
        raise PeerLookupError(f"No addresses for {endpoint.address}")

    address = infos[0][4][0]
    return PeerEndpoint(
        identifier=endpoint.identifier, name=endpoint.name, address=address, port=endpoint.port
    )
