"""
Media negotiation collaborator interface.

The orchestrator only depends on these shapes; `session/webrtc.py` provides
an aiortc implementation and tests provide recording fakes.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

__all__ = ["DescriptionKind", "MediaNegotiator", "NegotiatorListener"]


class DescriptionKind(Enum):
    """Type of a session description handed to the negotiator"""

    OFFER = "offer"
    ANSWER = "answer"


class NegotiatorListener(Protocol):
    """Receiver of events the negotiator raises on its own."""

    def localCandidate_handle(
        self, candidate: str, sdp_mline_index: int, sdp_mid: str | None
    ) -> None:
        """A local connectivity candidate was gathered."""

    def mediaConnected_handle(self) -> None:
        """The peer-to-peer session became live."""

    def mediaDisconnected_handle(self) -> None:
        """The peer-to-peer session was lost."""


class MediaNegotiator(Protocol):
    """
    Peer-to-peer session negotiation.

    Descriptions and candidates are opaque strings. Implementations must make
    `session_close()` idempotent and must cope with a candidate arriving
    before the matching remote description.
    """

    def listener_set(self, listener: NegotiatorListener) -> None:
        """Register the single listener."""

    async def offer_generate(self) -> str:
        """Create a fresh session and return its local offer."""

    async def remoteDescription_apply(self, sdp: str, kind: DescriptionKind) -> None:
        """Apply the peer's offer or answer."""

    async def answer_generate(self) -> str:
        """Return a local answer; only valid after a remote offer was applied."""

    async def remoteCandidate_add(
        self, candidate: str, sdp_mline_index: int, sdp_mid: str | None
    ) -> None:
        """Add one of the peer's connectivity candidates."""

    async def session_close(self) -> None:
        """Tear the session down."""
