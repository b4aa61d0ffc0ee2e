"""
aiortc implementation of the media negotiator.

One `RTCPeerConnection` per signaling session. The offering side (viewer)
creates the `input` data channel before generating its offer so the offer
carries an application section; the answering side (host) picks the channel
up from the `datachannel` event.

aiortc gathers candidates while setting the local description and embeds them
in the SDP, so no local candidates are trickled. Remote trickled candidates
are still accepted.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Union

from aiortc import RTCDataChannel, RTCPeerConnection, RTCSessionDescription
from aiortc.sdp import candidate_from_sdp

from screen2screen.common.settings import settings
from screen2screen.common.types import SessionRole
from screen2screen.session.negotiator import DescriptionKind, NegotiatorListener

logger = logging.getLogger(__name__)

__all__ = ["AiortcNegotiator"]

DataCallback = Callable[[Union[str, bytes]], None]


class AiortcNegotiator:
    """
    Media negotiator backed by aiortc.

    Besides the negotiation surface it exposes the data channel: inbound
    messages go to `message_callback`, outbound ones through `data_send`.
    """

    def __init__(
        self,
        role: SessionRole,
        message_callback: Optional[DataCallback] = None,
        channel_label: str = settings.DATA_CHANNEL_LABEL,
    ) -> None:
        """
        Initialize negotiator.

        Args:
            role:
                CLIENT creates the data channel and offers; SERVER answers.
            message_callback:
                Receives every data channel message.
            channel_label:
                Label of the data channel.
        """
        self.role: SessionRole = role
        self.message_callback: Optional[DataCallback] = message_callback
        self.channel_label: str = channel_label
        self._listener: Optional[NegotiatorListener] = None
        self._pc: Optional[RTCPeerConnection] = None
        self._channel: Optional[RTCDataChannel] = None
        self._media_connected: bool = False

    def listener_set(self, listener: NegotiatorListener) -> None:
        self._listener = listener

    def isChannelOpen(self) -> bool:
        """Check whether `data_send` will deliver."""
        return self._channel is not None and self._channel.readyState == "open"

    def data_send(self, payload: Union[str, bytes]) -> bool:
        """
        Send one data channel message.

        Args:
            payload:
                Text or binary message.

        Returns:
            `True` when handed to the channel, `False` when it is not open.
        """
        if not self.isChannelOpen():
            return False
        self._channel.send(payload)
        return True

    async def offer_generate(self) -> str:
        """
        Create a fresh peer connection and return its offer.

        Raises:
            RuntimeError:
                Raised for the answering role.
        """
        if self.role is not SessionRole.CLIENT:
            raise RuntimeError("Only the offering side generates offers")
        await self.session_close()
        pc = self._peerConnection_create()
        self._channel_bind(pc.createDataChannel(self.channel_label))

        offer = await pc.createOffer()
        await pc.setLocalDescription(offer)
        logger.debug("Generated offer (%d bytes)", len(pc.localDescription.sdp))
        return pc.localDescription.sdp

    async def remoteDescription_apply(self, sdp: str, kind: DescriptionKind) -> None:
        """
        Apply the peer's description.

        An offer starts a fresh peer connection; an answer completes the
        current one.

        Raises:
            RuntimeError:
                Raised when an answer arrives without a pending offer.
        """
        if kind is DescriptionKind.OFFER:
            await self.session_close()
            self._peerConnection_create()
        elif self._pc is None:
            raise RuntimeError("Answer without a pending offer")

        await self._pc.setRemoteDescription(RTCSessionDescription(sdp=sdp, type=kind.value))
        logger.debug("Applied remote %s", kind.value)

    async def answer_generate(self) -> str:
        """
        Return the answer to the applied offer.

        Raises:
            RuntimeError:
                Raised when no offer was applied.
        """
        if self._pc is None or self._pc.remoteDescription is None:
            raise RuntimeError("No remote offer to answer")
        answer = await self._pc.createAnswer()
        await self._pc.setLocalDescription(answer)
        logger.debug("Generated answer (%d bytes)", len(self._pc.localDescription.sdp))
        return self._pc.localDescription.sdp

    async def remoteCandidate_add(
        self, candidate: str, sdp_mline_index: int, sdp_mid: str | None
    ) -> None:
        """
        Add one trickled candidate.

        An empty candidate string marks end of candidates and is ignored.
        """
        if self._pc is None:
            raise RuntimeError("No peer connection for remote candidate")
        line = candidate.strip()
        if line.startswith("a="):
            line = line[2:]
        if line.startswith("candidate:"):
            line = line[len("candidate:"):]
        if not line:
            return
        ice_candidate = candidate_from_sdp(line)
        ice_candidate.sdpMid = sdp_mid
        ice_candidate.sdpMLineIndex = sdp_mline_index
        await self._pc.addIceCandidate(ice_candidate)

    async def session_close(self) -> None:
        """Close the peer connection. Idempotent."""
        pc, self._pc = self._pc, None
        self._channel = None
        if pc is None:
            return
        await pc.close()
        self._mediaDisconnected_report()
        logger.info("Media session closed")

    def _peerConnection_create(self) -> RTCPeerConnection:
        pc = RTCPeerConnection()
        self._pc = pc

        @pc.on("datachannel")
        def on_datachannel(channel: RTCDataChannel) -> None:
            if channel.label != self.channel_label:
                logger.warning("Ignoring unexpected data channel %r", channel.label)
                return
            self._channel_bind(channel)

        @pc.on("connectionstatechange")
        async def on_connectionstatechange() -> None:
            if pc is not self._pc:
                return
            state = pc.connectionState
            logger.info("Peer connection state: %s", state)
            if state == "connected":
                self._mediaConnected_report()
            elif state in ("failed", "disconnected", "closed"):
                self._mediaDisconnected_report()

        return pc

    def _channel_bind(self, channel: RTCDataChannel) -> None:
        self._channel = channel

        @channel.on("open")
        def on_open() -> None:
            logger.info("Data channel %r open", channel.label)

        @channel.on("message")
        def on_message(message: Union[str, bytes]) -> None:
            if self.message_callback is None:
                return
            try:
                self.message_callback(message)
            except Exception:
                logger.exception("Data channel message handler failed")

    def _mediaConnected_report(self) -> None:
        if self._media_connected:
            return
        self._media_connected = True
        if self._listener is not None:
            self._listener.mediaConnected_handle()

    def _mediaDisconnected_report(self) -> None:
        if not self._media_connected:
            return
        self._media_connected = False
        if self._listener is not None:
            self._listener.mediaDisconnected_handle()
