"""
Session orchestration between signaling and media negotiation.

The orchestrator is the `SessionHandler` of a signaling client or server and
the `NegotiatorListener` of a media negotiator. Every event from either side
goes into one queue that a single drain task processes in order, so the
negotiation steps never overlap and never run ahead of their preconditions:

- an Answer is only produced after the peer's Offer was applied;
- a remote Answer is only applied after a local Offer was generated;
- remote candidates are only added after a remote description was applied;
- local candidates are only sent after the local description went out.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from screen2screen.common.errors import (
    OrchestrationError,
    OrchestrationErrorKind,
    TransportError,
)
from screen2screen.common.types import ScreenGeometry, SessionPhase, SessionRole
from screen2screen.protocol.message import (
    Answer,
    ControlMessage,
    CursorPosition,
    IceCandidate,
    Offer,
    ScreenInfo,
)
from screen2screen.session.negotiator import DescriptionKind, MediaNegotiator
from screen2screen.signaling.session import SignalingSession

logger = logging.getLogger(__name__)

__all__ = ["SessionOrchestrator"]

MAX_HELD_CANDIDATES = 64


class _EventKind(Enum):
    SESSION_CONNECTING = "session_connecting"
    SESSION_CONNECTED = "session_connected"
    SESSION_DISCONNECTED = "session_disconnected"
    MESSAGE = "message"
    LOCAL_CANDIDATE = "local_candidate"
    MEDIA_CONNECTED = "media_connected"
    MEDIA_DISCONNECTED = "media_disconnected"


@dataclass(frozen=True)
class _Event:
    kind: _EventKind
    session: Optional[SignalingSession] = None
    message: Optional[ControlMessage] = None
    media_generation: int = 0


class SessionOrchestrator:
    """
    Sequences control-message exchange with a media negotiator.

    No networking of its own and no retries: a failed step closes the
    signaling session and negotiation restarts on the next connect.
    """

    def __init__(
        self,
        role: SessionRole,
        negotiator: MediaNegotiator,
        screen_info_provider: Optional[Callable[[], ScreenGeometry]] = None,
        status_reporter: Optional[Callable[[SessionPhase], None]] = None,
        screen_info_listener: Optional[Callable[[ScreenGeometry], None]] = None,
        strict: bool = False,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            role:
                CLIENT offers, SERVER answers.
            negotiator:
                Media negotiation collaborator.
            screen_info_provider:
                Server role: current capture geometry for ScreenInfo.
            status_reporter:
                Receives phase transitions for user-facing status.
            screen_info_listener:
                Client role: receives the host's ScreenInfo.
            strict:
                Raise OrchestrationError on contract violations instead of
                only logging them.
        """
        if role is SessionRole.SERVER and screen_info_provider is None:
            raise ValueError("Server role requires a screen_info_provider")
        self.role: SessionRole = role
        self.negotiator: MediaNegotiator = negotiator
        self.screen_info_provider = screen_info_provider
        self.status_reporter = status_reporter
        self.screen_info_listener = screen_info_listener
        self.strict: bool = strict

        self.phase: SessionPhase = SessionPhase.DISCONNECTED
        self.violations: List[OrchestrationError] = []

        self._events: asyncio.Queue[_Event] = asyncio.Queue()
        self._drain_task: Optional[asyncio.Task] = None
        self._session: Optional[SignalingSession] = None
        self._media_generation: int = 0
        self._negotiationState_reset()

        negotiator.listener_set(self)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the drain task. Must be called from the event loop."""
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.create_task(self._events_drain(), name="orchestrator-drain")

    async def stop(self) -> None:
        """Stop draining and tear the negotiator down."""
        if self._drain_task is not None:
            self._drain_task.cancel()
            try:
                await self._drain_task
            except (asyncio.CancelledError, OrchestrationError):
                pass
            self._drain_task = None
        await self._negotiator_teardown()

    async def idle_wait(self) -> None:
        """
        Wait until every queued event has been processed.

        Re-raises the exception that stopped the drain task, if any.
        """
        if self._drain_task is None:
            raise RuntimeError("Orchestrator not started")
        join = asyncio.ensure_future(self._events.join())
        done, _ = await asyncio.wait(
            {join, self._drain_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if self._drain_task in done:
            join.cancel()
            self._drain_task.result()

    # ------------------------------------------------------------------
    # SessionHandler
    # ------------------------------------------------------------------

    def sessionConnecting_handle(self, session: SignalingSession) -> None:
        self._events.put_nowait(_Event(_EventKind.SESSION_CONNECTING, session=session))

    def sessionConnected_handle(self, session: SignalingSession) -> None:
        self._events.put_nowait(_Event(_EventKind.SESSION_CONNECTED, session=session))

    def sessionDisconnected_handle(
        self, session: SignalingSession, error: TransportError | None
    ) -> None:
        self._events.put_nowait(_Event(_EventKind.SESSION_DISCONNECTED, session=session))

    def message_handle(self, session: SignalingSession, message: ControlMessage) -> None:
        self._events.put_nowait(_Event(_EventKind.MESSAGE, session=session, message=message))

    # ------------------------------------------------------------------
    # NegotiatorListener
    # ------------------------------------------------------------------

    def localCandidate_handle(
        self, candidate: str, sdp_mline_index: int, sdp_mid: str | None
    ) -> None:
        message = IceCandidate(candidate=candidate, sdp_mline_index=sdp_mline_index, sdp_mid=sdp_mid)
        self._events.put_nowait(_Event(_EventKind.LOCAL_CANDIDATE, message=message))

    def mediaConnected_handle(self) -> None:
        self._events.put_nowait(
            _Event(_EventKind.MEDIA_CONNECTED, media_generation=self._media_generation)
        )

    def mediaDisconnected_handle(self) -> None:
        self._events.put_nowait(
            _Event(_EventKind.MEDIA_DISCONNECTED, media_generation=self._media_generation)
        )

    # ------------------------------------------------------------------
    # Event processing
    # ------------------------------------------------------------------

    async def _events_drain(self) -> None:
        """Process queued events one at a time, in arrival order."""
        while True:
            event: _Event = await self._events.get()
            try:
                await self.event_process(event)
            except OrchestrationError:
                if self.strict:
                    raise
            except Exception:
                logger.exception("Failed to process %s", event.kind.value)
            finally:
                self._events.task_done()

    async def event_process(self, event: _Event) -> None:
        """
        Apply one event.

        Args:
            event:
                Queued signaling or negotiator event.

        Raises:
            OrchestrationError:
                In strict mode, when the event breaks negotiation order.
        """
        if event.kind is _EventKind.SESSION_CONNECTING:
            self._phase_set(SessionPhase.CONNECTING)
        elif event.kind is _EventKind.SESSION_CONNECTED:
            await self._sessionConnected_process(event.session)
        elif event.kind is _EventKind.SESSION_DISCONNECTED:
            await self._sessionDisconnected_process(event.session)
        elif event.kind is _EventKind.MESSAGE:
            if event.session is not self._session:
                logger.debug("Ignoring message from stale %r", event.session)
                return
            await self._message_process(event.message)
        elif event.kind is _EventKind.LOCAL_CANDIDATE:
            self._localCandidate_process(event.message)
        elif event.media_generation != self._media_generation:
            # Reported by a media session that has since been torn down
            logger.debug("Ignoring stale %s", event.kind.value)
        elif event.kind is _EventKind.MEDIA_CONNECTED:
            self._phase_set(SessionPhase.CONNECTED)
        elif event.kind is _EventKind.MEDIA_DISCONNECTED:
            if self._session is not None:
                self._phase_set(SessionPhase.DISCONNECTED)

    async def _sessionConnected_process(self, session: SignalingSession) -> None:
        self._session = session
        self._negotiationState_reset()
        self._phase_set(SessionPhase.NEGOTIATING)
        if self.role is SessionRole.SERVER:
            # Wait for the viewer's Offer
            return

        try:
            sdp: str = await self.negotiator.offer_generate()
        except Exception as exc:
            self._negotiationStep_fail("offer generation", exc)
            return
        self._offer_generated = True
        if not self._send(Offer(sdp=sdp)):
            return
        self._local_description_sent = True
        self._heldLocalCandidates_flush()

    async def _sessionDisconnected_process(self, session: SignalingSession) -> None:
        if self._session is not None and session is not self._session:
            logger.debug("Ignoring disconnect of stale %r", session)
            return
        self._session = None
        self._negotiationState_reset()
        await self._negotiator_teardown()
        if self.phase is not SessionPhase.FAILED:
            self._phase_set(SessionPhase.DISCONNECTED)

    async def _message_process(self, message: ControlMessage) -> None:
        if isinstance(message, Offer):
            await self._offer_process(message)
        elif isinstance(message, Answer):
            await self._answer_process(message)
        elif isinstance(message, IceCandidate):
            await self._remoteCandidate_process(message)
        elif isinstance(message, ScreenInfo):
            self._screenInfo_process(message)
        elif isinstance(message, CursorPosition):
            logger.debug("Ignoring legacy cursor position on signaling channel")

    async def _offer_process(self, message: Offer) -> None:
        if self.role is not SessionRole.SERVER:
            self._violation_report("Offer received by the offering side")
            return
        if self._remote_description_applied:
            self._violation_report("Second Offer on one session")
            return

        try:
            await self.negotiator.remoteDescription_apply(message.sdp, DescriptionKind.OFFER)
            self._remote_description_applied = True
            await self._heldRemoteCandidates_flush()
            sdp: str = await self.negotiator.answer_generate()
        except Exception as exc:
            self._negotiationStep_fail("answer generation", exc)
            return

        if not self._send(Answer(sdp=sdp)):
            return
        geometry: ScreenGeometry = self.screen_info_provider()
        self._send(ScreenInfo(width=geometry.width, height=geometry.height, scale=geometry.scale))
        self._local_description_sent = True
        self._heldLocalCandidates_flush()

    async def _answer_process(self, message: Answer) -> None:
        if self.role is not SessionRole.CLIENT:
            self._violation_report("Answer received by the answering side")
            return
        if not self._offer_generated:
            self._violation_report("Answer received before an Offer was generated")
            return
        if self._remote_description_applied:
            self._violation_report("Second Answer on one session")
            return

        try:
            await self.negotiator.remoteDescription_apply(message.sdp, DescriptionKind.ANSWER)
            self._remote_description_applied = True
            await self._heldRemoteCandidates_flush()
        except Exception as exc:
            self._negotiationStep_fail("answer application", exc)

    async def _remoteCandidate_process(self, message: IceCandidate) -> None:
        if not self._remote_description_applied:
            self._candidate_hold(self._held_remote_candidates, message, "remote")
            return
        await self._remoteCandidate_add(message)

    async def _remoteCandidate_add(self, message: IceCandidate) -> None:
        try:
            await self.negotiator.remoteCandidate_add(
                message.candidate, message.sdp_mline_index, message.sdp_mid
            )
        except Exception as exc:
            # One bad candidate does not doom the session; others may work
            logger.warning("Failed to add remote candidate: %s", exc)

    async def _heldRemoteCandidates_flush(self) -> None:
        held, self._held_remote_candidates = self._held_remote_candidates, []
        for message in held:
            await self._remoteCandidate_add(message)

    def _localCandidate_process(self, message: IceCandidate) -> None:
        if self._session is None:
            logger.debug("Dropping local candidate, no session")
            return
        if not self._local_description_sent:
            self._candidate_hold(self._held_local_candidates, message, "local")
            return
        self._send(message)

    def _heldLocalCandidates_flush(self) -> None:
        held, self._held_local_candidates = self._held_local_candidates, []
        for message in held:
            self._send(message)

    def _screenInfo_process(self, message: ScreenInfo) -> None:
        if self.role is not SessionRole.CLIENT:
            logger.warning("Unexpected ScreenInfo from viewer")
            return
        logger.info("Remote screen: %sx%s @%sx", message.width, message.height, message.scale)
        if self.screen_info_listener is not None:
            self.screen_info_listener(
                ScreenGeometry(width=message.width, height=message.height, scale=message.scale)
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _negotiationState_reset(self) -> None:
        self._offer_generated: bool = False
        self._remote_description_applied: bool = False
        self._local_description_sent: bool = False
        self._held_remote_candidates: List[IceCandidate] = []
        self._held_local_candidates: List[IceCandidate] = []

    def _candidate_hold(self, held: List[IceCandidate], message: IceCandidate, side: str) -> None:
        if len(held) >= MAX_HELD_CANDIDATES:
            dropped = held.pop(0)
            logger.warning("Too many held %s candidates, dropping %s", side, dropped.candidate)
        held.append(message)
        logger.debug("Holding %s candidate until its description is set", side)

    def _send(self, message: ControlMessage) -> bool:
        if self._session is None:
            logger.debug("No session, not sending %s", message.msg_type.value)
            return False
        return self._session.message_send(message)

    async def _negotiator_teardown(self) -> None:
        try:
            await self.negotiator.session_close()
        except Exception as exc:
            logger.error("Error closing media session: %s", exc)
        self._media_generation += 1

    def _negotiationStep_fail(self, step: str, error: Exception) -> None:
        logger.error("Negotiation failed during %s: %s", step, error)
        self._phase_set(SessionPhase.FAILED)
        if self._session is not None:
            self._session.session_close()

    def _violation_report(self, detail: str) -> None:
        error = OrchestrationError(OrchestrationErrorKind.OUT_OF_ORDER, detail)
        self.violations.append(error)
        logger.error("Orchestration contract violated: %s", detail)
        if self.strict:
            raise error

    def _phase_set(self, phase: SessionPhase) -> None:
        if phase is self.phase:
            return
        logger.info("Session phase: %s", phase.value)
        self.phase = phase
        if self.status_reporter is not None:
            self.status_reporter(phase)
