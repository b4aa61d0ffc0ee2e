"""End-to-end negotiation between a host and a viewer over loopback TCP"""

from __future__ import annotations

import asyncio

from screen2screen.common.types import (
    PeerEndpoint,
    ScreenGeometry,
    SessionPhase,
    SessionRole,
)
from screen2screen.session.negotiator import DescriptionKind
from screen2screen.session.orchestrator import SessionOrchestrator
from screen2screen.signaling.client import SignalingClient
from screen2screen.signaling.server import SignalingServer

TIMEOUT = 5.0


class _ScriptedNegotiator:
    """Negotiator fake producing fixed descriptions and recording applied ones"""

    def __init__(self, local_sdp: str) -> None:
        self.local_sdp = local_sdp
        self.applied: list[tuple[str, DescriptionKind]] = []
        self.candidates: list[str] = []
        self.closed = 0
        self.listener = None

    def listener_set(self, listener) -> None:
        self.listener = listener

    async def offer_generate(self) -> str:
        # A candidate gathered while the offer is still being produced
        self.listener.localCandidate_handle("candidate:early", 0, "0")
        return self.local_sdp

    async def remoteDescription_apply(self, sdp: str, kind: DescriptionKind) -> None:
        self.applied.append((sdp, kind))

    async def answer_generate(self) -> str:
        return self.local_sdp

    async def remoteCandidate_add(self, candidate, sdp_mline_index, sdp_mid) -> None:
        self.candidates.append(candidate)

    async def session_close(self) -> None:
        self.closed += 1


async def _until(predicate, timeout: float = TIMEOUT) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise TimeoutError("condition not reached")
        await asyncio.sleep(0.01)


def test_offer_answer_and_screen_info():
    """Test the viewer offers, the host answers, then ScreenInfo arrives"""

    async def scenario():
        host_negotiator = _ScriptedNegotiator("v=1...")
        viewer_negotiator = _ScriptedNegotiator("v=0...")
        geometries: list[ScreenGeometry] = []
        viewer_phases: list[SessionPhase] = []

        host = SessionOrchestrator(
            SessionRole.SERVER,
            host_negotiator,
            screen_info_provider=lambda: ScreenGeometry(1920, 1080, 2.0),
        )
        viewer = SessionOrchestrator(
            SessionRole.CLIENT,
            viewer_negotiator,
            status_reporter=viewer_phases.append,
            screen_info_listener=geometries.append,
        )
        server = SignalingServer(host, host="127.0.0.1", port=0)
        await server.server_start()
        host.start()
        viewer.start()
        client = SignalingClient(viewer, connect_timeout=TIMEOUT)
        try:
            await client.connection_establish(
                PeerEndpoint("local", "local", "127.0.0.1", server.port)
            )
            await _until(lambda: geometries and host_negotiator.candidates)
            await viewer.idle_wait()
            await host.idle_wait()
        finally:
            client.connection_close()
            await server.server_stop()
            await viewer.stop()
            await host.stop()
        return host_negotiator, viewer_negotiator, geometries, viewer_phases

    host_negotiator, viewer_negotiator, geometries, phases = asyncio.run(scenario())
    assert host_negotiator.applied == [("v=0...", DescriptionKind.OFFER)]
    assert viewer_negotiator.applied == [("v=1...", DescriptionKind.ANSWER)]
    assert geometries == [ScreenGeometry(1920, 1080, 2.0)]
    # The early local candidate went out after the Offer and reached the host
    assert host_negotiator.candidates == ["candidate:early"]
    assert phases[:2] == [SessionPhase.CONNECTING, SessionPhase.NEGOTIATING]
    assert viewer_negotiator.closed >= 1
