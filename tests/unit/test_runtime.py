"""Unit tests for host and viewer runtime wiring"""

from __future__ import annotations

import asyncio
import json
import socket
from typing import Any, Optional

import pytest

from screen2screen.common.config import ConfigLoader
from screen2screen.common.types import (
    CursorFeedback,
    MouseMove,
    PanOffset,
    PeerEndpoint,
    ScreenGeometry,
    Scroll,
    SessionPhase,
    Size,
)
from screen2screen.host.main import HostRuntime
from screen2screen.viewer.main import ViewerRuntime, viewSize_parse


class _ChannelNegotiator:
    """Negotiator fake exposing the data channel and teardown surface"""

    def __init__(self) -> None:
        self.message_callback = None
        self.sent: list[Any] = []
        self.listener = None
        self.closed = 0

    def listener_set(self, listener) -> None:
        self.listener = listener

    def data_send(self, payload) -> bool:
        self.sent.append(payload)
        return True

    async def session_close(self) -> None:
        self.closed += 1


class _FakeInjector:
    """Replays nothing, reports a fixed pointer for mouse events"""

    def __init__(self) -> None:
        self.events: list[Any] = []

    def event_apply(self, event) -> Optional[CursorFeedback]:
        self.events.append(event)
        if isinstance(event, MouseMove):
            return CursorFeedback(10.0 + event.dx, 20.0 + event.dy)
        return None


class _FakeDisplayManager:
    def screenGeometry_get(self) -> ScreenGeometry:
        return ScreenGeometry(1920, 1080, 1.0)


@pytest.fixture
def config(minimal_config_data):
    minimal_config_data["protocol"] = {"cursor_feedback_hz": 60}
    return ConfigLoader.config_parse(minimal_config_data)


class TestHostRuntime:
    """Input path on the controlled side"""

    def test_input_replayed_and_feedback_throttled(self, config, monkeypatch):
        negotiator = _ChannelNegotiator()
        injector = _FakeInjector()
        runtime = HostRuntime(config, _FakeDisplayManager(), injector, negotiator=negotiator)
        now = [100.0]
        monkeypatch.setattr(runtime.throttle, "_clock", lambda: now[0])

        assert negotiator.message_callback == runtime.dataMessage_handle
        runtime.dataMessage_handle('{"type":"mouseMove","dx":5,"dy":0}')
        runtime.dataMessage_handle(b'{"type":"mouseMove","dx":6,"dy":0}')
        now[0] += 0.1
        runtime.dataMessage_handle('{"type":"mouseMove","dx":7,"dy":0}')

        assert len(injector.events) == 3
        assert [json.loads(payload) for payload in negotiator.sent] == [
            {"type": "cursorPosition", "x": 15.0, "y": 20.0},
            {"type": "cursorPosition", "x": 17.0, "y": 20.0},
        ]

    def test_no_feedback_for_scroll(self, config):
        negotiator = _ChannelNegotiator()
        injector = _FakeInjector()
        runtime = HostRuntime(config, _FakeDisplayManager(), injector, negotiator=negotiator)

        runtime.dataMessage_handle('{"type":"scroll","dx":0,"dy":10}')
        assert injector.events == [Scroll(0.0, 10.0)]
        assert negotiator.sent == []

    def test_undecodable_input_dropped(self, config):
        injector = _FakeInjector()
        runtime = HostRuntime(config, _FakeDisplayManager(), injector, negotiator=_ChannelNegotiator())
        runtime.dataMessage_handle("{not json")
        runtime.dataMessage_handle('{"type":"teleport"}')
        assert injector.events == []


class TestViewerRuntime:
    """Feedback path on the controlling side"""

    def test_feedback_reaches_tracker_on_tick(self, config):
        negotiator = _ChannelNegotiator()
        runtime = ViewerRuntime(config, view_size=Size(800, 600), zoom=4.0, negotiator=negotiator)
        runtime.screenInfo_handle(ScreenGeometry(1920, 1080, 2.0))

        runtime.dataMessage_handle('{"type":"cursorPosition","x":500,"y":500}')
        runtime.dataMessage_handle('{"type":"cursorPosition","x":0,"y":0}')
        runtime.viewport_tick()

        assert runtime.tracker.cursor == CursorFeedback(0.0, 0.0)
        assert runtime.tracker.state.pan_offset == PanOffset(
            x=pytest.approx(1200.0), y=pytest.approx(900.0)
        )

    def test_bad_feedback_dropped(self, config):
        runtime = ViewerRuntime(config, view_size=Size(800, 600), negotiator=_ChannelNegotiator())
        runtime.dataMessage_handle('{"type":"mouseMove","dx":1,"dy":1}')
        assert runtime.mailbox.take() is None

    def test_input_send_encodes(self, config):
        negotiator = _ChannelNegotiator()
        runtime = ViewerRuntime(config, view_size=Size(800, 600), negotiator=negotiator)
        assert runtime.input_send(MouseMove(1.0, -1.0))
        assert json.loads(negotiator.sent[0]) == {"type": "mouseMove", "dx": 1.0, "dy": -1.0}

    def test_connect_failure_ends_disconnected(self, config):
        """Test a refused dial walks the status through connecting to disconnected"""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", 0))
            closed_port = sock.getsockname()[1]

        async def scenario():
            negotiator = _ChannelNegotiator()
            runtime = ViewerRuntime(config, view_size=Size(800, 600), negotiator=negotiator)
            phases: list[SessionPhase] = []
            report = runtime.orchestrator.status_reporter

            def record(phase: SessionPhase) -> None:
                phases.append(phase)
                report(phase)

            runtime.orchestrator.status_reporter = record
            await runtime.run(PeerEndpoint("gone", "gone", "127.0.0.1", closed_port))
            return runtime, phases, negotiator

        runtime, phases, negotiator = asyncio.run(scenario())
        assert phases == [SessionPhase.CONNECTING, SessionPhase.DISCONNECTED]
        assert runtime.phase is SessionPhase.DISCONNECTED
        assert negotiator.closed >= 1


class TestViewSizeParse:
    def test_parse(self):
        assert viewSize_parse("1280x800") == Size(1280.0, 800.0)

    @pytest.mark.parametrize("value", ["1280", "0x800", "axb"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            viewSize_parse(value)
