"""screen2screen host (controlled side) entry point"""

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol, Union

from screen2screen import __version__
from screen2screen.common.config import Config, ConfigLoader
from screen2screen.common.errors import DecodeError
from screen2screen.common.logging_setup import logging_setup
from screen2screen.common.settings import settings
from screen2screen.common.types import CursorFeedback, InputEvent, SessionPhase, SessionRole
from screen2screen.protocol.input_message import cursorFeedback_encode, inputEvent_decode
from screen2screen.session.orchestrator import SessionOrchestrator
from screen2screen.session.webrtc import AiortcNegotiator
from screen2screen.signaling.server import SignalingServer
from screen2screen.viewport.cursor_mailbox import FeedbackThrottle
from screen2screen.x11.display import DisplayManager
from screen2screen.x11.injector import EventInjector

logger = logging.getLogger(__name__)


class InputReplay(Protocol):
    """Replays viewer input on the controlled display"""

    def event_apply(self, event: InputEvent) -> Optional[CursorFeedback]:
        """Apply one event, returning the pointer position when it moved"""
        ...


class HostRuntime:
    """
    Wires the signaling server, the orchestrator and the input path

    Viewer input arrives on the data channel, is replayed through XTest and
    the resulting pointer position goes back as rate-limited cursor feedback.
    """

    def __init__(
        self,
        config: Config,
        display_manager: DisplayManager,
        injector: InputReplay,
        negotiator: Optional[AiortcNegotiator] = None,
    ) -> None:
        """
        Initialize host runtime

        Args:
            config: Loaded configuration
            display_manager: Connected X11 display
            injector: Input replay into the display
            negotiator: Media negotiator, aiortc by default
        """
        self.config: Config = config
        self.display_manager: DisplayManager = display_manager
        self.injector: InputReplay = injector
        self.negotiator: AiortcNegotiator = negotiator or AiortcNegotiator(SessionRole.SERVER)
        self.negotiator.message_callback = self.dataMessage_handle
        self.throttle: FeedbackThrottle = FeedbackThrottle(settings.cursorFeedbackInterval_get())

        self.orchestrator = SessionOrchestrator(
            SessionRole.SERVER,
            self.negotiator,
            screen_info_provider=display_manager.screenGeometry_get,
            status_reporter=self.phase_report,
        )
        self.server = SignalingServer(
            self.orchestrator,
            host=config.host.bind_address,
            port=config.host.port,
            max_frame_size=config.protocol.max_frame_size,
        )
        self._stop_event: asyncio.Event = asyncio.Event()

    def phase_report(self, phase: SessionPhase) -> None:
        """Log user-facing session status"""
        logger.info(f"[STATUS] {phase.value}")

    def dataMessage_handle(self, data: Union[str, bytes]) -> None:
        """
        Replay one input event received on the data channel

        Args:
            data: Encoded input event
        """
        payload = data.encode("utf-8") if isinstance(data, str) else data
        try:
            event = inputEvent_decode(payload)
        except DecodeError as e:
            logger.warning(f"Dropping undecodable input event: {e}")
            return

        logger.debug(f"[INPUT] {event}")
        feedback = self.injector.event_apply(event)
        if feedback is None or not self.throttle.sample_accept():
            return
        self.negotiator.data_send(cursorFeedback_encode(feedback).decode("utf-8"))

    async def run(self) -> None:
        """Serve viewers until stop() is called"""
        await self.server.server_start()
        self.orchestrator.start()
        logger.info("Host running. Press Ctrl+C to stop.")
        try:
            await self._stop_event.wait()
        finally:
            await self.server.server_stop()
            await self.orchestrator.stop()

    def stop(self) -> None:
        """Request shutdown"""
        self._stop_event.set()


def host_run(args: argparse.Namespace) -> None:
    """
    Run screen2screen host

    Args:
        args: Parsed command line arguments
    """
    config_path = Path(args.config) if args.config else None
    config = ConfigLoader.configWithOverrides_load(
        file_path=config_path,
        bind_address=args.bind,
        port=args.port,
        display=args.display,
        log_level=getattr(args, "log_level", None),
    )

    settings.initialize(config)
    logging_setup(config.logging.level, config.logging.format, config.logging.file)

    logger.info(f"screen2screen host v{__version__}")
    logger.info(f"Listening on {config.host.bind_address}:{config.host.port}")
    logger.info(f"Display: {config.host.display or '$DISPLAY'}")
    logger.info(f"Cursor feedback: {config.protocol.cursor_feedback_hz:.0f} Hz max")

    display_manager = DisplayManager(
        display_name=config.host.display, screen_scale=config.host.screen_scale
    )
    display_manager.connection_establish()
    try:
        geometry = display_manager.screenGeometry_get()
        logger.info(f"Screen geometry: {geometry.width}x{geometry.height} @{geometry.scale}x")

        injector = EventInjector(display_manager)
        if not injector.xtestExtension_verify():
            raise RuntimeError("XTest extension not available on this display")

        asyncio.run(_runtime_serve(config, display_manager, injector))
    finally:
        display_manager.connection_close()


async def _runtime_serve(
    config: Config, display_manager: DisplayManager, injector: EventInjector
) -> None:
    runtime = HostRuntime(config, display_manager, injector)
    await runtime.run()
