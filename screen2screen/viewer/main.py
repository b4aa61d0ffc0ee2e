"""screen2screen viewer (controlling side) entry point"""

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

from screen2screen import __version__
from screen2screen.common.config import Config, ConfigLoader
from screen2screen.common.errors import DecodeError
from screen2screen.common.logging_setup import logging_setup
from screen2screen.common.settings import settings
from screen2screen.common.types import (
    InputEvent,
    PeerEndpoint,
    ScreenGeometry,
    SessionPhase,
    SessionRole,
    SessionState,
    Size,
)
from screen2screen.discovery.peers import PeerDirectory, endpoint_parse, endpoint_resolve
from screen2screen.protocol.input_message import cursorFeedback_decode, inputEvent_encode
from screen2screen.session.orchestrator import SessionOrchestrator
from screen2screen.session.webrtc import AiortcNegotiator
from screen2screen.signaling.client import SignalingClient
from screen2screen.viewport.cursor_mailbox import CursorMailbox
from screen2screen.viewport.tracker import ViewportTracker, visibleCenter_get

logger = logging.getLogger(__name__)


class ViewerRuntime:
    """
    Wires the signaling client, the orchestrator and the viewport tracker

    Cursor feedback from the data channel lands in a depth-1 mailbox; a tick
    loop at the display refresh rate feeds the latest sample to the tracker.
    """

    def __init__(
        self,
        config: Config,
        view_size: Size,
        zoom: float = 1.0,
        negotiator: Optional[AiortcNegotiator] = None,
    ) -> None:
        """
        Initialize viewer runtime

        Args:
            config: Loaded configuration
            view_size: Rendered view size in view pixels
            zoom: Initial magnification
            negotiator: Media negotiator, aiortc by default
        """
        self.config: Config = config
        self.mailbox: CursorMailbox = CursorMailbox()
        self.tracker: ViewportTracker = ViewportTracker(
            view_size=view_size,
            mailbox=self.mailbox,
            edge_margin=config.viewport.edge_margin,
            min_zoom=config.viewport.min_zoom,
            max_zoom=config.viewport.max_zoom,
        )
        self.tracker.zoom_set(zoom)

        self.negotiator: AiortcNegotiator = negotiator or AiortcNegotiator(SessionRole.CLIENT)
        self.negotiator.message_callback = self.dataMessage_handle
        self.orchestrator = SessionOrchestrator(
            SessionRole.CLIENT,
            self.negotiator,
            status_reporter=self.phase_report,
            screen_info_listener=self.screenInfo_handle,
        )
        self.client = SignalingClient(
            self.orchestrator,
            connect_timeout=config.viewer.connect_timeout,
            max_frame_size=config.protocol.max_frame_size,
        )
        self.phase: SessionPhase = SessionPhase.DISCONNECTED

    def phase_report(self, phase: SessionPhase) -> None:
        """Record and log user-facing session status"""
        self.phase = phase
        logger.info(f"[STATUS] {phase.value}")

    def screenInfo_handle(self, geometry: ScreenGeometry) -> None:
        """Adopt the host's screen geometry"""
        self.tracker.remoteScreen_set(geometry)

    def dataMessage_handle(self, data: Union[str, bytes]) -> None:
        """
        Queue cursor feedback received on the data channel

        Args:
            data: Encoded cursor feedback
        """
        payload = data.encode("utf-8") if isinstance(data, str) else data
        try:
            feedback = cursorFeedback_decode(payload)
        except DecodeError as e:
            logger.warning(f"Dropping undecodable feedback: {e}")
            return
        self.mailbox.put(feedback)

    def input_send(self, event: InputEvent) -> bool:
        """
        Send one input event to the host

        Args:
            event: Input event

        Returns:
            True when handed to the data channel
        """
        return self.negotiator.data_send(inputEvent_encode(event).decode("utf-8"))

    def viewport_tick(self) -> None:
        """Consume the pending cursor sample, if any"""
        new_pan = self.tracker.tick()
        if new_pan is not None:
            center_x, center_y = visibleCenter_get(self.tracker.state)
            logger.debug(
                f"[VIEWPORT] pan=({new_pan.x:.1f}, {new_pan.y:.1f}) "
                f"center=({center_x:.0f}, {center_y:.0f})"
            )

    async def run(self, endpoint: PeerEndpoint) -> None:
        """
        Connect to a host and track the viewport until the session closes

        Args:
            endpoint: Host to dial
        """
        self.orchestrator.start()
        tick_interval = 1.0 / self.config.viewport.tick_hz
        try:
            session = await self.client.connection_establish(endpoint)
            while session.state is not SessionState.CLOSED:
                self.viewport_tick()
                await asyncio.sleep(tick_interval)
            await self.orchestrator.idle_wait()
            if session.close_reason is not None:
                logger.warning(f"Session ended: {session.close_reason}")
        finally:
            self.client.connection_close()
            await self.orchestrator.stop()


async def endpoint_select(config: Config, args: argparse.Namespace) -> PeerEndpoint:
    """
    Pick and resolve the host to dial from --peer or --connect

    Args:
        config: Loaded configuration
        args: Parsed command line arguments

    Returns:
        Endpoint with a numeric address

    Raises:
        PeerLookupError: If the peer is unknown or cannot be resolved
    """
    if args.peer:
        directory = PeerDirectory.fromConfig_create(config.viewer.peers)
        endpoint = directory.peer_get(args.peer)
    else:
        endpoint = endpoint_parse(args.connect, default_port=config.host.port)
    return await endpoint_resolve(endpoint, timeout=config.viewer.resolve_timeout)


def viewSize_parse(value: str) -> Size:
    """
    Parse `WIDTHxHEIGHT`

    Raises:
        ValueError: If the value is malformed or not positive
    """
    width_text, sep, height_text = value.lower().partition("x")
    if not sep:
        raise ValueError(f"Invalid view size {value!r}, expected WIDTHxHEIGHT")
    size = Size(float(width_text), float(height_text))
    if size.width <= 0 or size.height <= 0:
        raise ValueError(f"View size must be positive, got {value!r}")
    return size


def viewer_run(args: argparse.Namespace) -> None:
    """
    Run screen2screen viewer

    Args:
        args: Parsed command line arguments
    """
    config_path = Path(args.config) if args.config else None
    config = ConfigLoader.configWithOverrides_load(
        file_path=config_path,
        log_level=getattr(args, "log_level", None),
    )

    settings.initialize(config)
    logging_setup(config.logging.level, config.logging.format, config.logging.file)

    logger.info(f"screen2screen viewer v{__version__}")
    asyncio.run(_runtime_serve(config, args))


async def _runtime_serve(config: Config, args: argparse.Namespace) -> None:
    endpoint = await endpoint_select(config, args)
    logger.info(f"Dialing {endpoint.name} at {endpoint.address}:{endpoint.port}")
    runtime = ViewerRuntime(config, view_size=viewSize_parse(args.view_size), zoom=args.zoom)
    await runtime.run(endpoint)
