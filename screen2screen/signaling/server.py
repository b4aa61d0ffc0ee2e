"""TCP signaling server with a single active peer"""

import asyncio
import logging
from typing import Optional

from screen2screen.common.types import SessionRole, SessionState
from screen2screen.protocol.message import ControlMessage
from screen2screen.signaling.session import SessionHandler, SignalingSession

logger = logging.getLogger(__name__)


class SignalingServer:
    """
    Long-lived listener that serves one peer at a time

    Accepting a new connection closes the previous session (its disconnect
    event fires) before the new session becomes READY. Only the per-peer
    session is replaced; the listener survives peer churn.
    """

    def __init__(
        self,
        handler: SessionHandler,
        host: str,
        port: int,
        max_frame_size: Optional[int] = None,
    ) -> None:
        """
        Initialize signaling server

        Args:
            handler: Receiver of session events
            host: Host address to bind to
            port: Port to listen on (0 picks an ephemeral port)
            max_frame_size: Largest accepted frame; defaults to the configured cap
        """
        self.handler: SessionHandler = handler
        self.host: str = host
        self.port: int = port
        self.max_frame_size: Optional[int] = max_frame_size
        self.session: Optional[SignalingSession] = None
        self.is_running: bool = False
        self._server: Optional[asyncio.AbstractServer] = None

    async def server_start(self) -> None:
        """
        Start listening for viewers

        Raises:
            OSError: If unable to bind to address
        """
        self._server = await asyncio.start_server(
            self._connection_accept, self.host, self.port, reuse_address=True
        )
        sockets = self._server.sockets or ()
        if sockets:
            self.port = sockets[0].getsockname()[1]
        self.is_running = True
        logger.info("Signaling server listening on %s:%s", self.host, self.port)

    async def server_stop(self) -> None:
        """Stop server and close the active session"""
        self.is_running = False
        if self.session is not None:
            self.session.session_close()

        if self._server is not None:
            self._server.close()
            try:
                await self._server.wait_closed()
            except Exception as e:
                logger.error("Error closing server socket: %s", e)
            finally:
                self._server = None

        logger.info("Signaling server stopped")

    def _connection_accept(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        """
        Replace the active session with one for the new connection

        Args:
            reader: Inbound stream of the new peer
            writer: Outbound stream of the new peer
        """
        if not self.is_running:
            writer.close()
            return

        previous = self.session
        if previous is not None and previous.state in (SessionState.CONNECTING, SessionState.READY):
            logger.info(
                "New viewer from %s, replacing %r", writer.get_extra_info("peername"), previous
            )
            previous.session_close()

        session = SignalingSession(SessionRole.SERVER, self.handler, self.max_frame_size)
        self.session = session
        session.connecting_begin()
        session.session_attach(reader, writer)

    def message_send(self, message: ControlMessage) -> bool:
        """
        Send a control message to the active viewer

        Args:
            message: Message to send

        Returns:
            True when queued, False when no viewer is connected
        """
        if self.session is None:
            logger.warning("No active connection, dropping %s", message.msg_type.value)
            return False
        return self.session.message_send(message)
