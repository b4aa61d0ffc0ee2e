"""
Signaling client transport.

This module owns the viewer side of the signaling channel: it dials a
`PeerEndpoint`, wraps the stream in a `SignalingSession` and forwards sends
to it.
"""

from __future__ import annotations

import asyncio
import logging

from screen2screen.common.errors import TransportError, TransportErrorKind
from screen2screen.common.types import PeerEndpoint, SessionRole
from screen2screen.protocol.message import ControlMessage
from screen2screen.signaling.session import SessionHandler, SignalingSession

logger = logging.getLogger(__name__)


class SignalingClient:
    """
    Viewer-side signaling connection.

    Holds at most one session; connecting again closes the previous one
    first. There is no implicit reconnect: callers decide.
    """

    def __init__(
        self,
        handler: SessionHandler,
        connect_timeout: float = 5.0,
        max_frame_size: int | None = None,
    ) -> None:
        """
        Initialize signaling client.

        Args:
            handler:
                Receiver of session events.
            connect_timeout:
                Seconds to wait for the TCP connect.
            max_frame_size:
                Largest accepted frame; defaults to the configured cap.
        """
        self.handler: SessionHandler = handler
        self.connect_timeout: float = connect_timeout
        self.max_frame_size: int | None = max_frame_size
        self.session: SignalingSession | None = None

    async def connection_establish(self, endpoint: PeerEndpoint) -> SignalingSession:
        """
        Dial a host and start a session.

        Connect failures do not raise: the session goes `CONNECTING -> CLOSED`
        with `CONNECT_FAILED` and the handler hears about it.

        Args:
            endpoint:
                Host to dial.

        Returns:
            The new session, READY on success or CLOSED on failure.
        """
        if self.session is not None:
            self.session.session_close()

        session = SignalingSession(SessionRole.CLIENT, self.handler, self.max_frame_size)
        self.session = session
        session.connecting_begin()
        logger.info("Connecting to %s at %s:%s", endpoint.name, endpoint.address, endpoint.port)

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(endpoint.address, endpoint.port),
                timeout=self.connect_timeout,
            )
        except (OSError, asyncio.TimeoutError) as exc:
            detail = str(exc) or type(exc).__name__
            session.session_close(TransportError(TransportErrorKind.CONNECT_FAILED, detail))
            return session

        session.session_attach(reader, writer)
        return session

    def message_send(self, message: ControlMessage) -> bool:
        """
        Send a control message on the current session.

        Args:
            message:
                Message to send.

        Returns:
            `True` when queued, else `False`.
        """
        if self.session is None:
            logger.warning("No session, dropping %s", message.msg_type.value)
            return False
        return self.session.message_send(message)

    def connection_close(self) -> None:
        """
        Close the current session.

        This method is idempotent.
        """
        if self.session is not None:
            self.session.session_close()
