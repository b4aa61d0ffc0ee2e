"""
Signaling session shared by the client and server roles.

A session owns one framed byte stream. It moves through
`IDLE -> CONNECTING -> READY -> CLOSED` (or `CONNECTING -> CLOSED`), runs
exactly one receive task and one write task while `READY`, and reports
everything through a `SessionHandler`.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Protocol

from screen2screen.common.errors import DecodeError, TransportError
from screen2screen.common.types import SessionRole, SessionState
from screen2screen.protocol.framing import FrameReader, FrameWriter
from screen2screen.protocol.message import ControlMessage, message_decode, message_encode

logger = logging.getLogger(__name__)

__all__ = ["SessionHandler", "SignalingSession"]

_session_ids = itertools.count(1)


class SessionHandler(Protocol):
    """
    Observer of one or more signaling sessions.

    Calls arrive on the event loop, in frame arrival order per session.
    `sessionDisconnected_handle` is the last call for a given session.
    """

    def sessionConnecting_handle(self, session: SignalingSession) -> None:
        """Session left IDLE and is dialing or being accepted."""

    def sessionConnected_handle(self, session: SignalingSession) -> None:
        """Session reached READY."""

    def sessionDisconnected_handle(
        self, session: SignalingSession, error: TransportError | None
    ) -> None:
        """Session reached CLOSED; `error` is None for a local close."""

    def message_handle(self, session: SignalingSession, message: ControlMessage) -> None:
        """A control message was decoded from the session."""


class SignalingSession:
    """
    One signaling connection and its lifecycle.

    Sessions are never reused: reconnecting means building a new one.
    """

    def __init__(
        self,
        role: SessionRole,
        handler: SessionHandler,
        max_frame_size: int | None = None,
    ) -> None:
        """
        Initialize an idle session.

        Args:
            role:
                Client (viewer) or server (host) side.
            handler:
                Receiver of lifecycle and message events.
            max_frame_size:
                Largest accepted frame; defaults to the configured cap.
        """
        self.session_id: int = next(_session_ids)
        self.role: SessionRole = role
        self.handler: SessionHandler = handler
        self.state: SessionState = SessionState.IDLE
        self.peer_address: tuple | None = None
        self.close_reason: TransportError | None = None

        self._max_frame_size: int | None = max_frame_size
        self._frame_reader: FrameReader | None = None
        self._frame_writer: FrameWriter | None = None
        self._outbox: asyncio.Queue[bytes] = asyncio.Queue()
        self._receive_task: asyncio.Task | None = None
        self._write_task: asyncio.Task | None = None

    def __repr__(self) -> str:
        return f"SignalingSession(#{self.session_id}, {self.role.value}, {self.state.value})"

    def connecting_begin(self) -> None:
        """
        Move `IDLE -> CONNECTING` and fire `sessionConnecting_handle`.

        Raises:
            RuntimeError:
                Raised when the session has already left IDLE.
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"{self!r} cannot begin connecting")
        self.state = SessionState.CONNECTING
        self._handler_notify("sessionConnecting_handle", self)

    def session_attach(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> bool:
        """
        Bind an established stream and move `CONNECTING -> READY`.

        Fires `sessionConnected_handle` and starts the receive and write
        tasks. A session that was closed while connecting drops the stream.

        Args:
            reader:
                Inbound stream.
            writer:
                Outbound stream.

        Returns:
            `True` when the session became READY, else `False`.
        """
        if self.state is SessionState.IDLE:
            self.state = SessionState.CONNECTING
        if self.state is not SessionState.CONNECTING:
            logger.info("%r closed before connecting, dropping stream", self)
            FrameWriter(writer).stream_close()
            return False

        self.peer_address = writer.get_extra_info("peername")
        self._frame_reader = FrameReader(reader, self._max_frame_size)
        self._frame_writer = FrameWriter(writer)
        self.state = SessionState.READY
        logger.info("%r connected to %s", self, self.peer_address)

        self._handler_notify("sessionConnected_handle", self)
        if self.state is not SessionState.READY:
            # Handler closed us synchronously
            return False
        self._receive_task = asyncio.create_task(
            self._receive_loop(), name=f"signaling-recv-{self.session_id}"
        )
        self._write_task = asyncio.create_task(
            self._write_loop(), name=f"signaling-send-{self.session_id}"
        )
        return True

    def message_send(self, message: ControlMessage) -> bool:
        """
        Queue a control message for the write task.

        Never blocks and never raises transport failures; those close the
        session and surface through `sessionDisconnected_handle`.

        Args:
            message:
                Message to send.

        Returns:
            `True` when queued, `False` when the session is not READY.
        """
        if self.state is not SessionState.READY:
            logger.warning("%r not ready, dropping %s", self, message.msg_type.value)
            return False
        self._outbox.put_nowait(message_encode(message))
        return True

    def session_close(self, error: TransportError | None = None) -> None:
        """
        Move to CLOSED from any state.

        Idempotent. Interrupts a blocked read by closing the stream and
        cancelling the session tasks, then fires `sessionDisconnected_handle`
        exactly once.

        Args:
            error:
                Transport failure that caused the close, or None.
        """
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        self.close_reason = error
        if self._frame_writer is not None:
            self._frame_writer.stream_close()

        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        for task in (self._receive_task, self._write_task):
            if task is not None and task is not current and not task.done():
                task.cancel()

        if error is None:
            logger.info("%r closed", self)
        else:
            logger.warning("%r closed: %s", self, error)
        self._handler_notify("sessionDisconnected_handle", self, error)

    async def _receive_loop(self) -> None:
        """
        Read, decode and dispatch frames until the transport fails.

        A frame that fails to decode is logged and skipped.
        """
        assert self._frame_reader is not None
        try:
            while self.state is SessionState.READY:
                payload: bytes = await self._frame_reader.frame_read()
                try:
                    message: ControlMessage = message_decode(payload)
                except DecodeError as exc:
                    logger.warning("%r dropped undecodable frame: %s", self, exc)
                    continue
                if self.state is not SessionState.READY:
                    break
                logger.debug("%r received %s", self, message.msg_type.value)
                self._handler_notify("message_handle", self, message)
        except TransportError as exc:
            self.session_close(exc)

    async def _write_loop(self) -> None:
        """Drain the outbox in order; the first write failure closes the session."""
        assert self._frame_writer is not None
        while self.state is SessionState.READY:
            payload: bytes = await self._outbox.get()
            try:
                await self._frame_writer.frame_write(payload)
            except TransportError as exc:
                self.session_close(exc)
                return

    def _handler_notify(self, method_name: str, *args: object) -> None:
        """
        Invoke one handler callback.

        Handler bugs are logged with traceback so they cannot take the receive
        task down with them.
        """
        try:
            getattr(self.handler, method_name)(*args)
        except Exception:
            logger.exception("%r handler %s failed", self, method_name)
