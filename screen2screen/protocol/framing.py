"""
Length-prefixed framing over an ordered byte stream.

Each frame is a 4-byte big-endian unsigned length followed by exactly that
many payload bytes. This module knows nothing about what the payload means.
"""

from __future__ import annotations

import asyncio
import logging
import struct

from screen2screen.common.errors import TransportError, TransportErrorKind
from screen2screen.common.settings import settings

logger = logging.getLogger(__name__)

_HEADER = struct.Struct(">I")
MAX_FRAME_LENGTH = 0xFFFFFFFF


def frame_pack(payload: bytes) -> bytes:
    """
    Prefix a payload with its length.

    Args:
        payload:
            Frame body; may be empty.

    Returns:
        Header and payload as one buffer.

    Raises:
        ValueError:
            Raised when the payload cannot be described by a 32-bit length.
    """
    if len(payload) > MAX_FRAME_LENGTH:
        raise ValueError(f"Frame payload of {len(payload)} bytes exceeds 32-bit length")
    return _HEADER.pack(len(payload)) + payload


class FrameReader:
    """
    Reads whole frames from an `asyncio.StreamReader`.

    Only one coroutine may call `frame_read()` at a time; the owning session's
    receive task is that coroutine.
    """

    def __init__(self, reader: asyncio.StreamReader, max_frame_size: int | None = None) -> None:
        """
        Initialize frame reader.

        Args:
            reader:
                Source stream.
            max_frame_size:
                Largest accepted payload; defaults to the configured cap.
        """
        self._reader: asyncio.StreamReader = reader
        self.max_frame_size: int = (
            max_frame_size if max_frame_size is not None else settings.maxFrameSize_get()
        )

    async def frame_read(self) -> bytes:
        """
        Read the next complete frame payload.

        Returns:
            Payload bytes, possibly empty.

        Raises:
            TransportError:
                `CLOSED` when the stream ends exactly at a frame boundary,
                `CLOSED_MID_FRAME` when it ends inside a header or body,
                `FRAME_TOO_LARGE` when the announced length exceeds the cap.
        """
        header: bytes = await self._exactly_read(settings.FRAME_HEADER_SIZE, at_boundary=True)
        (length,) = _HEADER.unpack(header)
        if length > self.max_frame_size:
            raise TransportError(
                TransportErrorKind.FRAME_TOO_LARGE,
                f"announced {length} bytes, limit {self.max_frame_size}",
            )
        if length == 0:
            return b""
        return await self._exactly_read(length, at_boundary=False)

    async def _exactly_read(self, count: int, at_boundary: bool) -> bytes:
        """
        Read exactly `count` bytes, translating EOF into transport errors.

        Args:
            count:
                Number of bytes required.
            at_boundary:
                Whether zero bytes read means a clean close.
        """
        try:
            return await self._reader.readexactly(count)
        except asyncio.IncompleteReadError as exc:
            if at_boundary and not exc.partial:
                raise TransportError(TransportErrorKind.CLOSED) from exc
            raise TransportError(
                TransportErrorKind.CLOSED_MID_FRAME,
                f"got {len(exc.partial)} of {count} bytes",
            ) from exc
        except OSError as exc:
            # Reset by peer: treat as a truncated frame, the stream is unusable
            raise TransportError(TransportErrorKind.CLOSED_MID_FRAME, str(exc)) from exc


class FrameWriter:
    """Writes whole frames to an `asyncio.StreamWriter`."""

    def __init__(self, writer: asyncio.StreamWriter) -> None:
        """
        Initialize frame writer.

        Args:
            writer:
                Destination stream.
        """
        self._writer: asyncio.StreamWriter = writer

    async def frame_write(self, payload: bytes) -> None:
        """
        Write one frame and wait for the transport to accept it.

        Header and payload go out in a single `write()` so frames from one
        writer never interleave.

        Args:
            payload:
                Frame body.

        Raises:
            TransportError:
                `WRITE_FAILED` when the stream rejects the write.
        """
        try:
            self._writer.write(frame_pack(payload))
            await self._writer.drain()
        except (ConnectionError, OSError, RuntimeError) as exc:
            raise TransportError(TransportErrorKind.WRITE_FAILED, str(exc)) from exc

    def stream_close(self) -> None:
        """
        Close the underlying stream.

        Any read blocked on the paired reader observes EOF. Errors are logged,
        the caller is already shutting down.
        """
        try:
            self._writer.close()
        except Exception as exc:
            logger.error("Error closing stream: %s", exc)
