"""Error taxonomy shared by the codec, transport and orchestration layers"""

from enum import Enum


class DecodeErrorKind(Enum):
    """Reasons a received payload could not be decoded"""
    UNKNOWN_TAG = "unknown_tag"
    MALFORMED = "malformed"


class TransportErrorKind(Enum):
    """Reasons a signaling transport stopped"""
    CLOSED = "closed"
    CLOSED_MID_FRAME = "closed_mid_frame"
    WRITE_FAILED = "write_failed"
    CONNECT_FAILED = "connect_failed"
    FRAME_TOO_LARGE = "frame_too_large"


class OrchestrationErrorKind(Enum):
    """Contract violations detected while sequencing negotiation"""
    OUT_OF_ORDER = "out_of_order"


class DecodeError(ValueError):
    """
    A single payload could not be turned into a message.

    Non-fatal: the receiver logs it and keeps reading.
    """

    def __init__(self, kind: DecodeErrorKind, detail: str) -> None:
        """
        Initialize decode error

        Args:
            kind: Failure category
            detail: Human readable description
        """
        super().__init__(f"{kind.value}: {detail}")
        self.kind: DecodeErrorKind = kind
        self.detail: str = detail


class TransportError(ConnectionError):
    """
    The byte stream under a session failed.

    Always fatal to the session that observed it.
    """

    def __init__(self, kind: TransportErrorKind, detail: str = "") -> None:
        """
        Initialize transport error

        Args:
            kind: Failure category
            detail: Human readable description
        """
        message = kind.value if not detail else f"{kind.value}: {detail}"
        super().__init__(message)
        self.kind: TransportErrorKind = kind
        self.detail: str = detail


class OrchestrationError(RuntimeError):
    """A negotiation step was requested before its precondition held"""

    def __init__(self, kind: OrchestrationErrorKind, detail: str) -> None:
        super().__init__(f"{kind.value}: {detail}")
        self.kind: OrchestrationErrorKind = kind
        self.detail: str = detail


class PeerLookupError(LookupError):
    """A peer could not be resolved to a connectable address in time"""
