"""Common types and data structures for screen2screen"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, Union


class SessionRole(Enum):
    """Which end of the signaling channel a session represents"""
    CLIENT = "client"  # Viewer, dials out and offers
    SERVER = "server"  # Host, listens and answers


class SessionState(Enum):
    """Signaling session lifecycle"""
    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    CLOSED = "closed"


class SessionPhase(Enum):
    """User-facing progress of a remote session"""
    CONNECTING = "connecting"
    NEGOTIATING = "negotiating"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    FAILED = "permission/setup failed"


class MouseButton(Enum):
    """Mouse buttons the remote side can press"""
    LEFT = "left"
    RIGHT = "right"


MODIFIER_ALIASES: dict[str, str] = {
    "cmd": "cmd",
    "command": "cmd",
    "ctrl": "ctrl",
    "control": "ctrl",
    "alt": "alt",
    "option": "alt",
    "shift": "shift",
}


def modifiers_canonicalize(names: Iterable[str]) -> FrozenSet[str]:
    """
    Map modifier names onto the canonical set

    Unknown names are dropped, they are never an error.

    Args:
        names: Modifier names as received

    Returns:
        Canonical modifier names
    """
    canonical = set()
    for name in names:
        mapped = MODIFIER_ALIASES.get(str(name).lower())
        if mapped is not None:
            canonical.add(mapped)
    return frozenset(canonical)


@dataclass(frozen=True)
class PeerEndpoint:
    """A host that can be dialed"""
    identifier: str
    name: str
    address: str
    port: int


@dataclass(frozen=True)
class ScreenGeometry:
    """Remote screen dimensions and backing scale"""
    width: int
    height: int
    scale: float = 1.0


@dataclass(frozen=True)
class CursorFeedback:
    """Cursor position in remote-screen pixels, top-left origin"""
    x: float
    y: float


# Input events replayed on the controlled side


@dataclass(frozen=True)
class MouseMove:
    """Relative pointer motion"""
    dx: float
    dy: float


@dataclass(frozen=True)
class MouseButtonEvent:
    """Button press or release"""
    down: bool
    button: MouseButton


@dataclass(frozen=True)
class Click:
    """One or more full press/release pairs"""
    button: MouseButton
    count: int = 1


@dataclass(frozen=True)
class Scroll:
    """Scroll wheel deltas in pixels"""
    dx: float
    dy: float


@dataclass(frozen=True)
class KeyEvent:
    """Key press or release with held modifiers"""
    down: bool
    key_code: int
    modifiers: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class KeyTap:
    """Key press immediately followed by release"""
    key_code: int
    modifiers: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class TextInsert:
    """Literal text to type"""
    text: str


InputEvent = Union[MouseMove, MouseButtonEvent, Click, Scroll, KeyEvent, KeyTap, TextInsert]


# Viewport geometry


@dataclass(frozen=True)
class PanOffset:
    """Pan offset in view pixels; positive x shows content left of center"""
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class Size:
    """Width and height pair"""
    width: float
    height: float


@dataclass(frozen=True)
class ViewportState:
    """Magnification and pan of the rendered remote screen"""
    zoom: float
    pan_offset: PanOffset
    view_size: Size
    remote_screen_size: Size

    def withPanOffset_replace(self, pan_offset: PanOffset) -> "ViewportState":
        """Return a copy carrying a new pan offset"""
        return ViewportState(
            zoom=self.zoom,
            pan_offset=pan_offset,
            view_size=self.view_size,
            remote_screen_size=self.remote_screen_size,
        )


def zoom_clamp(zoom: float, min_zoom: float = 1.0, max_zoom: float = 5.0) -> float:
    """Clamp zoom factor into the supported range"""
    return max(min_zoom, min(zoom, max_zoom))