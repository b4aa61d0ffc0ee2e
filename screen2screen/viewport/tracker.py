"""Cursor-driven auto-pan for a magnified view of the remote screen

Coordinates:
    - Cursor samples are remote-screen pixels, top-left origin.
    - Pan offsets are view pixels. Offset (0, 0) centers the remote screen;
      a positive x offset shows content left of center.

The visible region is `remote / zoom` wide. Its center follows from the pan
offset by `center = remote/2 - offset/view * visible`. When the cursor comes
within `edge_margin * visible` of an edge, the center moves just far enough to
restore that margin, then is clamped so the region stays on screen.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from screen2screen.common.settings import settings
from screen2screen.common.types import (
    CursorFeedback,
    PanOffset,
    ScreenGeometry,
    Size,
    ViewportState,
    zoom_clamp,
)
from screen2screen.viewport.cursor_mailbox import CursorMailbox

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _AxisPan:
    """Result of adjusting one axis"""
    needs_pan: bool
    center: float
    new_center: float
    visible: float


def _axis_adjust(cursor: float, remote: float, view: float, zoom: float,
                 offset: float, edge_margin: float) -> _AxisPan:
    """Move one axis' center toward the cursor if it entered the margin"""
    visible = min(remote / zoom, remote)
    center = remote / 2 - offset / view * visible
    margin = visible * edge_margin
    visible_min = center - visible / 2
    visible_max = center + visible / 2

    if cursor < visible_min + margin:
        return _AxisPan(True, center, cursor - margin + visible / 2, visible)
    if cursor > visible_max - margin:
        return _AxisPan(True, center, cursor + margin - visible / 2, visible)
    return _AxisPan(False, center, center, visible)


def _axis_offset(axis: _AxisPan, remote: float, view: float, offset: float) -> float:
    """Clamp an axis' center to the screen and convert it back to a pan offset"""
    new_center = max(axis.visible / 2, min(axis.new_center, remote - axis.visible / 2))
    if new_center == axis.center:
        return offset
    return (remote / 2 - new_center) / axis.visible * view


def pan_compute(cursor: CursorFeedback, viewport: ViewportState,
                edge_margin: float = settings.EDGE_MARGIN_FRACTION) -> Optional[PanOffset]:
    """
    Compute the pan offset that keeps the cursor inside the safety margin

    Args:
        cursor: Cursor sample in remote-screen pixels
        viewport: Current zoom, pan, view and remote sizes
        edge_margin: Margin as a fraction of the visible region

    Returns:
        New pan offset, or None when no change is needed
    """
    zoom = viewport.zoom
    if zoom <= 1.0:
        return None

    view_w, view_h = viewport.view_size.width, viewport.view_size.height
    remote_w, remote_h = viewport.remote_screen_size.width, viewport.remote_screen_size.height
    if view_w <= 0 or view_h <= 0 or remote_w <= 0 or remote_h <= 0:
        return None

    pan = viewport.pan_offset
    axis_x = _axis_adjust(cursor.x, remote_w, view_w, zoom, pan.x, edge_margin)
    axis_y = _axis_adjust(cursor.y, remote_h, view_h, zoom, pan.y, edge_margin)
    if not (axis_x.needs_pan or axis_y.needs_pan):
        return None

    new_pan = PanOffset(
        x=_axis_offset(axis_x, remote_w, view_w, pan.x),
        y=_axis_offset(axis_y, remote_h, view_h, pan.y),
    )
    if new_pan == pan:
        return None
    return new_pan


def visibleCenter_get(viewport: ViewportState) -> tuple[float, float]:
    """
    Center of the visible region in remote-screen pixels

    Args:
        viewport: Viewport state

    Returns:
        (x, y) center
    """
    zoom = max(viewport.zoom, 1.0)
    remote = viewport.remote_screen_size
    visible_w = min(remote.width / zoom, remote.width)
    visible_h = min(remote.height / zoom, remote.height)
    center_x = remote.width / 2 - viewport.pan_offset.x / viewport.view_size.width * visible_w
    center_y = remote.height / 2 - viewport.pan_offset.y / viewport.view_size.height * visible_h
    return center_x, center_y


class ViewportTracker:
    """
    Owns the viewer's viewport state and feeds it cursor samples

    `tick()` is meant to run once per display refresh: it consumes at most one
    pending sample from the mailbox and is a no-op when there is none.
    """

    def __init__(
        self,
        view_size: Size,
        remote_screen_size: Size = Size(1920, 1080),
        mailbox: Optional[CursorMailbox] = None,
        edge_margin: float = settings.EDGE_MARGIN_FRACTION,
        min_zoom: float = settings.ZOOM_MIN,
        max_zoom: float = settings.ZOOM_MAX,
    ) -> None:
        """
        Initialize tracker at 1x zoom, centered

        Args:
            view_size: Rendered view size in view pixels
            remote_screen_size: Remote screen size until ScreenInfo arrives
            mailbox: Source of coalesced cursor samples
            edge_margin: Margin as a fraction of the visible region
            min_zoom: Lowest zoom factor
            max_zoom: Highest zoom factor
        """
        self.mailbox: CursorMailbox = mailbox if mailbox is not None else CursorMailbox()
        self.edge_margin: float = edge_margin
        self.min_zoom: float = min_zoom
        self.max_zoom: float = max_zoom
        self.state: ViewportState = ViewportState(
            zoom=min_zoom,
            pan_offset=PanOffset(),
            view_size=view_size,
            remote_screen_size=remote_screen_size,
        )
        self.cursor: CursorFeedback = CursorFeedback(
            remote_screen_size.width / 2, remote_screen_size.height / 2
        )

    def remoteScreen_set(self, geometry: ScreenGeometry) -> None:
        """Adopt new remote screen geometry and recenter the cursor"""
        self.state = ViewportState(
            zoom=self.state.zoom,
            pan_offset=self.state.pan_offset,
            view_size=self.state.view_size,
            remote_screen_size=Size(geometry.width, geometry.height),
        )
        self.cursor = CursorFeedback(geometry.width / 2, geometry.height / 2)

    def zoom_set(self, zoom: float) -> None:
        """Set zoom, clamped; returning to minimum zoom also resets the pan"""
        zoom = zoom_clamp(zoom, self.min_zoom, self.max_zoom)
        pan = self.state.pan_offset if zoom > self.min_zoom else PanOffset()
        self.state = ViewportState(
            zoom=zoom,
            pan_offset=pan,
            view_size=self.state.view_size,
            remote_screen_size=self.state.remote_screen_size,
        )

    def cursor_apply(self, cursor: CursorFeedback) -> Optional[PanOffset]:
        """
        Record a cursor sample and pan if needed

        Returns:
            The new pan offset when it changed, else None
        """
        self.cursor = cursor
        new_pan = pan_compute(cursor, self.state, self.edge_margin)
        if new_pan is not None:
            self.state = self.state.withPanOffset_replace(new_pan)
            logger.debug("Pan offset now (%.1f, %.1f)", new_pan.x, new_pan.y)
        return new_pan

    def tick(self) -> Optional[PanOffset]:
        """
        Consume the pending sample, if any

        Returns:
            The new pan offset when it changed, else None
        """
        sample = self.mailbox.take()
        if sample is None:
            return None
        return self.cursor_apply(sample)
