"""X11 display connection and management"""

import logging
import os
from typing import Optional

from Xlib import display as xdisplay
from Xlib.display import Display

from screen2screen.common.types import CursorFeedback, ScreenGeometry

logger = logging.getLogger(__name__)


class DisplayManager:
    """Manages X11 display connection and screen information"""

    def __init__(self, display_name: Optional[str] = None, screen_scale: float = 1.0) -> None:
        """
        Initialize display manager

        Args:
            display_name: X11 display name (e.g., ':0'), None for default
            screen_scale: Backing scale reported to viewers (HiDPI factor)
        """
        self._display: Optional[Display] = None
        self._display_name: Optional[str] = display_name
        self.screen_scale: float = screen_scale

    def connection_establish(self) -> None:
        """
        Establish connection to X11 display

        Raises:
            Xlib.error.DisplayError: If the display cannot be opened
        """
        name = self._display_name or os.environ.get("DISPLAY")
        self._display = xdisplay.Display(self._display_name)
        logger.info(f"Connected to X11 display {name}")

    def connection_close(self) -> None:
        """Close X11 display connection"""
        if self._display is not None:
            self._display.close()
            self._display = None

    def display_get(self) -> Display:
        """
        Get X11 display object

        Returns:
            X11 Display object

        Raises:
            RuntimeError: If not connected to display
        """
        if self._display is None:
            raise RuntimeError("Not connected to X11 display")
        return self._display

    def screenGeometry_get(self) -> ScreenGeometry:
        """
        Get screen geometry for ScreenInfo

        Returns:
            Screen geometry with width, height and backing scale

        Raises:
            RuntimeError: If not connected to display
        """
        display = self.display_get()
        root = display.screen().root
        geom = root.get_geometry()

        return ScreenGeometry(width=geom.width, height=geom.height, scale=self.screen_scale)

    def pointerPosition_get(self) -> CursorFeedback:
        """
        Get current pointer position on the root window

        Returns:
            Pointer position in screen pixels, top-left origin
        """
        display = self.display_get()
        pointer_data = display.screen().root.query_pointer()
        return CursorFeedback(x=float(pointer_data.root_x), y=float(pointer_data.root_y))

    def __enter__(self) -> "DisplayManager":
        """Context manager entry"""
        self.connection_establish()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Context manager exit"""
        self.connection_close()
