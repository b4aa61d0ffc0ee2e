"""X11 input replay using XTest extension"""

import logging
from typing import Optional

from Xlib import X, XK
from Xlib.ext import xtest

from screen2screen.common.types import (
    Click,
    CursorFeedback,
    InputEvent,
    KeyEvent,
    KeyTap,
    MouseButton,
    MouseButtonEvent,
    MouseMove,
    Scroll,
    TextInsert,
)
from screen2screen.x11.display import DisplayManager
from screen2screen.x11.keysym_mapping import (
    MODIFIER_KEYSYM_NAMES,
    keysymName_get,
    modifiersOrdered_get,
    textKeysym_get,
)

logger = logging.getLogger(__name__)

BUTTON_NUMBERS: dict[MouseButton, int] = {
    MouseButton.LEFT: 1,
    MouseButton.RIGHT: 3,
}

# Wheel buttons: positive dy scrolls up, positive dx scrolls left
SCROLL_UP, SCROLL_DOWN, SCROLL_LEFT, SCROLL_RIGHT = 4, 5, 6, 7

SCROLL_PIXELS_PER_STEP: float = 10.0


class EventInjector:
    """Replays viewer input events into X11 using XTest extension"""

    def __init__(self, display_manager: DisplayManager) -> None:
        """
        Initialize event injector

        Args:
            display_manager: X11 display manager
        """
        self._display_manager: DisplayManager = display_manager
        # Sub-pixel motion and sub-step scroll carried to the next event
        self._motion_remainder: list[float] = [0.0, 0.0]
        self._scroll_remainder: list[float] = [0.0, 0.0]

    def xtestExtension_verify(self) -> bool:
        """
        Verify XTest extension is available

        Returns:
            True if XTest is available, False otherwise
        """
        display = self._display_manager.display_get()
        ext_info = display.query_extension("XTEST")
        return ext_info is not None

    def event_apply(self, event: InputEvent) -> Optional[CursorFeedback]:
        """
        Replay one input event

        Args:
            event: Decoded input event

        Returns:
            Pointer position after mouse events, None for scroll, key and text
        """
        if isinstance(event, MouseMove):
            return self.mousePointer_moveRelative(event.dx, event.dy)
        if isinstance(event, MouseButtonEvent):
            if event.down:
                self.mouseButton_press(BUTTON_NUMBERS[event.button])
            else:
                self.mouseButton_release(BUTTON_NUMBERS[event.button])
            return self._display_manager.pointerPosition_get()
        if isinstance(event, Click):
            self.mouseButton_click(BUTTON_NUMBERS[event.button], event.count)
            return self._display_manager.pointerPosition_get()
        if isinstance(event, Scroll):
            self.wheel_scroll(event.dx, event.dy)
            return None
        if isinstance(event, KeyEvent):
            self.keyEvent_inject(event)
            return None
        if isinstance(event, KeyTap):
            self.keyEvent_inject(KeyEvent(True, event.key_code, event.modifiers))
            self.keyEvent_inject(KeyEvent(False, event.key_code, event.modifiers))
            return None
        if isinstance(event, TextInsert):
            self.text_type(event.text)
            return None
        raise TypeError(f"Not an input event: {type(event).__name__}")

    def mousePointer_moveRelative(self, delta_x: float, delta_y: float) -> CursorFeedback:
        """
        Move mouse pointer by relative offset, clamped to the screen

        Args:
            delta_x: X offset in pixels (can be negative or fractional)
            delta_y: Y offset in pixels (can be negative or fractional)

        Returns:
            Pointer position after the move
        """
        display = self._display_manager.display_get()
        geometry = self._display_manager.screenGeometry_get()
        current = self._display_manager.pointerPosition_get()

        total_x = delta_x + self._motion_remainder[0]
        total_y = delta_y + self._motion_remainder[1]
        step_x, step_y = int(total_x), int(total_y)
        self._motion_remainder = [total_x - step_x, total_y - step_y]

        new_x = max(0, min(int(current.x) + step_x, geometry.width - 1))
        new_y = max(0, min(int(current.y) + step_y, geometry.height - 1))

        # Absolute motion; XTest relative movement is unreliable
        xtest.fake_input(display, X.MotionNotify, detail=0, x=new_x, y=new_y)
        display.sync()
        return CursorFeedback(x=float(new_x), y=float(new_y))

    def mouseButton_press(self, button: int) -> None:
        """
        Press mouse button

        Args:
            button: Button number (1=left, 3=right, 4-7=wheel)
        """
        display = self._display_manager.display_get()
        xtest.fake_input(display, X.ButtonPress, detail=button)
        display.sync()

    def mouseButton_release(self, button: int) -> None:
        """
        Release mouse button

        Args:
            button: Button number (1=left, 3=right, 4-7=wheel)
        """
        display = self._display_manager.display_get()
        xtest.fake_input(display, X.ButtonRelease, detail=button)
        display.sync()

    def mouseButton_click(self, button: int, count: int = 1) -> None:
        """
        Press and release a button `count` times

        Args:
            button: Button number
            count: Number of clicks (2 for a double click)
        """
        for _ in range(count):
            self.mouseButton_press(button)
            self.mouseButton_release(button)

    def wheel_scroll(self, delta_x: float, delta_y: float) -> None:
        """
        Scroll by pixel deltas using wheel button clicks

        Args:
            delta_x: Horizontal pixels, positive scrolls left
            delta_y: Vertical pixels, positive scrolls up
        """
        steps_x = self._scrollSteps_take(0, delta_x)
        steps_y = self._scrollSteps_take(1, delta_y)
        if steps_y:
            self.mouseButton_click(SCROLL_UP if steps_y > 0 else SCROLL_DOWN, abs(steps_y))
        if steps_x:
            self.mouseButton_click(SCROLL_LEFT if steps_x > 0 else SCROLL_RIGHT, abs(steps_x))

    def _scrollSteps_take(self, axis: int, delta: float) -> int:
        total = self._scroll_remainder[axis] + delta / SCROLL_PIXELS_PER_STEP
        steps = int(total)
        self._scroll_remainder[axis] = total - steps
        return steps

    def key_press(self, keycode: int) -> None:
        """
        Press keyboard key

        Args:
            keycode: X11 keycode
        """
        display = self._display_manager.display_get()
        xtest.fake_input(display, X.KeyPress, detail=keycode)
        display.sync()

    def key_release(self, keycode: int) -> None:
        """
        Release keyboard key

        Args:
            keycode: X11 keycode
        """
        display = self._display_manager.display_get()
        xtest.fake_input(display, X.KeyRelease, detail=keycode)
        display.sync()

    def keycode_resolve(self, keysym: int) -> int:
        """
        Find the X11 keycode producing a keysym

        Args:
            keysym: X11 keysym value

        Returns:
            Keycode, or 0 when the keyboard map has none
        """
        display = self._display_manager.display_get()
        return display.keysym_to_keycode(keysym)

    def keyEvent_inject(self, event: KeyEvent) -> None:
        """
        Inject a key press or release with its modifiers

        Modifiers are pressed before the key goes down and released after
        it comes up.

        Args:
            event: Key event with viewer virtual key code
        """
        name = keysymName_get(event.key_code)
        if name is None:
            logger.warning(f"Unsupported key code {event.key_code}")
            return
        keycode = self.keycode_resolve(XK.string_to_keysym(name))
        if not keycode:
            logger.warning(f"No X11 keycode for {name}")
            return

        modifier_codes = self._modifierKeycodes_get(event.modifiers)
        if event.down:
            for code in modifier_codes:
                self.key_press(code)
            self.key_press(keycode)
        else:
            self.key_release(keycode)
            for code in reversed(modifier_codes):
                self.key_release(code)

    def _modifierKeycodes_get(self, modifiers: frozenset) -> list[int]:
        codes = []
        for modifier in modifiersOrdered_get(modifiers):
            code = self.keycode_resolve(XK.string_to_keysym(MODIFIER_KEYSYM_NAMES[modifier]))
            if code:
                codes.append(code)
        return codes

    def text_type(self, text: str) -> None:
        """
        Type literal text one character at a time

        Characters that need Shift on the current keyboard map get it;
        characters with no keycode are skipped.

        Args:
            text: Text to type
        """
        display = self._display_manager.display_get()
        shift_code = self.keycode_resolve(XK.string_to_keysym("Shift_L"))
        for char in text:
            keysym = textKeysym_get(char)
            keycode = self.keycode_resolve(keysym)
            if not keycode:
                logger.warning(f"No X11 keycode for {char!r}, skipping")
                continue
            shifted = (
                display.keycode_to_keysym(keycode, 0) != keysym
                and display.keycode_to_keysym(keycode, 1) == keysym
            )
            if shifted and shift_code:
                self.key_press(shift_code)
            self.key_press(keycode)
            self.key_release(keycode)
            if shifted and shift_code:
                self.key_release(shift_code)
