"""Viewer virtual key codes to X11 keysym names.

Viewers send the virtual key codes of the keyboard they render (the
reference viewer uses macOS codes). The host maps them onto X11 keysyms
before XTest injection.
"""

from __future__ import annotations

from Xlib import XK

_VIRTUAL_KEYCODE_TO_KEYSYM_NAME: dict[int, str] = {
    # Letters
    0: "a", 11: "b", 8: "c", 2: "d", 14: "e", 3: "f", 5: "g", 4: "h",
    34: "i", 38: "j", 40: "k", 37: "l", 46: "m", 45: "n", 31: "o", 35: "p",
    12: "q", 15: "r", 1: "s", 17: "t", 32: "u", 9: "v", 13: "w", 7: "x",
    16: "y", 6: "z",
    # Digits
    29: "0", 18: "1", 19: "2", 20: "3", 21: "4", 23: "5", 22: "6", 26: "7",
    28: "8", 25: "9",
    # Punctuation
    27: "minus", 24: "equal", 33: "bracketleft", 30: "bracketright",
    41: "semicolon", 39: "apostrophe", 50: "grave", 42: "backslash",
    43: "comma", 47: "period", 44: "slash",
    # Editing and whitespace
    36: "Return", 48: "Tab", 49: "space", 51: "BackSpace", 53: "Escape",
    117: "Delete", 114: "Insert",
    # Navigation
    115: "Home", 119: "End", 116: "Page_Up", 121: "Page_Down",
    123: "Left", 124: "Right", 125: "Down", 126: "Up",
    # Function keys (non-sequential on the reference viewer)
    122: "F1", 120: "F2", 99: "F3", 118: "F4", 96: "F5", 97: "F6",
    98: "F7", 100: "F8", 101: "F9", 109: "F10", 103: "F11", 111: "F12",
    # Modifiers pressed as keys
    55: "Super_L", 56: "Shift_L", 58: "Alt_L", 59: "Control_L",
    57: "Caps_Lock",
}

MODIFIER_KEYSYM_NAMES: dict[str, str] = {
    "cmd": "Super_L",
    "ctrl": "Control_L",
    "alt": "Alt_L",
    "shift": "Shift_L",
}

# Press order for held modifiers; release happens in reverse
MODIFIER_ORDER: tuple[str, ...] = ("ctrl", "alt", "shift", "cmd")

_TEXT_KEYSYM_NAMES: dict[str, str] = {
    "\n": "Return",
    "\r": "Return",
    "\t": "Tab",
    " ": "space",
}


def keysymName_get(virtual_key_code: int) -> str | None:
    """
    Map a viewer virtual key code to an X11 keysym name.

    Args:
        virtual_key_code: Key code as sent by the viewer.

    Returns:
        X11 keysym name or None when unsupported.
    """
    return _VIRTUAL_KEYCODE_TO_KEYSYM_NAME.get(virtual_key_code)


def textKeysym_get(char: str) -> int:
    """
    Map one character to its X11 keysym value.

    Latin-1 characters use their code point; everything else uses the
    Unicode keysym range.

    Args:
        char: Single character.

    Returns:
        Keysym value.
    """
    name = _TEXT_KEYSYM_NAMES.get(char)
    if name is not None:
        return XK.string_to_keysym(name)
    code_point = ord(char)
    if 0x20 <= code_point <= 0xFF:
        return code_point
    return 0x01000000 | code_point


def modifiersOrdered_get(modifiers: frozenset[str]) -> list[str]:
    """Return canonical modifiers in press order."""
    return [name for name in MODIFIER_ORDER if name in modifiers]
