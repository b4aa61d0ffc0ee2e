"""Data channel messages: viewer input events and host cursor feedback"""

import json
from typing import Any, Dict, List

from screen2screen.common.errors import DecodeError, DecodeErrorKind
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
    modifiers_canonicalize,
)
from screen2screen.protocol.message import (
    floatField_get,
    intField_get,
    payloadObject_parse,
    stringField_get,
)

KEY_CODE_MAX = 0xFFFF
CURSOR_POSITION_TAG = "cursorPosition"


def _compact_dump(data: Dict[str, Any]) -> bytes:
    return json.dumps(data, separators=(",", ":")).encode("utf-8")


def inputEvent_encode(event: InputEvent) -> bytes:
    """
    Serialize an input event for the data channel

    Modifiers are emitted sorted so equal events encode identically.

    Args:
        event: Input event

    Returns:
        UTF-8 JSON bytes
    """
    data: Dict[str, Any]
    if isinstance(event, MouseMove):
        data = {"type": "mouseMove", "dx": float(event.dx), "dy": float(event.dy)}
    elif isinstance(event, MouseButtonEvent):
        data = {"type": "mouseDown" if event.down else "mouseUp", "button": event.button.value}
    elif isinstance(event, Click):
        data = {"type": "click", "button": event.button.value, "count": event.count}
    elif isinstance(event, Scroll):
        data = {"type": "scroll", "dx": float(event.dx), "dy": float(event.dy)}
    elif isinstance(event, KeyEvent):
        data = {
            "type": "keyDown" if event.down else "keyUp",
            "keyCode": event.key_code,
            "modifiers": sorted(event.modifiers),
        }
    elif isinstance(event, KeyTap):
        data = {"type": "keyPress", "keyCode": event.key_code, "modifiers": sorted(event.modifiers)}
    elif isinstance(event, TextInsert):
        data = {"type": "text", "characters": event.text}
    else:
        raise TypeError(f"Not an input event: {event!r}")
    return _compact_dump(data)


def inputEvent_decode(data: bytes) -> InputEvent:
    """
    Deserialize an input event received on the data channel

    Args:
        data: UTF-8 JSON bytes

    Returns:
        Decoded input event

    Raises:
        DecodeError: On unknown tag or malformed payload
    """
    payload = payloadObject_parse(data)
    tag = payload.get("type")
    if tag == "mouseMove":
        return MouseMove(dx=floatField_get(payload, "dx"), dy=floatField_get(payload, "dy"))
    if tag in ("mouseDown", "mouseUp"):
        return MouseButtonEvent(down=tag == "mouseDown", button=_button_get(payload))
    if tag == "click":
        count = intField_get(payload, "count")
        if count < 0:
            raise DecodeError(DecodeErrorKind.MALFORMED, "click count must not be negative")
        return Click(button=_button_get(payload), count=count)
    if tag == "scroll":
        return Scroll(dx=floatField_get(payload, "dx"), dy=floatField_get(payload, "dy"))
    if tag in ("keyDown", "keyUp"):
        return KeyEvent(
            down=tag == "keyDown",
            key_code=_keyCode_get(payload),
            modifiers=modifiers_canonicalize(_modifiers_get(payload)),
        )
    if tag == "keyPress":
        return KeyTap(
            key_code=_keyCode_get(payload),
            modifiers=modifiers_canonicalize(_modifiers_get(payload)),
        )
    if tag == "text":
        return TextInsert(text=stringField_get(payload, "characters"))
    raise DecodeError(DecodeErrorKind.UNKNOWN_TAG, f"unknown input type {tag!r}")


def cursorFeedback_encode(feedback: CursorFeedback) -> bytes:
    """Serialize host cursor feedback for the data channel"""
    return _compact_dump({"type": CURSOR_POSITION_TAG, "x": float(feedback.x), "y": float(feedback.y)})


def cursorFeedback_decode(data: bytes) -> CursorFeedback:
    """
    Deserialize host cursor feedback

    Raises:
        DecodeError: On unknown tag or malformed payload
    """
    payload = payloadObject_parse(data)
    tag = payload.get("type")
    if tag != CURSOR_POSITION_TAG:
        raise DecodeError(DecodeErrorKind.UNKNOWN_TAG, f"unknown host message type {tag!r}")
    return CursorFeedback(x=floatField_get(payload, "x"), y=floatField_get(payload, "y"))


def _button_get(payload: Dict[str, Any]) -> MouseButton:
    value = stringField_get(payload, "button")
    try:
        return MouseButton(value)
    except ValueError:
        raise DecodeError(DecodeErrorKind.MALFORMED, f"unknown mouse button {value!r}") from None


def _keyCode_get(payload: Dict[str, Any]) -> int:
    key_code = intField_get(payload, "keyCode")
    if not 0 <= key_code <= KEY_CODE_MAX:
        raise DecodeError(DecodeErrorKind.MALFORMED, f"keyCode {key_code} is not a uint16")
    return key_code


def _modifiers_get(payload: Dict[str, Any]) -> List[str]:
    value = payload.get("modifiers", [])
    if not isinstance(value, list):
        raise DecodeError(DecodeErrorKind.MALFORMED, "field 'modifiers' must be a list")
    # Non-string entries are treated like unrecognized modifier names
    return [item for item in value if isinstance(item, str)]
