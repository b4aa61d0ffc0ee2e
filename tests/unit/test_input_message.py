"""Unit tests for data channel input events and cursor feedback"""

import json

import pytest

from screen2screen.common.errors import DecodeError, DecodeErrorKind
from screen2screen.common.types import (
    Click,
    CursorFeedback,
    KeyEvent,
    KeyTap,
    MouseButton,
    MouseButtonEvent,
    MouseMove,
    Scroll,
    TextInsert,
)
from screen2screen.protocol.input_message import (
    cursorFeedback_decode,
    cursorFeedback_encode,
    inputEvent_decode,
    inputEvent_encode,
)


class TestInputEventEncoding:
    """Test input event wire shapes"""

    def test_mouse_move(self):
        data = json.loads(inputEvent_encode(MouseMove(dx=3, dy=-4.5)))
        assert data == {"type": "mouseMove", "dx": 3.0, "dy": -4.5}

    def test_button_down_and_up(self):
        assert json.loads(inputEvent_encode(MouseButtonEvent(True, MouseButton.LEFT))) == {
            "type": "mouseDown",
            "button": "left",
        }
        assert json.loads(inputEvent_encode(MouseButtonEvent(False, MouseButton.RIGHT))) == {
            "type": "mouseUp",
            "button": "right",
        }

    def test_double_click(self):
        data = json.loads(inputEvent_encode(Click(MouseButton.LEFT, count=2)))
        assert data == {"type": "click", "button": "left", "count": 2}

    def test_key_press_modifiers_sorted(self):
        """Test modifiers encode in stable order"""
        event = KeyTap(key_code=0, modifiers=frozenset({"shift", "cmd"}))
        data = json.loads(inputEvent_encode(event))
        assert data == {"type": "keyPress", "keyCode": 0, "modifiers": ["cmd", "shift"]}

    def test_text(self):
        data = json.loads(inputEvent_encode(TextInsert("héllo")))
        assert data == {"type": "text", "characters": "héllo"}


class TestInputEventDecoding:
    """Test decoding input events from viewers"""

    @pytest.mark.parametrize(
        "event",
        [
            MouseMove(1.5, -2.0),
            MouseButtonEvent(True, MouseButton.RIGHT),
            Click(MouseButton.RIGHT, 1),
            Scroll(0.0, 12.0),
            KeyEvent(True, 53, frozenset({"ctrl"})),
            KeyEvent(False, 53),
            KeyTap(123, frozenset({"alt", "shift"})),
            TextInsert(""),
        ],
    )
    def test_round_trip(self, event):
        assert inputEvent_decode(inputEvent_encode(event)) == event

    def test_modifier_aliases_canonicalized(self):
        """Test command/control/option map to canonical names, unknowns dropped"""
        event = inputEvent_decode(
            b'{"type":"keyDown","keyCode":1,"modifiers":["command","control","option","fn",7]}'
        )
        assert event.modifiers == frozenset({"cmd", "ctrl", "alt"})

    def test_missing_modifiers_is_empty(self):
        event = inputEvent_decode(b'{"type":"keyUp","keyCode":1}')
        assert event == KeyEvent(False, 1, frozenset())

    def test_unknown_type(self):
        with pytest.raises(DecodeError) as exc_info:
            inputEvent_decode(b'{"type":"swipe"}')
        assert exc_info.value.kind is DecodeErrorKind.UNKNOWN_TAG

    @pytest.mark.parametrize(
        "payload",
        [
            b'{"type":"mouseDown","button":"middle"}',
            b'{"type":"click","button":"left","count":-1}',
            b'{"type":"keyDown","keyCode":70000}',
            b'{"type":"keyDown","keyCode":1,"modifiers":"cmd"}',
            b'{"type":"text"}',
            b'{"type":"scroll","dx":1}',
        ],
    )
    def test_malformed(self, payload):
        with pytest.raises(DecodeError) as exc_info:
            inputEvent_decode(payload)
        assert exc_info.value.kind is DecodeErrorKind.MALFORMED


class TestCursorFeedback:
    """Test host cursor feedback messages"""

    def test_encode(self):
        assert cursorFeedback_encode(CursorFeedback(10, 20.5)) == (
            b'{"type":"cursorPosition","x":10.0,"y":20.5}'
        )

    def test_decode(self):
        assert cursorFeedback_decode(b'{"type":"cursorPosition","x":1,"y":2}') == (
            CursorFeedback(1.0, 2.0)
        )

    def test_decode_wrong_tag(self):
        with pytest.raises(DecodeError) as exc_info:
            cursorFeedback_decode(b'{"type":"mouseMove","dx":1,"dy":2}')
        assert exc_info.value.kind is DecodeErrorKind.UNKNOWN_TAG
