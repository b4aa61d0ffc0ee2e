"""Unit tests for control message encoding and decoding"""

import json

import pytest

from screen2screen.common.errors import DecodeError, DecodeErrorKind
from screen2screen.protocol.message import (
    Answer,
    CursorPosition,
    IceCandidate,
    MessageType,
    Offer,
    ScreenInfo,
    message_decode,
    message_encode,
)


class TestMessageRoundTrip:
    """Every message case survives encode then decode"""

    @pytest.mark.parametrize(
        "message",
        [
            Offer(sdp="v=0\r\no=- 1 2 IN IP4 127.0.0.1\r\n"),
            Offer(sdp=""),
            Answer(sdp="v=0\r\n"),
            IceCandidate(candidate="candidate:1 1 UDP 2122 10.0.0.2 5000 typ host",
                         sdp_mline_index=0, sdp_mid="0"),
            IceCandidate(candidate="candidate:2", sdp_mline_index=3, sdp_mid=None),
            ScreenInfo(width=1920, height=1080, scale=2.0),
            ScreenInfo(width=0, height=0, scale=1.0),
            CursorPosition(x=12.5, y=-3.0),
        ],
    )
    def test_round_trip(self, message):
        """Test decode(encode(m)) == m"""
        assert message_decode(message_encode(message)) == message


class TestMessageEncoding:
    """Test exact wire shapes"""

    def test_screen_info_bytes(self):
        """Test ScreenInfo encodes to compact JSON with tag first"""
        data = message_encode(ScreenInfo(width=1920, height=1080, scale=2.0))
        assert data == b'{"type":"screenInfo","width":1920,"height":1080,"scale":2.0}'

    def test_ice_without_mid_omits_field(self):
        """Test a null sdpMid is omitted on the wire"""
        data = json.loads(message_encode(IceCandidate("c", 1)))
        assert data == {"type": "ice", "candidate": "c", "sdpMLineIndex": 1}

    def test_offer_tag(self):
        """Test Offer carries the offer tag"""
        data = json.loads(message_encode(Offer(sdp="x")))
        assert data["type"] == MessageType.OFFER.value == "offer"

    def test_encode_non_message_raises(self):
        """Test encoding something else is a programming error"""
        with pytest.raises(TypeError):
            message_encode("offer")


class TestMessageDecoding:
    """Test decode failures and lenient parsing"""

    def test_unknown_tag(self):
        """Test unrecognized type is UNKNOWN_TAG"""
        with pytest.raises(DecodeError) as exc_info:
            message_decode(b'{"type":"bye"}')
        assert exc_info.value.kind is DecodeErrorKind.UNKNOWN_TAG

    def test_missing_tag(self):
        """Test missing type is UNKNOWN_TAG"""
        with pytest.raises(DecodeError) as exc_info:
            message_decode(b'{"sdp":"v=0"}')
        assert exc_info.value.kind is DecodeErrorKind.UNKNOWN_TAG

    @pytest.mark.parametrize(
        "payload",
        [
            b"not json",
            b"\xff\xfe",
            b"[1,2,3]",
            b'{"type":"offer"}',
            b'{"type":"offer","sdp":5}',
            b'{"type":"ice","candidate":"c"}',
            b'{"type":"ice","candidate":"c","sdpMLineIndex":"0"}',
            b'{"type":"ice","candidate":"c","sdpMLineIndex":4294967296}',
            b'{"type":"ice","candidate":"c","sdpMLineIndex":0,"sdpMid":7}',
            b'{"type":"screenInfo","width":1920,"height":1080}',
            b'{"type":"screenInfo","width":19.5,"height":1080,"scale":1}',
            b'{"type":"screenInfo","width":true,"height":1080,"scale":1}',
        ],
    )
    def test_malformed(self, payload):
        """Test structurally wrong payloads are MALFORMED"""
        with pytest.raises(DecodeError) as exc_info:
            message_decode(payload)
        assert exc_info.value.kind is DecodeErrorKind.MALFORMED

    def test_integer_scale_widens(self):
        """Test an integral scale decodes as float"""
        message = message_decode(b'{"type":"screenInfo","width":800,"height":600,"scale":2}')
        assert message == ScreenInfo(width=800, height=600, scale=2.0)

    def test_extra_fields_ignored(self):
        """Test unknown fields do not break decoding"""
        message = message_decode(b'{"type":"answer","sdp":"v=1","extra":true}')
        assert message == Answer(sdp="v=1")

    def test_null_mid_decodes_as_none(self):
        """Test explicit null sdpMid is accepted"""
        message = message_decode(
            b'{"type":"ice","candidate":"c","sdpMLineIndex":0,"sdpMid":null}'
        )
        assert message.sdp_mid is None

    def test_decode_error_is_value_error(self):
        """Test DecodeError can be caught as ValueError"""
        with pytest.raises(ValueError):
            message_decode(b"{}")
