"""Signaling control messages and their JSON wire codec"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, Optional, Union

from screen2screen.common.errors import DecodeError, DecodeErrorKind

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


class MessageType(Enum):
    """Discriminator values carried in the `type` field"""

    OFFER = "offer"
    ANSWER = "answer"
    ICE = "ice"
    SCREEN_INFO = "screenInfo"
    CURSOR_POS = "cursorPos"


@dataclass(frozen=True)
class Offer:
    """Session description proposed by the viewer"""

    msg_type: ClassVar[MessageType] = MessageType.OFFER
    sdp: str


@dataclass(frozen=True)
class Answer:
    """Session description accepted by the host"""

    msg_type: ClassVar[MessageType] = MessageType.ANSWER
    sdp: str


@dataclass(frozen=True)
class IceCandidate:
    """One connectivity candidate for the peer-to-peer session"""

    msg_type: ClassVar[MessageType] = MessageType.ICE
    candidate: str
    sdp_mline_index: int
    sdp_mid: Optional[str] = None


@dataclass(frozen=True)
class ScreenInfo:
    """Geometry of the host's captured screen"""

    msg_type: ClassVar[MessageType] = MessageType.SCREEN_INFO
    width: int
    height: int
    scale: float


@dataclass(frozen=True)
class CursorPosition:
    """
    Host cursor position over the signaling channel.

    Superseded by cursor feedback on the data channel; decoded so that older
    hosts do not trip decode errors, but nothing acts on it.
    """

    msg_type: ClassVar[MessageType] = MessageType.CURSOR_POS
    x: float
    y: float


ControlMessage = Union[Offer, Answer, IceCandidate, ScreenInfo, CursorPosition]


def message_encode(message: ControlMessage) -> bytes:
    """
    Serialize a control message to its compact JSON payload

    Args:
        message: Message to encode

    Returns:
        UTF-8 JSON bytes, without framing

    Raises:
        TypeError: If message is not a ControlMessage case
    """
    data: Dict[str, Any] = {"type": message.msg_type.value}
    if isinstance(message, (Offer, Answer)):
        data["sdp"] = message.sdp
    elif isinstance(message, IceCandidate):
        data["candidate"] = message.candidate
        data["sdpMLineIndex"] = message.sdp_mline_index
        if message.sdp_mid is not None:
            data["sdpMid"] = message.sdp_mid
    elif isinstance(message, ScreenInfo):
        data["width"] = message.width
        data["height"] = message.height
        data["scale"] = float(message.scale)
    elif isinstance(message, CursorPosition):
        data["x"] = float(message.x)
        data["y"] = float(message.y)
    else:
        raise TypeError(f"Not a control message: {message!r}")
    return json.dumps(data, separators=(",", ":")).encode("utf-8")


def message_decode(data: bytes) -> ControlMessage:
    """
    Deserialize a control message from a frame payload

    Args:
        data: UTF-8 JSON bytes

    Returns:
        Decoded message

    Raises:
        DecodeError: UNKNOWN_TAG when `type` is absent or unrecognized,
            MALFORMED for anything else structurally wrong
    """
    payload = payloadObject_parse(data)
    tag = payload.get("type")
    if not isinstance(tag, str):
        raise DecodeError(DecodeErrorKind.UNKNOWN_TAG, f"missing or non-string type: {tag!r}")
    try:
        msg_type = MessageType(tag)
    except ValueError:
        raise DecodeError(DecodeErrorKind.UNKNOWN_TAG, f"unknown type {tag!r}") from None
    return _PARSERS[msg_type](payload)


def payloadObject_parse(data: bytes) -> Dict[str, Any]:
    """
    Parse bytes into a JSON object

    Shared with the data channel codec.

    Raises:
        DecodeError: MALFORMED when not UTF-8 JSON or not an object
    """
    try:
        parsed = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(DecodeErrorKind.MALFORMED, f"invalid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise DecodeError(DecodeErrorKind.MALFORMED, "payload is not a JSON object")
    return parsed


def stringField_get(payload: Dict[str, Any], name: str) -> str:
    """Required string field"""
    value = payload.get(name)
    if not isinstance(value, str):
        raise DecodeError(DecodeErrorKind.MALFORMED, f"field {name!r} must be a string")
    return value


def intField_get(payload: Dict[str, Any], name: str) -> int:
    """Required integer field; booleans are rejected"""
    value = payload.get(name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(DecodeErrorKind.MALFORMED, f"field {name!r} must be an integer")
    return value


def floatField_get(payload: Dict[str, Any], name: str) -> float:
    """Required number field; integers are widened, booleans are rejected"""
    value = payload.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(DecodeErrorKind.MALFORMED, f"field {name!r} must be a number")
    return float(value)


def _offer_parse(payload: Dict[str, Any]) -> Offer:
    return Offer(sdp=stringField_get(payload, "sdp"))


def _answer_parse(payload: Dict[str, Any]) -> Answer:
    return Answer(sdp=stringField_get(payload, "sdp"))


def _ice_parse(payload: Dict[str, Any]) -> IceCandidate:
    index = intField_get(payload, "sdpMLineIndex")
    if not INT32_MIN <= index <= INT32_MAX:
        raise DecodeError(DecodeErrorKind.MALFORMED, f"sdpMLineIndex {index} exceeds int32")
    mid = payload.get("sdpMid")
    if mid is not None and not isinstance(mid, str):
        raise DecodeError(DecodeErrorKind.MALFORMED, "field 'sdpMid' must be a string or null")
    return IceCandidate(
        candidate=stringField_get(payload, "candidate"),
        sdp_mline_index=index,
        sdp_mid=mid,
    )


def _screenInfo_parse(payload: Dict[str, Any]) -> ScreenInfo:
    return ScreenInfo(
        width=intField_get(payload, "width"),
        height=intField_get(payload, "height"),
        scale=floatField_get(payload, "scale"),
    )


def _cursorPos_parse(payload: Dict[str, Any]) -> CursorPosition:
    return CursorPosition(x=floatField_get(payload, "x"), y=floatField_get(payload, "y"))


_PARSERS: Dict[MessageType, Callable[[Dict[str, Any]], ControlMessage]] = {
    MessageType.OFFER: _offer_parse,
    MessageType.ANSWER: _answer_parse,
    MessageType.ICE: _ice_parse,
    MessageType.SCREEN_INFO: _screenInfo_parse,
    MessageType.CURSOR_POS: _cursorPos_parse,
}
