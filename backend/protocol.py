"""
Simulator event framing.

The driving simulator talks socket.io over a raw WebSocket: a text frame
starting with "42" carries an event as a JSON array ["name", payload].
"""
import json
from typing import Any, Optional, Tuple

EVENT_PREFIX = "42"
MANUAL_FRAME = '42["manual",{}]'


def has_data(frame: str) -> Optional[str]:
    """
    Extract the JSON array from an event frame.

    Returns None when the frame carries no data (a null payload means the
    simulator is in manual mode).
    """
    if "null" in frame:
        return None
    b1 = frame.find("[")
    b2 = frame.rfind("}]")
    if b1 != -1 and b2 != -1:
        return frame[b1:b2 + 2]
    return None


def parse_event(frame: str) -> Tuple[Optional[str], Any]:
    """
    Returns:
        (event name, payload) for data frames, (None, None) when the frame
        is not an event or carries no data
    """
    if len(frame) <= 2 or not frame.startswith(EVENT_PREFIX):
        return None, None
    body = has_data(frame)
    if body is None:
        return None, None
    try:
        message = json.loads(body)
    except json.JSONDecodeError:
        return None, None
    if not isinstance(message, list) or not message:
        return None, None
    return message[0], message[1] if len(message) > 1 else None


def encode_event(name: str, payload: Any) -> str:
    return EVENT_PREFIX + json.dumps([name, payload], separators=(",", ":"))
