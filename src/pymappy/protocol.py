"""Outbound wire protocol.

Messages are plain ``KEY::value`` text frames:

* ``PLAYER_NAME::<name>``
* ``PLAYER_MAP_ID::<zone id>``
* ``PLAYER_POSITION::<x>,<y>,<z>,<direction degrees>``

Consumers already parse these frames, so the formatting here is frozen,
including the heading convention in :func:`heading_to_degrees`.
"""

from __future__ import annotations

import math
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from pymappy._constants import (
    KEY_PLAYER_MAP_ID,
    KEY_PLAYER_NAME,
    KEY_PLAYER_POSITION,
    MESSAGE_SEPARATOR,
)
from pymappy.exceptions import ProtocolError
from pymappy.models.actor import ActorSnapshot

# Significant digits of the default double rendering consumers already parse.
_SIGNIFICANT_DIGITS = 15


class MessageKind(StrEnum):
    PLAYER_NAME = KEY_PLAYER_NAME
    PLAYER_MAP_ID = KEY_PLAYER_MAP_ID
    PLAYER_POSITION = KEY_PLAYER_POSITION


class WireMessage(BaseModel):
    """A parsed wire frame. Only the fields of its ``kind`` are set."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: MessageKind
    name: str | None = None
    zone_id: int | None = None
    x: float | None = None
    y: float | None = None
    z: float | None = None
    direction: float | None = None


def heading_to_degrees(heading: float) -> float:
    """Remap a raw heading in radians to the consumer's forward-facing degrees.

    ``abs(heading * (180 / pi) - 180)``: ``0 -> 180``, ``pi -> 0``,
    ``2*pi -> 180``. The result is never negative.
    """
    return math.fabs(heading * (180 / math.pi) - 180)


def format_number(value: float) -> str:
    """Render a float with 15 significant digits.

    Trailing zeros are dropped (``180.0 -> "180"``, ``122.70422048691768 ->
    "122.704220486918"``), exponents are upper-case (``1e-05 -> "1E-05"``)
    and negative zero renders as ``"0"``.
    """
    if value == 0:
        return "0"
    return f"{value:.{_SIGNIFICANT_DIGITS}g}".replace("e", "E")


def _frame(key: str, value: str) -> str:
    return f"{key}{MESSAGE_SEPARATOR}{value}"


def player_name_message(snapshot: ActorSnapshot) -> str:
    return _frame(KEY_PLAYER_NAME, snapshot.name)


def map_id_message(zone_id: int) -> str:
    if zone_id < 0:
        raise ValueError(f"zone id must be unsigned, got {zone_id}")
    return _frame(KEY_PLAYER_MAP_ID, str(zone_id))


def position_message(snapshot: ActorSnapshot) -> str:
    position = snapshot.position
    direction = heading_to_degrees(snapshot.heading)
    values = (position.x, position.y, position.z, direction)
    return _frame(KEY_PLAYER_POSITION, ",".join(format_number(v) for v in values))


def parse_message(text: str) -> WireMessage:
    """Parse a wire frame.

    Raises
    ------
    ProtocolError
        The frame has no separator, an unknown key, or a malformed value.
    """
    key, sep, value = text.partition(MESSAGE_SEPARATOR)
    if not sep:
        raise ProtocolError(f"Missing '{MESSAGE_SEPARATOR}' separator", raw=text)
    try:
        kind = MessageKind(key)
    except ValueError as exc:
        raise ProtocolError(f"Unknown message key {key!r}", raw=text) from exc

    if kind == MessageKind.PLAYER_NAME:
        return WireMessage(kind=kind, name=value)

    if kind == MessageKind.PLAYER_MAP_ID:
        if not (value.isascii() and value.isdecimal()):
            raise ProtocolError(f"Map id must be an unsigned integer, got {value!r}", raw=text)
        return WireMessage(kind=kind, zone_id=int(value))

    parts = value.split(",")
    if len(parts) != 4:
        raise ProtocolError(f"Position needs 4 comma separated values, got {len(parts)}", raw=text)
    try:
        x, y, z, direction = (float(part) for part in parts)
    except ValueError as exc:
        raise ProtocolError(f"Position values must be numeric: {value!r}", raw=text) from exc
    return WireMessage(kind=kind, x=x, y=y, z=z, direction=direction)
