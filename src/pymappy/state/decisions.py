"""Zone tracker decisions.

Every observed snapshot is classified into exactly one :class:`Decision`.
Only the emitter turns decisions into wire messages.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class DecisionKind(StrEnum):
    NO_CHANGE = "no_change"
    ZONE_CHANGED = "zone_changed"
    IGNORED = "ignored"
    SETTLED = "settled"


class Decision(BaseModel):
    """Outcome of :meth:`ZoneTracker.observe`.

    ``old_zone_id``/``new_zone_id`` are only set for ``ZONE_CHANGED``.
    ``scannable`` is ``False`` when the new zone id is ``0``.
    ``settle_ticks_remaining`` carries the countdown for ``IGNORED``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: DecisionKind
    old_zone_id: int | None = None
    new_zone_id: int | None = None
    scannable: bool = True
    settle_ticks_remaining: int = 0

    @classmethod
    def no_change(cls) -> Decision:
        return cls(kind=DecisionKind.NO_CHANGE)

    @classmethod
    def zone_changed(cls, old_zone_id: int, new_zone_id: int) -> Decision:
        return cls(
            kind=DecisionKind.ZONE_CHANGED,
            old_zone_id=old_zone_id,
            new_zone_id=new_zone_id,
            scannable=new_zone_id > 0,
        )

    @classmethod
    def ignored(cls, settle_ticks_remaining: int) -> Decision:
        return cls(kind=DecisionKind.IGNORED, settle_ticks_remaining=settle_ticks_remaining)

    @classmethod
    def settled(cls) -> Decision:
        return cls(kind=DecisionKind.SETTLED)
