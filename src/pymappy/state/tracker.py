"""Zone transition tracking.

This is the only component allowed to mutate :class:`TrackerState`.
"""

from __future__ import annotations

import logging
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from pymappy._constants import DEFAULT_ZONE_SETTLE_SECONDS
from pymappy.exceptions import MappyConfigError
from pymappy.models.actor import ActorSnapshot
from pymappy.state.decisions import Decision

_logger = logging.getLogger(__name__)


class TrackerMode(StrEnum):
    IDLE = "idle"
    ARMED = "armed"
    SETTLING = "settling"


class TrackerState(BaseModel):
    """Mutable tracker state.

    ``IDLE`` means no known zone is being tracked yet (startup, or just after
    a settle window). ``ARMED`` means the current zone has been confirmed by
    at least one ``NO_CHANGE`` observation. ``SETTLING`` counts down the
    post-transition window; the counter may sit at ``0`` for one final tick.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    current_zone_id: int = Field(default=0, ge=0)
    mode: TrackerMode = TrackerMode.IDLE
    settle_ticks_remaining: int = Field(default=0, ge=0)
    observations: int = Field(default=0, ge=0)


class ZoneTracker:
    """Classify snapshots as same zone / zone change and gate the settle window.

    The tracker is deterministic: given the same sequence of snapshots it
    produces the same sequence of decisions. It owns no timers; the caller
    decides how often :meth:`observe` is invoked.
    """

    def __init__(self, *, zone_settle_seconds: int = DEFAULT_ZONE_SETTLE_SECONDS) -> None:
        if zone_settle_seconds <= 0:
            raise MappyConfigError(f"zone_settle_seconds must be positive, got {zone_settle_seconds}")
        self._zone_settle_seconds = zone_settle_seconds
        self._state = TrackerState()

    @property
    def state(self) -> TrackerState:
        """A copy of the current state."""
        return self._state.model_copy()

    @property
    def current_zone_id(self) -> int:
        return self._state.current_zone_id

    @property
    def is_settling(self) -> bool:
        return self._state.mode == TrackerMode.SETTLING

    def observe(self, snapshot: ActorSnapshot) -> Decision:
        """Classify *snapshot* against the tracked zone."""
        state = self._state
        state.observations += 1

        if state.mode == TrackerMode.SETTLING:
            return self._count_down()

        zone_id = snapshot.zone_id
        if zone_id == state.current_zone_id:
            # Zone 0 before any known zone stays IDLE; the emitter suppresses it.
            if zone_id != 0:
                state.mode = TrackerMode.ARMED
            return Decision.no_change()

        old_zone_id = state.current_zone_id
        if zone_id > 0:
            state.current_zone_id = zone_id
        else:
            # Mid-load read: keep the last known zone, still wait for memory to settle.
            _logger.debug("Zone id read as 0 while tracking %s; entering settle window", old_zone_id)
        state.settle_ticks_remaining = self._zone_settle_seconds
        state.mode = TrackerMode.SETTLING
        return Decision.zone_changed(old_zone_id, zone_id)

    def _count_down(self) -> Decision:
        state = self._state
        if state.settle_ticks_remaining == 0:
            state.mode = TrackerMode.IDLE
            return Decision.settled()
        remaining = state.settle_ticks_remaining
        state.settle_ticks_remaining = remaining - 1
        return Decision.ignored(remaining)

    def reset(self) -> None:
        """Forget the tracked zone (used when the daemon restarts)."""
        self._state = TrackerState()
