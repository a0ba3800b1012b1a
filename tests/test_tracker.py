from __future__ import annotations

import pytest
from pydantic import ValidationError

from pymappy.exceptions import MappyConfigError
from pymappy.models.actor import ActorSnapshot, Position
from pymappy.state.decisions import DecisionKind
from pymappy.state.tracker import TrackerMode, TrackerState, ZoneTracker


def _snap(zone_id: int) -> ActorSnapshot:
    return ActorSnapshot(name="Warrior", zone_id=zone_id, position=Position(x=1.0, y=2.0, z=3.0), heading=0.0)


def _enter_zone(tracker: ZoneTracker, zone_id: int) -> None:
    """Observe *zone_id* and drain the settle window."""
    assert tracker.observe(_snap(zone_id)).kind == DecisionKind.ZONE_CHANGED
    for _ in range(20):
        if tracker.observe(_snap(zone_id)).kind == DecisionKind.SETTLED:
            return
    raise AssertionError("settle window never completed")


def test_first_known_zone_is_reported_as_transition_from_unknown() -> None:
    tracker = ZoneTracker(zone_settle_seconds=3)

    decision = tracker.observe(_snap(100))

    assert decision.kind == DecisionKind.ZONE_CHANGED
    assert decision.old_zone_id == 0
    assert decision.new_zone_id == 100
    assert decision.scannable is True
    assert tracker.current_zone_id == 100
    assert tracker.is_settling


def test_zone_zero_before_any_known_zone_is_no_change() -> None:
    tracker = ZoneTracker()

    decision = tracker.observe(_snap(0))

    assert decision.kind == DecisionKind.NO_CHANGE
    assert tracker.state.mode == TrackerMode.IDLE
    assert tracker.current_zone_id == 0


def test_same_zone_is_no_change_and_arms_tracker() -> None:
    tracker = ZoneTracker(zone_settle_seconds=1)
    _enter_zone(tracker, 100)
    assert tracker.state.mode == TrackerMode.IDLE

    for _ in range(5):
        assert tracker.observe(_snap(100)).kind == DecisionKind.NO_CHANGE

    assert tracker.state.mode == TrackerMode.ARMED


def test_transition_is_followed_by_exactly_settle_seconds_ignored_ticks() -> None:
    tracker = ZoneTracker(zone_settle_seconds=3)
    _enter_zone(tracker, 100)
    tracker.observe(_snap(100))

    decisions = [tracker.observe(_snap(105)) for _ in range(5)]

    assert [d.kind for d in decisions] == [
        DecisionKind.ZONE_CHANGED,
        DecisionKind.IGNORED,
        DecisionKind.IGNORED,
        DecisionKind.IGNORED,
        DecisionKind.SETTLED,
    ]
    assert decisions[0].old_zone_id == 100
    assert decisions[0].new_zone_id == 105
    assert [d.settle_ticks_remaining for d in decisions[1:4]] == [3, 2, 1]
    assert tracker.observe(_snap(105)).kind == DecisionKind.NO_CHANGE


def test_counter_sits_at_zero_for_one_final_settling_tick() -> None:
    tracker = ZoneTracker(zone_settle_seconds=2)
    tracker.observe(_snap(100))
    tracker.observe(_snap(100))
    tracker.observe(_snap(100))

    state = tracker.state
    assert state.mode == TrackerMode.SETTLING
    assert state.settle_ticks_remaining == 0

    assert tracker.observe(_snap(100)).kind == DecisionKind.SETTLED
    assert tracker.state.mode == TrackerMode.IDLE


def test_snapshots_during_settle_window_do_not_change_tracked_zone() -> None:
    tracker = ZoneTracker(zone_settle_seconds=3)
    tracker.observe(_snap(100))

    assert tracker.observe(_snap(999)).kind == DecisionKind.IGNORED
    assert tracker.observe(_snap(0)).kind == DecisionKind.IGNORED
    assert tracker.current_zone_id == 100


def test_transition_to_zone_zero_settles_but_keeps_tracked_zone() -> None:
    tracker = ZoneTracker(zone_settle_seconds=3)
    _enter_zone(tracker, 100)

    decision = tracker.observe(_snap(0))

    assert decision.kind == DecisionKind.ZONE_CHANGED
    assert decision.old_zone_id == 100
    assert decision.new_zone_id == 0
    assert decision.scannable is False
    assert tracker.current_zone_id == 100
    assert tracker.is_settling

    kinds = [tracker.observe(_snap(0)).kind for _ in range(4)]
    assert kinds == [DecisionKind.IGNORED] * 3 + [DecisionKind.SETTLED]

    # Back from the load screen in the same zone: no new transition.
    assert tracker.observe(_snap(100)).kind == DecisionKind.NO_CHANGE


def test_zone_still_zero_after_settle_enters_settle_again() -> None:
    tracker = ZoneTracker(zone_settle_seconds=1)
    _enter_zone(tracker, 100)
    tracker.observe(_snap(0))
    tracker.observe(_snap(0))
    assert tracker.observe(_snap(0)).kind == DecisionKind.SETTLED

    decision = tracker.observe(_snap(0))

    assert decision.kind == DecisionKind.ZONE_CHANGED
    assert tracker.current_zone_id == 100


def test_state_property_is_a_copy() -> None:
    tracker = ZoneTracker()
    tracker.observe(_snap(100))

    copy = tracker.state
    copy.current_zone_id = 1

    assert tracker.current_zone_id == 100


def test_reset_forgets_tracked_zone() -> None:
    tracker = ZoneTracker()
    tracker.observe(_snap(100))

    tracker.reset()

    assert tracker.state == TrackerState()


def test_tracker_state_rejects_negative_countdown() -> None:
    with pytest.raises(ValidationError):
        TrackerState(settle_ticks_remaining=-1)

    state = TrackerState()
    with pytest.raises(ValidationError):
        state.settle_ticks_remaining = -1


def test_non_positive_settle_seconds_rejected() -> None:
    with pytest.raises(MappyConfigError):
        ZoneTracker(zone_settle_seconds=0)
