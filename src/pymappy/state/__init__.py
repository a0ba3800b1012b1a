"""Tracker state layer.

This package is the single source of truth for how fresh actor snapshots
are classified into zone transitions, and for the settle window that
follows each transition.
"""

from pymappy.state.decisions import Decision, DecisionKind
from pymappy.state.tracker import TrackerMode, TrackerState, ZoneTracker

__all__ = [
    "Decision",
    "DecisionKind",
    "TrackerMode",
    "TrackerState",
    "ZoneTracker",
]
