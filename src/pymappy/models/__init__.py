"""Data models for actor snapshots."""

from pymappy.models.actor import ActorSnapshot, Position

__all__ = [
    "ActorSnapshot",
    "Position",
]
