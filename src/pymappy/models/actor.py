"""Actor snapshot model."""

from __future__ import annotations

import math
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class Position(BaseModel):
    """3D coordinate of an actor in its zone."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    x: float = Field(validation_alias=AliasChoices("x", "X"))
    y: float = Field(validation_alias=AliasChoices("y", "Y"))
    z: float = Field(validation_alias=AliasChoices("z", "Z"))

    @field_validator("x", "y", "z")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("coordinate must be finite")
        return value


class ActorSnapshot(BaseModel):
    """A single point-in-time read of the locally controlled actor.

    Produced fresh on every poll and never mutated.

    Parameters
    ----------
    name : str
        Character name.
    zone_id : int
        Map/zone id; ``0`` means unknown (read taken mid-load).
    position : Position
        Coordinate in the current zone.
    heading : float
        Raw heading in radians, as read from memory.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str = Field(validation_alias=AliasChoices("name", "Name"))
    zone_id: int = Field(ge=0, validation_alias=AliasChoices("zone_id", "zoneId", "mapId", "MapID", "map_id"))
    position: Position = Field(validation_alias=AliasChoices("position", "coordinate", "Coordinate"))
    heading: float = Field(validation_alias=AliasChoices("heading", "Heading", "heading_radians"))

    @model_validator(mode="before")
    @classmethod
    def _flatten_coordinates(cls, values: Any) -> Any:
        # Captures may carry x/y/z at the top level instead of a nested position.
        if not isinstance(values, dict):
            return values
        if any(key in values for key in ("position", "coordinate", "Coordinate")):
            return values
        if all(key in values for key in ("x", "y", "z")):
            merged = dict(values)
            merged["position"] = {"x": merged.pop("x"), "y": merged.pop("y"), "z": merged.pop("z")}
            return merged
        return values

    @field_validator("heading")
    @classmethod
    def _finite_heading(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("heading must be finite")
        return value

    @property
    def has_valid_zone(self) -> bool:
        """Whether the zone id is meaningful (non-zero)."""
        return self.zone_id > 0
