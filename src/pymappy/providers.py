"""Actor snapshot providers.

Reading the game's memory layout is out of scope for this package; any
object satisfying :class:`ActorProvider` can be plugged into the daemon.
:class:`ReplayActorProvider` replays a JSON-lines capture, which is what
the CLI and the tests use.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from pymappy.exceptions import ActorNotAttachedError, MappyError
from pymappy.models.actor import ActorSnapshot

_logger = logging.getLogger(__name__)


class ActorProvider(Protocol):
    """Returns the locally controlled actor.

    Implementations must return (or raise) within normal memory-read
    latency and raise :class:`ActorNotAttachedError` when the host process
    is not available.
    """

    def get_local_actor(self) -> ActorSnapshot:
        ...


class ReplayActorProvider:
    """Replay recorded snapshots, one per call.

    A ``null`` record (``None``) in the capture stands for a read taken
    while the game was not attached. Once the capture is exhausted the
    provider raises :class:`ActorNotAttachedError`, unless *loop* is set.
    """

    def __init__(self, records: Iterable[ActorSnapshot | Mapping[str, Any] | None], *, loop: bool = False) -> None:
        self._snapshots: list[ActorSnapshot | None] = [self._coerce(record) for record in records]
        self._loop = loop
        self._index = 0
        self._lock = threading.Lock()

    @staticmethod
    def _coerce(record: ActorSnapshot | Mapping[str, Any] | None) -> ActorSnapshot | None:
        if record is None or isinstance(record, ActorSnapshot):
            return record
        try:
            return ActorSnapshot.model_validate(dict(record))
        except ValidationError as exc:
            raise MappyError(f"Invalid snapshot record: {exc}") from exc

    @classmethod
    def from_file(cls, path: str | Path, *, loop: bool = False) -> ReplayActorProvider:
        """Load a JSON-lines capture. Blank lines are skipped."""
        records: list[Mapping[str, Any] | None] = []
        try:
            with Path(path).open(encoding="utf-8") as handle:
                for line_no, line in enumerate(handle, start=1):
                    text = line.strip()
                    if not text:
                        continue
                    try:
                        records.append(json.loads(text))
                    except json.JSONDecodeError as exc:
                        raise MappyError(f"{path}:{line_no}: invalid JSON: {exc}") from exc
        except OSError as exc:
            raise MappyError(f"Cannot read capture {path}: {exc}") from exc
        _logger.debug("Loaded %d snapshot records from %s", len(records), path)
        return cls(records, loop=loop)

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def remaining(self) -> int:
        return max(0, len(self._snapshots) - self._index)

    def get_local_actor(self) -> ActorSnapshot:
        with self._lock:
            if self._index >= len(self._snapshots):
                if not self._loop or not self._snapshots:
                    raise ActorNotAttachedError("Replay capture exhausted")
                self._index = 0
            snapshot = self._snapshots[self._index]
            self._index += 1
        if snapshot is None:
            raise ActorNotAttachedError()
        return snapshot
