"""Turn tracker decisions into outbound wire messages."""

from __future__ import annotations

import logging

from pymappy import protocol
from pymappy._transport import Publisher
from pymappy.models.actor import ActorSnapshot
from pymappy.state.decisions import Decision, DecisionKind

_logger = logging.getLogger(__name__)


class EventEmitter:
    """Formats state into wire messages and forwards them to a publisher.

    Suppression rules:

    * the identity message goes out once, before anything else;
    * a zone change never shares a tick with a position update;
    * nothing is sent for zone id ``0`` outside of a zone change;
    * settle-window decisions are never sent.
    """

    def __init__(self, publisher: Publisher) -> None:
        self._publisher = publisher
        self._identity_announced = False

    @property
    def identity_announced(self) -> bool:
        return self._identity_announced

    def announce_identity(self, snapshot: ActorSnapshot) -> list[str]:
        """Send the identity message unless it already went out."""
        if self._identity_announced:
            return []
        self._identity_announced = True
        _logger.info("Character Detected: %s", snapshot.name)
        return self._send([protocol.player_name_message(snapshot)])

    def handle(self, decision: Decision, snapshot: ActorSnapshot) -> list[str]:
        """Emit the messages for one tick and return them in send order."""
        messages = self.announce_identity(snapshot)

        if decision.kind == DecisionKind.ZONE_CHANGED:
            assert decision.new_zone_id is not None  # noqa: S101
            return messages + self._send([protocol.map_id_message(decision.new_zone_id)])

        if decision.kind == DecisionKind.NO_CHANGE:
            if not snapshot.has_valid_zone:
                return messages
            return messages + self._send([protocol.position_message(snapshot)])

        if decision.kind == DecisionKind.IGNORED:
            _logger.debug("Scanning paused for: %s seconds...", decision.settle_ticks_remaining)
        return messages

    def reset(self) -> None:
        """Forget that identity was announced."""
        self._identity_announced = False

    def _send(self, messages: list[str]) -> list[str]:
        for message in messages:
            self._publisher.send(message)
        return messages
