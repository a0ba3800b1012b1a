from __future__ import annotations

from dataclasses import dataclass, field

from pymappy._transport import MessageHandler
from pymappy.emitter import EventEmitter
from pymappy.models.actor import ActorSnapshot, Position
from pymappy.state.decisions import Decision


@dataclass
class RecordingPublisher:
    sent: list[str] = field(default_factory=list)
    connected: bool = True

    def send(self, text: str) -> None:
        self.sent.append(text)

    def on_message(self, handler: MessageHandler) -> None:  # pragma: no cover
        pass


def _snap(zone_id: int = 100, *, x: float = 1.0, heading: float = 0.0) -> ActorSnapshot:
    return ActorSnapshot(name="Warrior", zone_id=zone_id, position=Position(x=x, y=2.0, z=3.0), heading=heading)


def test_identity_is_announced_before_first_position() -> None:
    publisher = RecordingPublisher()
    emitter = EventEmitter(publisher)

    messages = emitter.handle(Decision.no_change(), _snap())

    assert messages == ["PLAYER_NAME::Warrior", "PLAYER_POSITION::1,2,3,180"]
    assert publisher.sent == messages
    assert emitter.identity_announced


def test_identity_is_announced_once() -> None:
    publisher = RecordingPublisher()
    emitter = EventEmitter(publisher)

    emitter.announce_identity(_snap())
    emitter.handle(Decision.no_change(), _snap())
    emitter.handle(Decision.no_change(), _snap())

    assert publisher.sent.count("PLAYER_NAME::Warrior") == 1


def test_identity_is_announced_even_when_first_decision_is_ignored() -> None:
    publisher = RecordingPublisher()
    emitter = EventEmitter(publisher)

    emitter.handle(Decision.ignored(3), _snap())

    assert publisher.sent == ["PLAYER_NAME::Warrior"]


def test_one_position_per_tick_without_zone_changes() -> None:
    publisher = RecordingPublisher()
    emitter = EventEmitter(publisher)
    emitter.announce_identity(_snap())

    for i in range(10):
        emitter.handle(Decision.no_change(), _snap(x=float(i)))

    positions = [m for m in publisher.sent if m.startswith("PLAYER_POSITION::")]
    assert len(positions) == 10
    assert not [m for m in publisher.sent if m.startswith("PLAYER_MAP_ID::")]
    assert positions[3] == "PLAYER_POSITION::3,2,3,180"


def test_zone_change_emits_map_id_and_no_position() -> None:
    publisher = RecordingPublisher()
    emitter = EventEmitter(publisher)
    emitter.announce_identity(_snap())

    messages = emitter.handle(Decision.zone_changed(100, 105), _snap(105))

    assert messages == ["PLAYER_MAP_ID::105"]


def test_zone_change_to_zero_still_emits_map_id() -> None:
    publisher = RecordingPublisher()
    emitter = EventEmitter(publisher)
    emitter.announce_identity(_snap())

    messages = emitter.handle(Decision.zone_changed(100, 0), _snap(0))

    assert messages == ["PLAYER_MAP_ID::0"]


def test_no_change_in_zone_zero_is_suppressed() -> None:
    publisher = RecordingPublisher()
    emitter = EventEmitter(publisher)
    emitter.announce_identity(_snap())

    assert emitter.handle(Decision.no_change(), _snap(0)) == []
    assert publisher.sent == ["PLAYER_NAME::Warrior"]


def test_settle_window_decisions_send_nothing() -> None:
    publisher = RecordingPublisher()
    emitter = EventEmitter(publisher)
    emitter.announce_identity(_snap())

    assert emitter.handle(Decision.ignored(2), _snap()) == []
    assert emitter.handle(Decision.settled(), _snap()) == []
    assert publisher.sent == ["PLAYER_NAME::Warrior"]


def test_reset_announces_identity_again() -> None:
    publisher = RecordingPublisher()
    emitter = EventEmitter(publisher)
    emitter.announce_identity(_snap())

    emitter.reset()
    emitter.announce_identity(_snap())

    assert publisher.sent == ["PLAYER_NAME::Warrior", "PLAYER_NAME::Warrior"]
