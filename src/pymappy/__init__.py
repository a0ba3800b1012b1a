"""pymappy - Stream a game client's player identity, zone and position to a remote consumer."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pymappy")
except PackageNotFoundError:
    __version__ = "0+local"
from pymappy._mqtt import MqttPublisher, MqttTarget
from pymappy._transport import Publisher, WebSocketPublisher
from pymappy.config import MappyConfig, SchedulerConfig
from pymappy.daemon import MappyDaemon
from pymappy.emitter import EventEmitter
from pymappy.exceptions import (
    ActorNotAttachedError,
    MappyConfigError,
    MappyError,
    MappyTransportError,
    ProtocolError,
    SchedulerStateError,
    TransportUnavailableError,
)
from pymappy.models import ActorSnapshot, Position
from pymappy.protocol import MessageKind, WireMessage, heading_to_degrees, parse_message
from pymappy.providers import ActorProvider, ReplayActorProvider
from pymappy.scheduler import PollScheduler, SchedulerState
from pymappy.state import Decision, DecisionKind, TrackerMode, TrackerState, ZoneTracker

__all__ = [
    "__version__",
    "ActorNotAttachedError",
    "ActorProvider",
    "ActorSnapshot",
    "Decision",
    "DecisionKind",
    "EventEmitter",
    "MappyConfig",
    "MappyConfigError",
    "MappyDaemon",
    "MappyError",
    "MappyTransportError",
    "MessageKind",
    "MqttPublisher",
    "MqttTarget",
    "PollScheduler",
    "Position",
    "ProtocolError",
    "Publisher",
    "ReplayActorProvider",
    "SchedulerConfig",
    "SchedulerState",
    "SchedulerStateError",
    "TrackerMode",
    "TrackerState",
    "TransportUnavailableError",
    "WebSocketPublisher",
    "WireMessage",
    "ZoneTracker",
    "heading_to_degrees",
    "parse_message",
]
