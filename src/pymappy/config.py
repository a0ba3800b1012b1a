"""Daemon configuration for pymappy."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from pymappy._constants import (
    DEFAULT_MQTT_PORT,
    DEFAULT_MQTT_SUBSCRIBE_TOPIC,
    DEFAULT_MQTT_TOPIC,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_SETTLE_INTERVAL_MS,
    DEFAULT_STARTUP_DELAY_MS,
    DEFAULT_WEBSOCKET_URL,
    DEFAULT_ZONE_SETTLE_SECONDS,
)
from pymappy.exceptions import MappyConfigError

_TRANSPORTS = frozenset({"websocket", "mqtt"})


def _env_int(env: Mapping[str, str], key: str) -> int | None:
    value = env.get(key)
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError as exc:
        raise MappyConfigError(f"{key} must be an integer, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class SchedulerConfig:
    """Timing for the poll scheduler.

    Parameters
    ----------
    startup_delay_ms : int
        One-time delay before the first snapshot read.
    poll_interval_ms : int
        Interval between regular polls.
    zone_settle_seconds : int
        Number of settle ticks to suppress output after a zone change.
    settle_interval_ms : int
        Resolution of the settle countdown. Independent of
        ``poll_interval_ms``; the countdown is a fixed real-time debounce.
    """

    startup_delay_ms: int = DEFAULT_STARTUP_DELAY_MS
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    zone_settle_seconds: int = DEFAULT_ZONE_SETTLE_SECONDS
    settle_interval_ms: int = DEFAULT_SETTLE_INTERVAL_MS

    def __post_init__(self) -> None:
        for field in dataclasses.fields(self):
            value = getattr(self, field.name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise MappyConfigError(f"{field.name} must be an integer, got {value!r}")
            if value <= 0:
                raise MappyConfigError(f"{field.name} must be positive, got {value}")

    @property
    def startup_delay(self) -> float:
        return self.startup_delay_ms / 1000.0

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000.0

    @property
    def settle_interval(self) -> float:
        return self.settle_interval_ms / 1000.0


@dataclasses.dataclass(frozen=True)
class MappyConfig:
    """Daemon configuration.

    Parameters
    ----------
    scheduler : SchedulerConfig
        Poll timing.
    transport : str
        Outbound channel, ``"websocket"`` or ``"mqtt"``.
    websocket_url : str
        WebSocket endpoint used when ``transport == "websocket"``.
    mqtt_host : str
        Broker host used when ``transport == "mqtt"``.
    mqtt_port : int
        Broker port.
    mqtt_topic : str
        Topic every outbound message is published to.
    mqtt_subscribe_topic : str or None
        Topic for inbound messages, ``None`` to skip subscribing.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    read_timeout_ms : int or None
        Upper bound for a single snapshot read. Defaults to the poll
        interval so a stuck read never outlives its tick.
    """

    scheduler: SchedulerConfig = dataclasses.field(default_factory=SchedulerConfig)
    transport: str = "websocket"
    websocket_url: str = DEFAULT_WEBSOCKET_URL
    mqtt_host: str = "localhost"
    mqtt_port: int = DEFAULT_MQTT_PORT
    mqtt_topic: str = DEFAULT_MQTT_TOPIC
    mqtt_subscribe_topic: str | None = DEFAULT_MQTT_SUBSCRIBE_TOPIC
    mqtt_keepalive: int = 60
    read_timeout_ms: int | None = None

    def __post_init__(self) -> None:
        if self.transport not in _TRANSPORTS:
            raise MappyConfigError(f"transport must be one of {sorted(_TRANSPORTS)}, got {self.transport!r}")
        if self.read_timeout_ms is not None and self.read_timeout_ms <= 0:
            raise MappyConfigError(f"read_timeout_ms must be positive, got {self.read_timeout_ms}")

    @property
    def read_timeout(self) -> float:
        """Snapshot read timeout in seconds."""
        if self.read_timeout_ms is None:
            return self.scheduler.poll_interval
        return self.read_timeout_ms / 1000.0

    @classmethod
    def from_env(cls, **overrides: Any) -> MappyConfig:
        """Create configuration from ``MAPPY_*`` environment variables.

        Explicit keyword arguments override environment values. Scheduler
        fields may be overridden either with a ``scheduler`` argument
        (a :class:`SchedulerConfig` or a dict) or by name at top level.
        """
        env = os.environ

        scheduler_kwargs: dict[str, int] = {}
        _ENV_SCHEDULER_MAP = {
            "MAPPY_STARTUP_DELAY_MS": "startup_delay_ms",
            "MAPPY_POLL_INTERVAL_MS": "poll_interval_ms",
            "MAPPY_ZONE_SETTLE_SECONDS": "zone_settle_seconds",
            "MAPPY_SETTLE_INTERVAL_MS": "settle_interval_ms",
        }
        for env_key, field_name in _ENV_SCHEDULER_MAP.items():
            parsed = _env_int(env, env_key)
            if parsed is not None:
                scheduler_kwargs[field_name] = parsed

        for field_name in _ENV_SCHEDULER_MAP.values():
            if field_name in overrides:
                scheduler_kwargs[field_name] = overrides.pop(field_name)

        scheduler_overrides = overrides.pop("scheduler", None)
        if isinstance(scheduler_overrides, dict):
            scheduler_kwargs.update(scheduler_overrides)
        elif isinstance(scheduler_overrides, SchedulerConfig):
            scheduler_kwargs = dataclasses.asdict(scheduler_overrides)

        config_kwargs: dict[str, Any] = {"scheduler": SchedulerConfig(**scheduler_kwargs)}

        _ENV_CONFIG_MAP = {
            "MAPPY_TRANSPORT": "transport",
            "MAPPY_WEBSOCKET_URL": "websocket_url",
            "MAPPY_MQTT_HOST": "mqtt_host",
            "MAPPY_MQTT_TOPIC": "mqtt_topic",
            "MAPPY_MQTT_SUBSCRIBE_TOPIC": "mqtt_subscribe_topic",
        }
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val.strip()

        for env_key, field_name in (
            ("MAPPY_MQTT_PORT", "mqtt_port"),
            ("MAPPY_MQTT_KEEPALIVE", "mqtt_keepalive"),
            ("MAPPY_READ_TIMEOUT_MS", "read_timeout_ms"),
        ):
            parsed = _env_int(env, env_key)
            if parsed is not None:
                config_kwargs[field_name] = parsed

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
