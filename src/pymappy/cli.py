"""Command line entry point for the mappy daemon."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from collections.abc import Sequence
from typing import Any

from pymappy._mqtt import MqttPublisher, MqttTarget
from pymappy._transport import Publisher, WebSocketPublisher
from pymappy.config import MappyConfig
from pymappy.daemon import MappyDaemon
from pymappy.exceptions import MappyError
from pymappy.providers import ActorProvider, ReplayActorProvider

_logger = logging.getLogger("pymappy")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pymappy",
        description="Stream the local player's identity, zone and position to a remote consumer.",
    )
    parser.add_argument("--replay", metavar="FILE", required=True, help="JSON-lines snapshot capture to replay")
    parser.add_argument("--loop", action="store_true", help="restart the capture when it is exhausted")
    parser.add_argument("--transport", choices=("websocket", "mqtt"), help="outbound channel")
    parser.add_argument("--url", help="WebSocket URL")
    parser.add_argument("--mqtt-host", help="MQTT broker host")
    parser.add_argument("--mqtt-port", type=int, help="MQTT broker port")
    parser.add_argument("--mqtt-topic", help="MQTT topic for outbound messages")
    parser.add_argument("--poll-interval-ms", type=int)
    parser.add_argument("--startup-delay-ms", type=int)
    parser.add_argument("--zone-settle-seconds", type=int)
    parser.add_argument("--duration", type=float, help="stop after this many seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def config_from_args(args: argparse.Namespace) -> MappyConfig:
    """Build configuration from ``MAPPY_*`` env vars overridden by CLI flags."""
    overrides: dict[str, Any] = {}
    for attr, field_name in (
        ("transport", "transport"),
        ("url", "websocket_url"),
        ("mqtt_host", "mqtt_host"),
        ("mqtt_port", "mqtt_port"),
        ("mqtt_topic", "mqtt_topic"),
        ("poll_interval_ms", "poll_interval_ms"),
        ("startup_delay_ms", "startup_delay_ms"),
        ("zone_settle_seconds", "zone_settle_seconds"),
    ):
        value = getattr(args, attr)
        if value is not None:
            overrides[field_name] = value
    return MappyConfig.from_env(**overrides)


def build_publisher(config: MappyConfig) -> WebSocketPublisher | MqttPublisher:
    if config.transport == "mqtt":
        return MqttPublisher(
            MqttTarget(
                host=config.mqtt_host,
                port=config.mqtt_port,
                topic=config.mqtt_topic,
                subscribe_topic=config.mqtt_subscribe_topic,
            ),
            keepalive=config.mqtt_keepalive,
        )
    return WebSocketPublisher(config.websocket_url)


async def run(
    config: MappyConfig,
    provider: ActorProvider,
    publisher: WebSocketPublisher | MqttPublisher,
    *,
    duration: float | None = None,
) -> None:
    """Connect *publisher*, run the daemon until stopped or *duration* elapses."""
    async with publisher:
        transport: Publisher = publisher
        async with MappyDaemon(config, provider, transport) as daemon:
            if duration is None:
                await daemon.wait()
            else:
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(daemon.wait(), duration)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%I:%M:%S %p",
    )

    try:
        config = config_from_args(args)
        provider = ReplayActorProvider.from_file(args.replay, loop=args.loop)
        publisher = build_publisher(config)
        asyncio.run(run(config, provider, publisher, duration=args.duration))
    except KeyboardInterrupt:
        _logger.info("Interrupted")
    except MappyError as exc:
        _logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
