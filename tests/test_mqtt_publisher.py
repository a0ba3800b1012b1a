from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

import paho.mqtt.client as mqtt
import pytest

from pymappy._mqtt import MqttPublisher, MqttTarget
from pymappy.exceptions import MappyTransportError


@dataclass
class _FakeClient:
    published: list[tuple[str, str, int]] = field(default_factory=list)
    subscribed: list[tuple[str, int]] = field(default_factory=list)
    rc: int = mqtt.MQTT_ERR_SUCCESS
    stopped: bool = False
    disconnected: bool = False

    def publish(self, topic: str, payload: str, qos: int = 0) -> Any:
        self.published.append((topic, payload, qos))
        return SimpleNamespace(rc=self.rc)

    def subscribe(self, topic: str, qos: int = 0) -> None:
        self.subscribed.append((topic, qos))

    def disconnect(self) -> None:
        self.disconnected = True

    def loop_stop(self) -> None:
        self.stopped = True


def _publisher(**kwargs: Any) -> MqttPublisher:
    target = MqttTarget(host="127.0.0.1", port=1883, topic="mappy/out", subscribe_topic="mappy/in")
    return MqttPublisher(target, **kwargs)


def _attach(publisher: MqttPublisher, client: _FakeClient) -> None:
    publisher._client = client  # type: ignore[assignment]
    publisher._on_connect(client, None, None, SimpleNamespace(value=0), None)  # type: ignore[arg-type]


def test_send_before_start_is_dropped() -> None:
    publisher = _publisher()

    publisher.send("PLAYER_NAME::Warrior")

    assert publisher.dropped == 1
    assert not publisher.connected


def test_on_connect_subscribes_and_send_publishes() -> None:
    publisher = _publisher()
    client = _FakeClient()
    _attach(publisher, client)

    publisher.send("PLAYER_MAP_ID::100")

    assert publisher.connected
    assert client.subscribed == [("mappy/in", 0)]
    assert client.published == [("mappy/out", "PLAYER_MAP_ID::100", 0)]


def test_failed_connect_reason_keeps_publisher_offline() -> None:
    publisher = _publisher()
    client = _FakeClient()
    publisher._client = client  # type: ignore[assignment]

    publisher._on_connect(client, None, None, SimpleNamespace(value=135), None)  # type: ignore[arg-type]
    publisher.send("PLAYER_MAP_ID::100")

    assert not publisher.connected
    assert client.subscribed == []
    assert publisher.dropped == 1


def test_publish_error_counts_as_dropped() -> None:
    publisher = _publisher()
    client = _FakeClient(rc=mqtt.MQTT_ERR_NO_CONN)
    _attach(publisher, client)

    publisher.send("PLAYER_MAP_ID::100")

    assert publisher.dropped == 1


def test_disconnect_then_stop() -> None:
    publisher = _publisher()
    client = _FakeClient()
    _attach(publisher, client)

    publisher._on_disconnect(client, None, None, SimpleNamespace(value=0), None)  # type: ignore[arg-type]
    assert not publisher.connected

    publisher.stop()
    assert client.stopped
    assert not client.disconnected


@pytest.mark.asyncio
async def test_inbound_message_dispatched_on_loop_thread() -> None:
    loop = asyncio.get_running_loop()
    publisher = _publisher(loop=loop)
    received: list[tuple[str, int]] = []
    done = asyncio.Event()

    def handler(text: str) -> None:
        received.append((text, threading.get_ident()))
        done.set()

    publisher.on_message(handler)
    msg = SimpleNamespace(payload=b"HELLO", topic="mappy/in")
    worker = threading.Thread(target=publisher._on_message, args=(None, None, msg))
    worker.start()
    worker.join()
    await asyncio.wait_for(done.wait(), 5)

    assert received == [("HELLO", threading.get_ident())]


def test_non_utf8_payload_ignored() -> None:
    publisher = _publisher()
    received: list[str] = []
    publisher.on_message(received.append)

    publisher._on_message(None, None, SimpleNamespace(payload=b"\xff\xfe", topic="mappy/in"))  # type: ignore[arg-type]

    assert received == []


def test_connect_refused_raises_transport_error() -> None:
    publisher = MqttPublisher(MqttTarget(host="127.0.0.1", port=1, topic="mappy/out"))

    with pytest.raises(MappyTransportError) as excinfo:
        publisher.start()

    assert excinfo.value.endpoint == "127.0.0.1:1"
    assert not publisher.connected
