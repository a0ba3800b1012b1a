"""MQTT publisher backed by a threaded paho-mqtt runtime."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from pymappy._transport import MessageHandler
from pymappy.exceptions import MappyTransportError


@dataclass(frozen=True)
class MqttTarget:
    """Broker and topics the publisher talks to."""

    host: str
    port: int
    topic: str
    subscribe_topic: str | None = None
    client_id: str = ""
    username: str | None = None
    password: str | None = None


class MqttPublisher:
    """Publish wire messages to a topic; dispatch inbound messages onto an asyncio loop.

    paho runs its network loop on its own thread. Inbound payloads are
    handed back to *loop* with ``call_soon_threadsafe`` so handlers always
    run on the polling loop's thread.
    """

    def __init__(
        self,
        target: MqttTarget,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        keepalive: int = 60,
        logger: logging.Logger | None = None,
    ) -> None:
        self._target = target
        self._loop = loop
        self._keepalive = keepalive
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._connected = False
        self._handlers: list[MessageHandler] = []
        self._dropped = 0

    @property
    def connected(self) -> bool:
        return self._client is not None and self._connected

    @property
    def dropped(self) -> int:
        return self._dropped

    def on_message(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    async def __aenter__(self) -> MqttPublisher:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        await self._loop.run_in_executor(None, self.start)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        loop = self._loop or asyncio.get_running_loop()
        await loop.run_in_executor(None, self.stop)

    def start(self) -> None:
        """Connect and start the paho network loop."""
        self.stop()
        target = self._target
        self._logger.debug(
            "MQTT publisher start requested host=%s port=%s topic=%s",
            target.host,
            target.port,
            target.topic,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=target.client_id,
        )
        client.enable_logger(self._logger)
        if target.username is not None:
            client.username_pw_set(target.username, target.password)

        client.on_connect = self._on_connect
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect

        try:
            client.connect(target.host, target.port, keepalive=self._keepalive)
        except OSError as exc:
            raise MappyTransportError(
                f"MQTT connect to {target.host}:{target.port} failed: {exc}",
                endpoint=f"{target.host}:{target.port}",
            ) from exc
        client.loop_start()
        self._client = client
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Disconnect and stop the network loop."""
        client = self._client
        self._client = None
        was_connected = self._connected
        self._connected = False
        if client is None:
            return
        try:
            if was_connected:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def send(self, text: str) -> None:
        """Publish *text* at QoS 0; dropped when not connected."""
        client = self._client
        if client is None or not self._connected:
            self._dropped += 1
            self._logger.debug("MQTT not connected, dropping message %s", text)
            return
        info = client.publish(self._target.topic, text, qos=0)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self._dropped += 1
            self._logger.debug("MQTT publish failed rc=%s, dropping message %s", info.rc, text)

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.value != 0:
            self._logger.warning("MQTT connect failed: %s", reason_code)
            return
        self._connected = True
        self._logger.info("Connection to MQTT broker successful")
        if self._target.subscribe_topic:
            self._logger.debug("MQTT subscribing topic=%s", self._target.subscribe_topic)
            client.subscribe(self._target.subscribe_topic, qos=0)

    def _on_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if self._connected:
            self._logger.debug("MQTT disconnected: %s", reason_code)
        self._connected = False

    def _on_message(self, _client: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        try:
            text = msg.payload.decode("utf-8")
        except UnicodeDecodeError:
            self._logger.debug("MQTT payload is not UTF-8 topic=%s", msg.topic)
            return
        self._logger.info("MQTT Message: %s", text)
        if self._loop is None:
            self._dispatch(text)
            return
        self._loop.call_soon_threadsafe(self._dispatch, text)

    def _dispatch(self, text: str) -> None:
        for handler in self._handlers:
            try:
                handler(text)
            except Exception:
                self._logger.debug("Inbound message handler failed", exc_info=True)
