from __future__ import annotations

import json
import logging
import ssl
from typing import Any

import paho.mqtt.client as mqtt

from host_monitor.config import MqttConfig
from host_monitor.models import RequestTimingRecord

ONLINE = "online"
OFFLINE = "offline"


class MqttPublisher:
    """Publishes metric snapshots and request timing records over MQTT.

    Snapshots go to ``base_topic``, timing records to ``base_topic/timing``
    and availability (``online``/``offline``, retained) to ``base_topic/status``.
    """

    def __init__(self, config: MqttConfig) -> None:
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)
        self._connected = False

        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=config.client_id,
            protocol=mqtt.MQTTv311,
        )
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        if config.username:
            self.client.username_pw_set(config.username, config.password)
        if config.tls_enabled:
            self.client.tls_set(ca_certs=config.ca_cert, cert_reqs=ssl.CERT_REQUIRED)
        # Broker marks us offline if the connection drops without a disconnect
        self.client.will_set(self.status_topic, payload=OFFLINE, qos=1, retain=True)
        self.client.reconnect_delay_set(min_delay=1, max_delay=120)

    @property
    def status_topic(self) -> str:
        return f"{self.config.base_topic}/status"

    @property
    def connected(self) -> bool:
        return self._connected

    def _on_connect(self, client: mqtt.Client, userdata: Any, flags: Any,
                    reason_code: Any, properties: Any = None) -> None:
        self._connected = reason_code == 0
        if not self._connected:
            self.logger.error("MQTT broker refused connection: %s", reason_code)
            return
        self.logger.info("Connected to MQTT broker %s:%s", self.config.host, self.config.port)
        self._set_availability(ONLINE)

    def _on_disconnect(self, client: mqtt.Client, userdata: Any, flags: Any,
                       reason_code: Any, properties: Any = None) -> None:
        self._connected = False
        if reason_code == 0:
            self.logger.info("MQTT connection closed")
        else:
            self.logger.warning("Lost MQTT connection (%s), reconnecting", reason_code)

    def _set_availability(self, state: str) -> bool:
        return self._send(self.status_topic, state, qos=1, retain=True)

    def _send(self, topic: str, payload: str, qos: int, retain: bool) -> bool:
        result = self.client.publish(topic, payload=payload, qos=qos, retain=retain)
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            self.logger.error("Publish to %s failed with code %s", topic, result.rc)
            return False
        return True

    def connect(self) -> None:
        self.logger.info("Connecting to MQTT broker %s:%s", self.config.host, self.config.port)
        self.client.connect(self.config.host, self.config.port, keepalive=self.config.keepalive)
        self.client.loop_start()

    def disconnect(self) -> None:
        if self._connected:
            self._set_availability(OFFLINE)
        self.client.loop_stop()
        self.client.disconnect()

    def publish(self, payload: str, topic: str | None = None) -> bool:
        """Publish a JSON snapshot; queued by paho while reconnecting."""
        topic = topic or self.config.base_topic
        if not self._connected:
            self.logger.debug("Broker not connected yet, queueing message for %s", topic)
        return self._send(topic, payload, qos=self.config.qos, retain=self.config.retain)

    def publish_timing(self, record: RequestTimingRecord) -> bool:
        """Timing sink for ``TrackTimeMiddleware(store_on_db=...)``."""
        return self.publish(json.dumps(record.to_dict()), topic=self.config.timing_topic)
