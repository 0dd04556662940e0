"""Tests for INI configuration loading."""
from __future__ import annotations

import pytest

from host_monitor.config import (
    AppConfig,
    CollectorConfig,
    LogSource,
    MonitorOptions,
    load_config,
)


def write_config(tmp_path, text):
    path = tmp_path / "host-monitor.cfg"
    path.write_text(text)
    return path


class TestLoadConfig:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.cfg")

    def test_empty_file_uses_defaults(self, tmp_path):
        config = load_config(write_config(tmp_path, ""))

        assert config == AppConfig()
        assert config.monitor == MonitorOptions()
        assert config.collector.command_timeout_s == 10.0
        assert config.publish.interval_s == 15
        assert config.mqtt is None

    def test_monitor_flags_and_log_source(self, tmp_path):
        path = write_config(
            tmp_path,
            """
[monitor]
disk = false
temperature = yes
active_connections = true
log_path = /var/log/syslog
log_keyword = ERROR
""",
        )

        monitor = load_config(path).monitor

        assert monitor.cpu is True
        assert monitor.disk is False
        assert monitor.temperature is True
        assert monitor.active_connections is True
        assert monitor.scheduled_tasks is False
        assert monitor.logs == LogSource("/var/log/syslog", "ERROR")

    def test_blank_log_keyword(self, tmp_path):
        path = write_config(tmp_path, "[monitor]\nlog_path = app.log\nlog_keyword =\n")

        assert load_config(path).monitor.logs == LogSource("app.log", None)

    def test_collector_section(self, tmp_path):
        path = write_config(
            tmp_path,
            """
[collector]
command_timeout_s = 2.5
netstat_path = /usr/sbin/netstat
thermal_zone_path = /sys/class/thermal/thermal_zone1/temp
""",
        )

        collector = load_config(path).collector

        assert collector == CollectorConfig(
            command_timeout_s=2.5,
            netstat_path="/usr/sbin/netstat",
            thermal_zone_path="/sys/class/thermal/thermal_zone1/temp",
        )

    def test_track_time_and_publish(self, tmp_path):
        path = write_config(
            tmp_path,
            "[track_time]\nfile_path = logs/requests.log\nheader = true\n\n[publish]\ninterval_s = 30\n",
        )

        config = load_config(path)

        assert config.track_time.file_path == "logs/requests.log"
        assert config.track_time.header is True
        assert config.publish.interval_s == 30

    def test_mqtt_section(self, tmp_path):
        path = write_config(
            tmp_path,
            """
[mqtt]
host = broker.lan
port = 8883
username = monitor
password =
tls = true
retain = true
qos = 1
""",
        )

        mqtt = load_config(path).mqtt

        assert mqtt.host == "broker.lan"
        assert mqtt.port == 8883
        assert mqtt.base_topic == "host-monitor/metrics"
        assert mqtt.client_id == "host-monitor"
        assert mqtt.username == "monitor"
        assert mqtt.password is None
        assert mqtt.tls_enabled is True
        assert mqtt.retain is True
        assert mqtt.qos == 1
        assert mqtt.keepalive == 60
        assert mqtt.timing_topic == "host-monitor/metrics/timing"

    def test_invalid_boolean(self, tmp_path):
        path = write_config(tmp_path, "[monitor]\ncpu = sometimes\n")

        with pytest.raises(ValueError):
            load_config(path)
