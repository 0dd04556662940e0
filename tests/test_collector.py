"""Tests for the snapshot collector."""
from __future__ import annotations

import logging
from dataclasses import replace
from unittest.mock import Mock, patch

import pytest

from host_monitor.collector import MetricsCollector
from host_monitor.config import CollectorConfig, LogSource, MonitorOptions
from host_monitor.errors import SystemMonitorError
from host_monitor.models import LoadAverageSnapshot, MemorySnapshot

COLLECTORS = {
    "get_cpu_info": "cpu",
    "get_memory_usage": "memory",
    "get_disk_usage": "disk",
    "get_network_info": "network",
    "get_system_uptime": "uptime",
    "get_process_info": "process",
    "get_temperature": "temperature",
    "get_os_info": "os_info",
    "get_load_average": "load_average",
    "get_user_info": "user_info",
    "get_file_system_info": "file_systems",
    "get_active_connections": "connections",
    "get_logs": "logs",
    "get_scheduled_tasks": "scheduled_tasks",
}


@pytest.fixture
def patched_metrics():
    """Replace every collector with a mock returning its own field name."""
    calls: list[str] = []
    mocks = {}
    for func, field in COLLECTORS.items():
        mocks[func] = Mock(side_effect=lambda *args, _field=field: calls.append(_field) or _field)
    with patch.multiple("host_monitor.metrics", **mocks):
        yield mocks, calls


def all_enabled(log_path: str = "/var/log/app.log") -> MonitorOptions:
    return MonitorOptions(
        temperature=True,
        os_info=True,
        load_average=True,
        user_info=True,
        file_system_info=True,
        active_connections=True,
        scheduled_tasks=True,
        logs=LogSource(log_path, "ERROR"),
    )


class TestMetricsCollector:
    def test_everything_disabled_runs_nothing(self, patched_metrics):
        mocks, calls = patched_metrics

        snapshot = MetricsCollector(MonitorOptions.disabled()).collect()

        assert snapshot.is_empty()
        assert snapshot.to_dict() == {}
        assert calls == []
        for mock in mocks.values():
            mock.assert_not_called()

    def test_default_options(self, patched_metrics):
        _, calls = patched_metrics

        snapshot = MetricsCollector().collect()

        assert calls == ["cpu", "memory", "disk", "network", "uptime", "process"]
        assert snapshot.temperature is None
        assert snapshot.logs is None

    def test_fixed_collection_order(self, patched_metrics):
        _, calls = patched_metrics

        MetricsCollector(all_enabled()).collect()

        assert calls == list(COLLECTORS.values())

    def test_arguments_forwarded(self, patched_metrics):
        mocks, _ = patched_metrics
        config = CollectorConfig(command_timeout_s=2.0)

        MetricsCollector(all_enabled("/tmp/service.log"), config).collect()

        mocks["get_disk_usage"].assert_called_once_with(config)
        mocks["get_active_connections"].assert_called_once_with(config)
        mocks["get_logs"].assert_called_once_with("/tmp/service.log", "ERROR")

    def test_failing_collector_leaves_field_unset(self, patched_metrics, caplog):
        mocks, _ = patched_metrics
        mocks["get_disk_usage"].side_effect = SystemMonitorError(
            "Failed to retrieve disk usage: df missing", "DiskUsageError"
        )

        with caplog.at_level(logging.WARNING):
            snapshot = MetricsCollector().collect()

        assert snapshot.disk is None
        assert snapshot.cpu == "cpu"
        assert snapshot.network == "network"
        assert snapshot.process == "process"
        assert "DiskUsageError" in caplog.text

    def test_unexpected_exception_is_contained(self, patched_metrics, caplog):
        mocks, _ = patched_metrics
        mocks["get_memory_usage"].side_effect = ValueError("bad value")

        with caplog.at_level(logging.ERROR):
            snapshot = MetricsCollector().collect()

        assert snapshot.memory is None
        assert snapshot.uptime == "uptime"
        assert "memory" in caplog.text

    @patch("host_monitor.metrics.get_load_average")
    @patch("host_monitor.metrics.get_memory_usage")
    def test_snapshot_serialization(self, mock_memory, mock_load):
        mock_memory.return_value = MemorySnapshot(total_memory=100, free_memory=40, used_memory=60)
        mock_load.return_value = LoadAverageSnapshot(0.5, 0.25, 0.1)
        options = replace(MonitorOptions.disabled(), memory=True, load_average=True)

        payload = MetricsCollector(options).collect().to_dict()

        assert payload == {
            "memory": {"total_memory": 100, "free_memory": 40, "used_memory": 60},
            "load_average": {"load_1m": 0.5, "load_5m": 0.25, "load_15m": 0.1},
        }
