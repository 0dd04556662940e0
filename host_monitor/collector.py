from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from host_monitor import metrics
from host_monitor.config import CollectorConfig, MonitorOptions
from host_monitor.errors import SystemMonitorError
from host_monitor.models import MetricsSnapshot


class MetricsCollector:
    """Runs the enabled collectors in a fixed order and builds one snapshot.

    A failing collector is logged and its field left unset; it never stops the
    remaining collectors.
    """

    def __init__(
        self,
        options: MonitorOptions | None = None,
        config: CollectorConfig | None = None,
    ) -> None:
        self.options = options or MonitorOptions()
        self.config = config or CollectorConfig()
        self.logger = logging.getLogger(self.__class__.__name__)

    def collect(self) -> MetricsSnapshot:
        self.logger.debug("Collecting metrics snapshot.")
        options = self.options
        fields: dict[str, Any] = {}

        if options.cpu:
            self._run(fields, "cpu", metrics.get_cpu_info)
        if options.memory:
            self._run(fields, "memory", metrics.get_memory_usage)
        if options.disk:
            self._run(fields, "disk", metrics.get_disk_usage, self.config)
        if options.network:
            self._run(fields, "network", metrics.get_network_info)
        if options.uptime:
            self._run(fields, "uptime", metrics.get_system_uptime)
        if options.process_info:
            self._run(fields, "process", metrics.get_process_info)
        if options.temperature:
            self._run(fields, "temperature", metrics.get_temperature, self.config)
        if options.os_info:
            self._run(fields, "os_info", metrics.get_os_info)
        if options.load_average:
            self._run(fields, "load_average", metrics.get_load_average)
        if options.user_info:
            self._run(fields, "user_info", metrics.get_user_info)
        if options.file_system_info:
            self._run(fields, "file_systems", metrics.get_file_system_info, self.config)
        if options.active_connections:
            self._run(fields, "connections", metrics.get_active_connections, self.config)
        if options.logs is not None:
            self._run(fields, "logs", metrics.get_logs, options.logs.path, options.logs.keyword)
        if options.scheduled_tasks:
            self._run(fields, "scheduled_tasks", metrics.get_scheduled_tasks, self.config)

        self.logger.debug("Completed metrics snapshot with %s fields.", len(fields))
        return MetricsSnapshot(**fields)

    def _run(
        self,
        fields: dict[str, Any],
        name: str,
        collect: Callable[..., Any],
        *args: Any,
    ) -> None:
        try:
            fields[name] = collect(*args)
        except SystemMonitorError as exc:
            self.logger.warning("Collector %s failed [%s]: %s", name, exc.category, exc.message)
            self.logger.debug("Origin: %s", exc.origin)
        except Exception:
            self.logger.exception("Collector %s failed unexpectedly", name)
