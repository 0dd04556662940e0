"""Host metrics collectors and request instrumentation middleware."""

from host_monitor.collector import MetricsCollector
from host_monitor.commands import CommandResolver, resolve_commands, run_command
from host_monitor.config import AppConfig, CollectorConfig, LogSource, MonitorOptions, load_config
from host_monitor.errors import CommandError, OutputParsingError, SystemMonitorError
from host_monitor.metrics import (
    get_active_connections,
    get_cpu_info,
    get_disk_usage,
    get_file_system_info,
    get_load_average,
    get_logs,
    get_memory_usage,
    get_network_info,
    get_os_info,
    get_process_info,
    get_scheduled_tasks,
    get_service_status,
    get_system_uptime,
    get_temperature,
    get_user_info,
)
from host_monitor.middleware import (
    ErrorTrackingMiddleware,
    ErrorTrackingState,
    ResponseTimeMiddleware,
    SystemMonitorMiddleware,
    TrackTimeMiddleware,
    setup_monitoring,
)
from host_monitor.models import MetricsSnapshot, RequestTimingRecord
from host_monitor.schema import validate_payload

__all__ = [
    "AppConfig",
    "CollectorConfig",
    "CommandError",
    "CommandResolver",
    "ErrorTrackingMiddleware",
    "ErrorTrackingState",
    "LogSource",
    "MetricsCollector",
    "MetricsSnapshot",
    "MonitorOptions",
    "OutputParsingError",
    "RequestTimingRecord",
    "ResponseTimeMiddleware",
    "SystemMonitorError",
    "SystemMonitorMiddleware",
    "TrackTimeMiddleware",
    "get_active_connections",
    "get_cpu_info",
    "get_disk_usage",
    "get_file_system_info",
    "get_load_average",
    "get_logs",
    "get_memory_usage",
    "get_network_info",
    "get_os_info",
    "get_process_info",
    "get_scheduled_tasks",
    "get_service_status",
    "get_system_uptime",
    "get_temperature",
    "get_user_info",
    "load_config",
    "resolve_commands",
    "run_command",
    "setup_monitoring",
    "validate_payload",
]
