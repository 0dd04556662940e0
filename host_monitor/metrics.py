"""Standalone host metric collectors.

Every public function either returns a typed record or raises
:class:`~host_monitor.errors.SystemMonitorError` with a category unique to it.
"""

from __future__ import annotations

import getpass
import logging
import os
import platform
import socket
import time
from pathlib import Path

import psutil

from host_monitor.commands import resolve_commands, run_command
from host_monitor.config import CollectorConfig
from host_monitor.errors import CommandError, OutputParsingError, SystemMonitorError
from host_monitor.models import (
    CpuCoreSnapshot,
    CpuSnapshot,
    DiskPartitionInfo,
    FileSystemEntry,
    LoadAverageSnapshot,
    MemorySnapshot,
    NetworkConnectionInfo,
    NetworkInterfaceAddress,
    OSInfoSnapshot,
    PlatformFamily,
    ProcessSnapshot,
    ScheduledTaskInfo,
    ServiceStatus,
    UserInfoSnapshot,
    usage_percentage,
)
from host_monitor.parsers import (
    parse_disk_usage,
    parse_file_systems,
    parse_netstat_output,
    parse_scheduled_tasks,
    parse_service_status,
    parse_thermal_zone,
    parse_wmic_temperature,
)

logger = logging.getLogger(__name__)


def _timeout(config: CollectorConfig | None) -> float:
    return (config or CollectorConfig()).command_timeout_s


def get_cpu_info() -> CpuSnapshot:
    """Per-core and aggregate CPU times (ms) since boot with usage percentages."""
    try:
        per_core = psutil.cpu_times(percpu=True)
        cores: list[CpuCoreSnapshot] = []
        total_user = total_system = total_idle = 0.0
        for index, times in enumerate(per_core):
            user = times.user * 1000
            system = times.system * 1000
            idle = times.idle * 1000
            total = user + system + idle
            cores.append(
                CpuCoreSnapshot(
                    core_id=index,
                    user_time=user,
                    system_time=system,
                    idle_time=idle,
                    total_time=total,
                    usage_percentage=usage_percentage(user + system, total),
                )
            )
            total_user += user
            total_system += system
            total_idle += idle
    except Exception as exc:
        raise SystemMonitorError.wrap(exc, "Failed to retrieve CPU info", "CpuInfoError") from exc

    total_time = total_user + total_system + total_idle
    used_time = total_user + total_system
    return CpuSnapshot(
        total_user_time=total_user,
        total_system_time=total_system,
        total_idle_time=total_idle,
        total_time=total_time,
        used_time=used_time,
        usage_percentage=usage_percentage(used_time, total_time),
        cores=cores,
    )


def get_memory_usage() -> MemorySnapshot:
    try:
        vm = psutil.virtual_memory()
    except Exception as exc:
        raise SystemMonitorError.wrap(
            exc, "Failed to retrieve memory usage", "MemoryUsageError"
        ) from exc
    total = int(vm.total)
    free = int(vm.available)
    return MemorySnapshot(total_memory=total, free_memory=free, used_memory=total - free)


def _disk_usage_native() -> list[DiskPartitionInfo]:
    partitions: list[DiskPartitionInfo] = []
    for part in psutil.disk_partitions(all=False):
        try:
            usage = psutil.disk_usage(part.mountpoint)
        except OSError:
            # Empty card readers and optical drives raise here
            logger.debug("Skipping unreadable partition %s", part.mountpoint)
            continue
        partitions.append(
            DiskPartitionInfo(
                filesystem=part.device,
                total=int(usage.total),
                used=int(usage.used),
                available=int(usage.free),
                used_percentage=int(round(usage.percent)),
                mount_point=part.mountpoint,
            )
        )
    return partitions


def get_disk_usage(config: CollectorConfig | None = None) -> list[DiskPartitionInfo]:
    """Usage of every mounted partition, in command output order."""
    try:
        command = resolve_commands(config).disk_usage()
        if command is None:
            return _disk_usage_native()
        output = run_command(command, timeout=_timeout(config))
        return parse_disk_usage(output)
    except OutputParsingError:
        raise
    except Exception as exc:
        raise SystemMonitorError.wrap(
            exc, "Failed to retrieve disk usage", "DiskUsageError"
        ) from exc


def _interface_addresses() -> dict[str, list[NetworkInterfaceAddress]]:
    interfaces: dict[str, list[NetworkInterfaceAddress]] = {}
    for name, addrs in psutil.net_if_addrs().items():
        interfaces[name] = [
            NetworkInterfaceAddress(
                family=getattr(addr.family, "name", str(addr.family)),
                address=addr.address,
                netmask=addr.netmask,
                broadcast=addr.broadcast,
            )
            for addr in addrs
        ]
    return interfaces


def get_network_info() -> dict[str, list[NetworkInterfaceAddress]]:
    """Addresses bound to each network interface."""
    try:
        return _interface_addresses()
    except Exception as exc:
        raise SystemMonitorError.wrap(
            exc, "Failed to retrieve network information", "NetworkInfoError"
        ) from exc


def get_system_uptime() -> float:
    """Seconds since boot."""
    try:
        return max(0.0, round(time.time() - psutil.boot_time(), 2))
    except Exception as exc:
        raise SystemMonitorError.wrap(
            exc, "Failed to retrieve system uptime", "SystemUptimeError"
        ) from exc


def get_process_info() -> ProcessSnapshot:
    """RSS and cumulative CPU milliseconds of the current process.

    The CPU figure is a counter since process start, not a usage rate.
    """
    try:
        proc = psutil.Process()
        cpu_times = proc.cpu_times()
        rss = proc.memory_info().rss
    except Exception as exc:
        raise SystemMonitorError.wrap(
            exc, "Failed to retrieve process information", "ProcessInfoError"
        ) from exc
    return ProcessSnapshot(
        cpu=round((cpu_times.user + cpu_times.system) * 1000, 3),
        memory=int(rss),
    )


def get_temperature(config: CollectorConfig | None = None) -> float | None:
    """Temperature in Celsius, or None where the platform exposes none."""
    config = config or CollectorConfig()
    commands = resolve_commands(config)
    try:
        if commands.family == PlatformFamily.LINUX:
            zone = Path(config.thermal_zone_path)
            if not zone.exists():
                logger.warning("Thermal zone file not found: %s", zone)
                return None
            return parse_thermal_zone(zone.read_text())
        if commands.family == PlatformFamily.WINDOWS:
            output = run_command(commands.temperature(), timeout=config.command_timeout_s)
            return parse_wmic_temperature(output)
    except Exception as exc:
        raise SystemMonitorError.wrap(
            exc, "Failed to retrieve temperature", "TemperatureRetrievalError"
        ) from exc
    logger.info("Temperature monitoring is not supported on %s", commands.family.value)
    return None


def _cpu_model() -> str | None:
    if platform.system().lower() == "linux":
        try:
            for line in Path("/proc/cpuinfo").read_text().splitlines():
                if line.lower().startswith("model name"):
                    return line.split(":", 1)[1].strip()
        except OSError:
            logger.debug("Failed to read /proc/cpuinfo")
    return platform.processor() or None


def _shell() -> str | None:
    if os.name != "posix":
        return None
    import pwd

    try:
        return pwd.getpwuid(os.getuid()).pw_shell or None
    except KeyError:
        return os.environ.get("SHELL")


def get_user_info() -> UserInfoSnapshot:
    try:
        return UserInfoSnapshot(
            username=getpass.getuser(),
            home_dir=str(Path.home()),
            shell=_shell(),
            hostname=socket.gethostname(),
            platform=platform.system().lower(),
            architecture=platform.machine(),
        )
    except Exception as exc:
        raise SystemMonitorError.wrap(
            exc, "Failed to retrieve user information", "UserInfoError"
        ) from exc


def get_os_info() -> OSInfoSnapshot:
    try:
        vm = psutil.virtual_memory()
        return OSInfoSnapshot(
            platform=platform.system().lower(),
            release=platform.release(),
            architecture=platform.machine(),
            kernel_version=platform.version(),
            hostname=socket.gethostname(),
            home_dir=str(Path.home()),
            uptime=get_system_uptime(),
            total_memory=int(vm.total),
            free_memory=int(vm.available),
            number_of_cpus=psutil.cpu_count(logical=True) or 0,
            cpu_model=_cpu_model(),
            network_interfaces=_interface_addresses(),
            user_info=get_user_info(),
        )
    except Exception as exc:
        raise SystemMonitorError.wrap(
            exc, "Failed to retrieve OS information", "OSInfoError"
        ) from exc


def get_load_average() -> LoadAverageSnapshot:
    """1/5/15 minute load averages; all zero where the OS has no such concept."""
    if not hasattr(os, "getloadavg"):
        return LoadAverageSnapshot()
    try:
        load_1m, load_5m, load_15m = os.getloadavg()
    except OSError as exc:
        raise SystemMonitorError.wrap(
            exc, "Failed to retrieve load average", "LoadAverageError"
        ) from exc
    return LoadAverageSnapshot(
        load_1m=float(load_1m), load_5m=float(load_5m), load_15m=float(load_15m)
    )


def get_file_system_info(
    config: CollectorConfig | None = None, raw: bool = False
) -> list[FileSystemEntry] | str:
    """Size and free space per file system (``wmic`` or ``df -h``)."""
    try:
        commands = resolve_commands(config)
        output = run_command(commands.file_systems(), timeout=_timeout(config))
        if raw:
            return output
        return parse_file_systems(output, commands.family)
    except Exception as exc:
        raise SystemMonitorError.wrap(
            exc, "Failed to retrieve file system info", "FileSystemInfoRetrievalError"
        ) from exc


def get_active_connections(
    config: CollectorConfig | None = None, raw: bool = False
) -> list[NetworkConnectionInfo] | str:
    try:
        commands = resolve_commands(config)
        output = run_command(commands.connections(), timeout=_timeout(config))
        if raw:
            return output
        return parse_netstat_output(output, commands.family)
    except Exception as exc:
        raise SystemMonitorError.wrap(
            exc, "Failed to retrieve active connections", "ActiveConnectionsRetrievalError"
        ) from exc


def get_scheduled_tasks(config: CollectorConfig | None = None) -> list[ScheduledTaskInfo]:
    """Scheduled tasks from ``schtasks`` or the current user's crontab."""
    try:
        commands = resolve_commands(config)
        output = run_command(commands.scheduled_tasks(), timeout=_timeout(config))
        return parse_scheduled_tasks(output, commands.family)
    except Exception as exc:
        raise SystemMonitorError.wrap(
            exc, "Failed to retrieve scheduled tasks", "ScheduledTasksRetrievalError"
        ) from exc


def get_service_status(name: str, config: CollectorConfig | None = None) -> ServiceStatus:
    try:
        commands = resolve_commands(config)
        # systemctl is-active and sc query report a stopped service via the exit code
        output = run_command(
            commands.service_status(name), timeout=_timeout(config), allow_failure=True
        )
        return parse_service_status(output, commands.family)
    except CommandError as exc:
        if exc.stderr is not None:
            raise SystemMonitorError.wrap(
                exc, f"Error while checking status of service {name}", "ServiceStatusCheckError"
            ) from exc
        raise SystemMonitorError.wrap(
            exc, f"Failed to retrieve status of service {name}", "ServiceStatusRetrievalError"
        ) from exc
    except Exception as exc:
        raise SystemMonitorError.wrap(
            exc, f"Failed to retrieve status of service {name}", "ServiceStatusRetrievalError"
        ) from exc


def get_logs(path: str | Path, keyword: str | None = None) -> list[str]:
    """Lines of a log file, optionally only those containing ``keyword``."""
    try:
        lines = Path(path).read_text(encoding="utf-8").split("\n")
    except (OSError, UnicodeDecodeError) as exc:
        raise SystemMonitorError.wrap(
            exc, f"Failed to read log file {path}", "LogFileReadError"
        ) from exc
    if keyword:
        return [line for line in lines if keyword in line]
    return lines
