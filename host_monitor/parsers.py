"""Parsers turning columnar command output into typed records.

All functions are pure: the platform family is passed in, never detected.
Short or malformed rows are skipped; only a missing header is fatal.
"""

from __future__ import annotations

import logging

from host_monitor.errors import OutputParsingError
from host_monitor.models import (
    DiskPartitionInfo,
    FileSystemEntry,
    NetworkConnectionInfo,
    PlatformFamily,
    ScheduledTaskInfo,
    ServiceStatus,
)

BYTE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")
CRON_TASK_NAME = "Cron Job"
KELVIN_OFFSET = 273.15

logger = logging.getLogger(__name__)


def _lines(output: str) -> list[str]:
    return output.strip().splitlines()


def _column(columns: list[str], index: int) -> str:
    try:
        return columns[index]
    except IndexError:
        return ""


def parse_disk_usage(output: str) -> list[DiskPartitionInfo]:
    """Parse ``df -k`` output; sizes are converted from KB to bytes.

    Rows with non-numeric sizes (macOS automounter maps such as
    ``map auto_home``) are skipped. Output without a header line is an error.
    """
    lines = _lines(output)
    if not lines:
        raise OutputParsingError("Empty disk usage output", "DiskUsageParsingError")
    # BSD df adds iused, ifree and %iused before "Mounted on"
    mount_index = 8 if "%iused" in lines[0] else 5
    partitions: list[DiskPartitionInfo] = []
    for line in lines[1:]:
        parts = line.split()
        if len(parts) <= mount_index:
            continue
        try:
            partitions.append(
                DiskPartitionInfo(
                    filesystem=parts[0],
                    total=int(parts[1]) * 1024,
                    used=int(parts[2]) * 1024,
                    available=int(parts[3]) * 1024,
                    used_percentage=int(parts[4].rstrip("%")),
                    mount_point=" ".join(parts[mount_index:]),
                )
            )
        except ValueError:
            logger.debug("Skipping disk usage row %r", line)
    return partitions


def parse_netstat_output(output: str, family: PlatformFamily) -> list[NetworkConnectionInfo]:
    lines = _lines(output)
    header_index = next(
        (idx for idx, line in enumerate(lines) if "Proto" in line), None
    )
    if header_index is None:
        raise OutputParsingError(
            "Failed to parse netstat output: no 'Proto' header line",
            "ActiveConnectionsParsingError",
        )

    connections: list[NetworkConnectionInfo] = []
    for line in lines[header_index + 1:]:
        columns = line.split()
        if not columns:
            continue
        if family == PlatformFamily.WINDOWS:
            # State is always the last column on Windows
            connections.append(
                NetworkConnectionInfo(
                    protocol=columns[0],
                    local_address=_column(columns, 1),
                    foreign_address=_column(columns, 2),
                    state=columns[-1],
                )
            )
        else:
            connections.append(
                NetworkConnectionInfo(
                    protocol=columns[0],
                    local_address=_column(columns, 3),
                    foreign_address=_column(columns, 4),
                    state=_column(columns, 5),
                )
            )
    return connections


def parse_scheduled_tasks(output: str, family: PlatformFamily) -> list[ScheduledTaskInfo]:
    tasks: list[ScheduledTaskInfo] = []
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if family == PlatformFamily.WINDOWS:
            parts = stripped.split()
            if len(parts) > 1:
                tasks.append(ScheduledTaskInfo(name=parts[0], details=" ".join(parts[1:])))
        else:
            # crontab lines vary too much to split further
            tasks.append(ScheduledTaskInfo(name=CRON_TASK_NAME, details=stripped))
    return tasks


def format_bytes(value: str | int | float | None) -> str:
    """Render a byte count with binary units, e.g. ``"1.50 GB"``."""
    if value is None:
        return "N/A"
    try:
        size = float(value)
    except (TypeError, ValueError):
        return "N/A"
    if size != size:  # NaN
        return "N/A"

    unit_index = 0
    while size >= 1024 and unit_index < len(BYTE_UNITS) - 1:
        size /= 1024
        unit_index += 1
    return f"{size:.2f} {BYTE_UNITS[unit_index]}"


def parse_file_systems(output: str, family: PlatformFamily) -> list[FileSystemEntry]:
    entries: list[FileSystemEntry] = []
    for line in _lines(output)[1:]:
        columns = line.split()
        if not columns:
            continue
        if family == PlatformFamily.WINDOWS:
            # wmic orders columns alphabetically: Caption FreeSpace Size
            caption = _column(columns, 0) or "N/A"
            entries.append(
                FileSystemEntry(
                    caption=caption,
                    size=format_bytes(columns[2] if len(columns) > 2 else None),
                    free_space=format_bytes(columns[1] if len(columns) > 1 else None),
                )
            )
        else:
            entries.append(
                FileSystemEntry(
                    caption=columns[0],
                    size=_column(columns, 1),
                    free_space=_column(columns, 3),
                )
            )
    return entries


def parse_service_status(output: str, family: PlatformFamily) -> ServiceStatus:
    if family == PlatformFamily.WINDOWS:
        if "RUNNING" in output:
            return ServiceStatus.RUNNING
        if "STATE" in output:
            return ServiceStatus.INACTIVE
        return ServiceStatus.UNKNOWN

    state = output.strip()
    if state == "active":
        return ServiceStatus.RUNNING
    if not state:
        return ServiceStatus.UNKNOWN
    return ServiceStatus.INACTIVE


def parse_thermal_zone(raw: str) -> float:
    """Convert a sysfs thermal zone reading (millidegrees) to Celsius."""
    try:
        return float(raw.strip()) / 1000
    except ValueError as exc:
        raise OutputParsingError(
            f"Unexpected thermal zone value {raw.strip()!r}", "TemperatureRetrievalError"
        ) from exc


def parse_wmic_temperature(output: str) -> float:
    """Convert the first MSAcpi_ThermalZoneTemperature reading (tenths of Kelvin) to Celsius."""
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    try:
        tenths_kelvin = int(lines[1])
    except (IndexError, ValueError) as exc:
        raise OutputParsingError(
            "Unexpected thermal zone temperature output", "TemperatureRetrievalError"
        ) from exc
    return round(tenths_kelvin / 10 - KELVIN_OFFSET, 2)
