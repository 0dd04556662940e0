"""Typed records produced by the collectors and middlewares."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any


class PlatformFamily(str, Enum):
    WINDOWS = "windows"
    LINUX = "linux"
    DARWIN = "darwin"
    POSIX = "posix"
    UNSUPPORTED = "unsupported"


class ServiceStatus(str, Enum):
    RUNNING = "running"
    INACTIVE = "inactive"
    UNKNOWN = "unknown"


def usage_percentage(used: float, total: float) -> float:
    """Share of ``total`` spent busy, rounded to 2 decimals; 0.0 when nothing elapsed."""
    if total <= 0:
        return 0.0
    return round(used / total * 100, 2)


@dataclass(frozen=True)
class CpuCoreSnapshot:
    core_id: int
    user_time: float
    system_time: float
    idle_time: float
    total_time: float
    usage_percentage: float


@dataclass(frozen=True)
class CpuSnapshot:
    """Aggregate CPU times in milliseconds, plus one entry per logical core."""

    total_user_time: float
    total_system_time: float
    total_idle_time: float
    total_time: float
    used_time: float
    usage_percentage: float
    cores: list[CpuCoreSnapshot] = field(default_factory=list)


@dataclass(frozen=True)
class MemorySnapshot:
    total_memory: int
    free_memory: int
    used_memory: int


@dataclass(frozen=True)
class DiskPartitionInfo:
    filesystem: str
    total: int
    used: int
    available: int
    used_percentage: int
    mount_point: str


@dataclass(frozen=True)
class FileSystemEntry:
    caption: str
    size: str
    free_space: str


@dataclass(frozen=True)
class NetworkConnectionInfo:
    protocol: str
    local_address: str
    foreign_address: str
    state: str


@dataclass(frozen=True)
class NetworkInterfaceAddress:
    family: str
    address: str
    netmask: str | None = None
    broadcast: str | None = None


@dataclass(frozen=True)
class ScheduledTaskInfo:
    name: str
    details: str


@dataclass(frozen=True)
class LoadAverageSnapshot:
    load_1m: float = 0.0
    load_5m: float = 0.0
    load_15m: float = 0.0


@dataclass(frozen=True)
class ProcessSnapshot:
    # cpu is cumulative user+system milliseconds since process start, not a rate
    cpu: float
    memory: int


@dataclass(frozen=True)
class UserInfoSnapshot:
    username: str
    home_dir: str
    shell: str | None
    hostname: str
    platform: str
    architecture: str


@dataclass(frozen=True)
class OSInfoSnapshot:
    platform: str
    release: str
    architecture: str
    kernel_version: str
    hostname: str
    home_dir: str
    uptime: float
    total_memory: int
    free_memory: int
    number_of_cpus: int
    cpu_model: str | None
    network_interfaces: dict[str, list[NetworkInterfaceAddress]]
    user_info: UserInfoSnapshot


@dataclass(frozen=True)
class MetricsSnapshot:
    """All enabled metrics for one request. Absent metrics stay None."""

    cpu: CpuSnapshot | None = None
    memory: MemorySnapshot | None = None
    disk: list[DiskPartitionInfo] | None = None
    network: dict[str, list[NetworkInterfaceAddress]] | None = None
    uptime: float | None = None
    process: ProcessSnapshot | None = None
    temperature: float | None = None
    os_info: OSInfoSnapshot | None = None
    load_average: LoadAverageSnapshot | None = None
    user_info: UserInfoSnapshot | None = None
    file_systems: list[FileSystemEntry] | None = None
    connections: list[NetworkConnectionInfo] | None = None
    logs: list[str] | None = None
    scheduled_tasks: list[ScheduledTaskInfo] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            f.name: _plain(getattr(self, f.name))
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass(frozen=True)
class RequestTimingRecord:
    method: str
    url: str
    response_time: str
    timestamp: str

    def to_dict(self) -> dict[str, str]:
        return {
            "method": self.method,
            "url": self.url,
            "responseTime": self.response_time,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ErrorStats:
    total_requests: int
    error_count: int
    error_rate: str
    error_routes: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _plain(value: Any) -> Any:
    if hasattr(value, "__dataclass_fields__"):
        return asdict(value)
    if isinstance(value, list):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    return value
