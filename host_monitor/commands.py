"""Per-platform command selection and execution."""

from __future__ import annotations

import logging
import platform
import subprocess

from host_monitor.config import CollectorConfig
from host_monitor.errors import CommandError, SystemMonitorError
from host_monitor.logging_utils import TRACE_LEVEL
from host_monitor.models import PlatformFamily

logger = logging.getLogger(__name__)

WMIC_THERMAL_QUERY = [
    "/namespace:\\\\root\\wmi",
    "PATH",
    "MSAcpi_ThermalZoneTemperature",
    "get",
    "CurrentTemperature",
]


def detect_platform() -> PlatformFamily:
    system = platform.system().lower()
    if system == "windows":
        return PlatformFamily.WINDOWS
    if system == "linux":
        return PlatformFamily.LINUX
    if system == "darwin":
        return PlatformFamily.DARWIN
    if system in {"freebsd", "openbsd", "netbsd", "sunos", "aix"}:
        return PlatformFamily.POSIX
    return PlatformFamily.UNSUPPORTED


class CommandResolver:
    """Maps a metric kind to the argv that produces it on one platform family.

    Builders return ``None`` when the metric is read natively rather than
    through an external command.
    """

    family = PlatformFamily.UNSUPPORTED

    def __init__(self, config: CollectorConfig | None = None) -> None:
        self.config = config or CollectorConfig()

    def disk_usage(self) -> list[str] | None:
        raise self._unsupported("disk usage")

    def file_systems(self) -> list[str]:
        raise self._unsupported("file system info")

    def connections(self) -> list[str]:
        raise self._unsupported("active connections")

    def scheduled_tasks(self) -> list[str]:
        raise self._unsupported("scheduled tasks")

    def service_status(self, name: str) -> list[str]:
        raise self._unsupported("service status")

    def temperature(self) -> list[str] | None:
        raise self._unsupported("temperature")

    def _unsupported(self, what: str) -> SystemMonitorError:
        return SystemMonitorError(
            f"{what} is not supported on platform '{platform.system()}'",
            "UnsupportedPlatformError",
        )


class WindowsCommands(CommandResolver):
    family = PlatformFamily.WINDOWS

    def disk_usage(self) -> None:
        return None

    def file_systems(self) -> list[str]:
        return [self.config.wmic_path, "logicaldisk", "get", "size,freespace,caption"]

    def connections(self) -> list[str]:
        return [self.config.netstat_path]

    def scheduled_tasks(self) -> list[str]:
        return [self.config.schtasks_path]

    def service_status(self, name: str) -> list[str]:
        return [self.config.sc_path, "query", name]

    def temperature(self) -> list[str]:
        return [self.config.wmic_path, *WMIC_THERMAL_QUERY]


class PosixCommands(CommandResolver):
    def __init__(
        self,
        config: CollectorConfig | None = None,
        family: PlatformFamily = PlatformFamily.POSIX,
    ) -> None:
        super().__init__(config)
        self.family = family

    def disk_usage(self) -> list[str]:
        return [self.config.df_path, "-k"]

    def file_systems(self) -> list[str]:
        return [self.config.df_path, "-h"]

    def connections(self) -> list[str]:
        return [self.config.netstat_path, "-tn"]

    def scheduled_tasks(self) -> list[str]:
        return [self.config.crontab_path, "-l"]

    def service_status(self, name: str) -> list[str]:
        return [self.config.systemctl_path, "is-active", name]

    def temperature(self) -> None:
        # Linux exposes a thermal zone file; other POSIX systems have no source
        if self.family == PlatformFamily.LINUX:
            return None
        raise self._unsupported("temperature")


class UnsupportedCommands(CommandResolver):
    family = PlatformFamily.UNSUPPORTED


def resolve_commands(config: CollectorConfig | None = None) -> CommandResolver:
    family = detect_platform()
    if family == PlatformFamily.WINDOWS:
        return WindowsCommands(config)
    if family == PlatformFamily.UNSUPPORTED:
        return UnsupportedCommands(config)
    return PosixCommands(config, family)


def run_command(
    command: list[str],
    timeout: float | None = None,
    allow_failure: bool = False,
) -> str:
    """Run ``command`` and return its stdout.

    Any stderr output counts as a failure even when the exit status is zero.
    A non-zero exit fails unless ``allow_failure`` is set, for commands such as
    ``systemctl is-active`` that report state through the exit code.
    """
    display = " ".join(command)
    logger.debug("Running command: %s", display)
    try:
        result = subprocess.run(
            command,
            check=False,
            text=True,
            capture_output=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise CommandError(f"Command not found: {command[0]}", command) from exc
    except subprocess.TimeoutExpired as exc:
        raise CommandError(
            f"Command timed out after {timeout}s: {display}", command
        ) from exc
    except OSError as exc:
        raise CommandError(f"Failed to start {display}: {exc}", command) from exc

    if result.stderr:
        stderr = result.stderr.strip()
        logger.log(TRACE_LEVEL, "stderr: %s", stderr)
        raise CommandError(
            f"Command wrote to stderr ({display}): {stderr}",
            command,
            returncode=result.returncode,
            stderr=stderr,
        )
    if result.returncode != 0 and not allow_failure:
        raise CommandError(
            f"Command failed with exit code {result.returncode}: {display}",
            command,
            returncode=result.returncode,
        )
    if result.stdout:
        logger.log(TRACE_LEVEL, "stdout: %s", result.stdout.strip())
    return result.stdout or ""
