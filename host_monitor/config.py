from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import configparser


@dataclass(frozen=True)
class LogSource:
    path: str
    keyword: str | None = None


@dataclass(frozen=True)
class MonitorOptions:
    """Which collectors the aggregator runs for each request."""

    cpu: bool = True
    memory: bool = True
    disk: bool = True
    network: bool = True
    uptime: bool = True
    process_info: bool = True
    temperature: bool = False
    os_info: bool = False
    load_average: bool = False
    user_info: bool = False
    file_system_info: bool = False
    active_connections: bool = False
    scheduled_tasks: bool = False
    logs: LogSource | None = None

    @classmethod
    def disabled(cls) -> MonitorOptions:
        return cls(cpu=False, memory=False, disk=False, network=False, uptime=False, process_info=False)


@dataclass(frozen=True)
class CollectorConfig:
    command_timeout_s: float = 10.0
    df_path: str = "df"
    netstat_path: str = "netstat"
    crontab_path: str = "crontab"
    systemctl_path: str = "systemctl"
    schtasks_path: str = "schtasks"
    sc_path: str = "sc"
    wmic_path: str = "wmic"
    thermal_zone_path: str = "/sys/class/thermal/thermal_zone0/temp"


@dataclass(frozen=True)
class TrackTimeConfig:
    file_path: str | None = None
    header: bool = False


@dataclass(frozen=True)
class PublishConfig:
    interval_s: int = 15


@dataclass(frozen=True)
class MqttConfig:
    host: str
    port: int
    base_topic: str
    client_id: str
    username: str | None
    password: str | None
    qos: int
    retain: bool
    tls_enabled: bool
    ca_cert: str | None
    keepalive: int = 60

    @property
    def timing_topic(self) -> str:
        return f"{self.base_topic}/timing"


@dataclass(frozen=True)
class AppConfig:
    monitor: MonitorOptions = field(default_factory=MonitorOptions)
    collector: CollectorConfig = field(default_factory=CollectorConfig)
    track_time: TrackTimeConfig = field(default_factory=TrackTimeConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)
    mqtt: MqttConfig | None = None


def _get_optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value if value else None


def _load_monitor(parser: configparser.ConfigParser) -> MonitorOptions:
    defaults = MonitorOptions()

    def flag(name: str) -> bool:
        return parser.getboolean("monitor", name, fallback=getattr(defaults, name))

    log_path = _get_optional(parser.get("monitor", "log_path", fallback=None))
    logs = None
    if log_path:
        logs = LogSource(
            path=log_path,
            keyword=_get_optional(parser.get("monitor", "log_keyword", fallback=None)),
        )

    return MonitorOptions(
        cpu=flag("cpu"),
        memory=flag("memory"),
        disk=flag("disk"),
        network=flag("network"),
        uptime=flag("uptime"),
        process_info=flag("process_info"),
        temperature=flag("temperature"),
        os_info=flag("os_info"),
        load_average=flag("load_average"),
        user_info=flag("user_info"),
        file_system_info=flag("file_system_info"),
        active_connections=flag("active_connections"),
        scheduled_tasks=flag("scheduled_tasks"),
        logs=logs,
    )


def _load_collector(parser: configparser.ConfigParser) -> CollectorConfig:
    defaults = CollectorConfig()

    def path(name: str) -> str:
        return parser.get("collector", name, fallback=getattr(defaults, name))

    return CollectorConfig(
        command_timeout_s=parser.getfloat(
            "collector", "command_timeout_s", fallback=defaults.command_timeout_s
        ),
        df_path=path("df_path"),
        netstat_path=path("netstat_path"),
        crontab_path=path("crontab_path"),
        systemctl_path=path("systemctl_path"),
        schtasks_path=path("schtasks_path"),
        sc_path=path("sc_path"),
        wmic_path=path("wmic_path"),
        thermal_zone_path=path("thermal_zone_path"),
    )


def _load_mqtt(parser: configparser.ConfigParser) -> MqttConfig | None:
    if not parser.has_section("mqtt"):
        return None
    mqtt_section = parser["mqtt"]
    return MqttConfig(
        host=mqtt_section.get("host", "localhost"),
        port=mqtt_section.getint("port", 1883),
        base_topic=mqtt_section.get("base_topic", "host-monitor/metrics"),
        client_id=mqtt_section.get("client_id", "host-monitor"),
        username=_get_optional(mqtt_section.get("username")),
        password=_get_optional(mqtt_section.get("password")),
        qos=mqtt_section.getint("qos", 0),
        retain=mqtt_section.getboolean("retain", False),
        tls_enabled=mqtt_section.getboolean("tls", False),
        ca_cert=_get_optional(mqtt_section.get("ca_cert")),
        keepalive=mqtt_section.getint("keepalive", 60),
    )


def load_config(path: str | Path) -> AppConfig:
    parser = configparser.ConfigParser()
    read_files = parser.read(path)
    if not read_files:
        raise FileNotFoundError(f"Config file not found: {path}")

    # Every section is optional; parser.get(..., fallback=...) covers missing ones
    track_time = TrackTimeConfig(
        file_path=_get_optional(parser.get("track_time", "file_path", fallback=None)),
        header=parser.getboolean("track_time", "header", fallback=False),
    )
    publish = PublishConfig(
        interval_s=parser.getint("publish", "interval_s", fallback=15),
    )

    return AppConfig(
        monitor=_load_monitor(parser),
        collector=_load_collector(parser),
        track_time=track_time,
        publish=publish,
        mqtt=_load_mqtt(parser),
    )
