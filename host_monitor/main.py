from __future__ import annotations

import argparse
import json
import logging
import time

from host_monitor.collector import MetricsCollector
from host_monitor.config import AppConfig, load_config
from host_monitor.errors import SystemMonitorError
from host_monitor.logging_utils import configure_logging, resolve_log_level
from host_monitor.metrics import get_service_status
from host_monitor.mqtt_client import MqttPublisher
from host_monitor.schema import validate_payload


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Host metrics collector")
    parser.add_argument(
        "--config",
        help="Path to CFG configuration file (defaults apply when omitted)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--log-file",
        help="Also write log records to this file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Enable debug logging (-v) or trace logging (-vv)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log snapshots without publishing to MQTT",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Collect a single snapshot, then exit",
    )
    parser.add_argument(
        "--dump-json",
        help="Write the JSON snapshot to a file (overwrites on each loop)",
    )
    parser.add_argument(
        "--service",
        action="append",
        default=[],
        metavar="NAME",
        help="Report the status of a system service (repeatable)",
    )
    return parser


def report_services(names: list[str], config: AppConfig) -> dict[str, str]:
    logger = logging.getLogger("host_monitor")
    statuses: dict[str, str] = {}
    for name in names:
        try:
            statuses[name] = get_service_status(name, config.collector).value
        except SystemMonitorError as exc:
            logger.error("[%s] %s", exc.category, exc.message)
            statuses[name] = "unknown"
        logger.info("Service %s: %s", name, statuses[name])
    return statuses


def _emit(
    collector: MetricsCollector,
    publisher: MqttPublisher | None,
    args: argparse.Namespace,
    pretty_print: bool,
) -> None:
    logger = logging.getLogger("host_monitor")
    payload = collector.collect().to_dict()
    schema_errors = validate_payload(payload)
    if schema_errors:
        logger.warning("Schema validation failed with %s errors.", len(schema_errors))
        logger.debug("Schema errors: %s", schema_errors)
    else:
        logger.debug("Schema validation passed.")
    payload_json = json.dumps(payload, indent=2) if pretty_print else json.dumps(payload)
    if args.dump_json:
        with open(args.dump_json, "w", encoding="utf-8") as handle:
            handle.write(payload_json)
    if publisher is not None:
        publisher.publish(payload_json)
    else:
        logger.info("Snapshot: %s", payload_json)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = resolve_log_level(args.verbose, args.log_level)
    configure_logging(level, args.log_file)
    logger = logging.getLogger("host_monitor")
    config = load_config(args.config) if args.config else AppConfig()
    pretty_print = level <= logging.DEBUG

    if args.service:
        report_services(args.service, config)

    collector = MetricsCollector(config.monitor, config.collector)
    publisher = None
    if config.mqtt is not None and not args.dry_run:
        publisher = MqttPublisher(config.mqtt)
        publisher.connect()
    elif args.dry_run:
        logger.info("Dry run enabled; skipping MQTT publish.")

    try:
        _emit(collector, publisher, args, pretty_print)
        if args.once:
            logger.info("Single-run mode enabled; exiting after initial snapshot.")
            return 0

        interval = max(1, config.publish.interval_s)
        logger.info("Host monitor started. Collecting every %s seconds.", interval)
        while True:
            time.sleep(interval)
            _emit(collector, publisher, args, pretty_print)
    except KeyboardInterrupt:
        logger.info("Host monitor stopped.")
    finally:
        if publisher is not None:
            publisher.disconnect()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
