"""Starlette middlewares attaching host metrics and request statistics."""

from __future__ import annotations

import inspect
import json
import logging
import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from host_monitor.collector import MetricsCollector
from host_monitor.config import AppConfig, CollectorConfig, MonitorOptions
from host_monitor.models import ErrorStats, MetricsSnapshot, RequestTimingRecord
from host_monitor.mqtt_client import MqttPublisher

logger = logging.getLogger(__name__)

RESPONSE_TIME_HEADER = "X-Response-Time"

TimingSink = Callable[[RequestTimingRecord], Any]


def _original_url(request: Request) -> str:
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return url


def _iso_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SystemMonitorMiddleware(BaseHTTPMiddleware):
    """Collects a :class:`MetricsSnapshot` and exposes it as ``request.state.system_metrics``.

    Collectors block on subprocesses, so they run in the threadpool and leave
    the event loop free for other requests.
    """

    def __init__(
        self,
        app: ASGIApp,
        options: MonitorOptions | None = None,
        config: CollectorConfig | None = None,
        collector: MetricsCollector | None = None,
    ) -> None:
        super().__init__(app)
        self.collector = collector or MetricsCollector(options, config)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            snapshot = await run_in_threadpool(self.collector.collect)
        except Exception:
            logger.exception("Error fetching system metrics")
            snapshot = MetricsSnapshot()
        request.state.system_metrics = snapshot
        return await call_next(request)


def append_timing_record(record: RequestTimingRecord, file_path: str | Path) -> None:
    """Append ``record`` as one JSON line, creating parent directories first."""
    path = Path(file_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        logger.exception("Error creating directory: %s", path.parent)
        return
    try:
        with path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record.to_dict()) + "\n")
    except OSError:
        logger.exception("Error writing to log file: %s", path)


class TrackTimeMiddleware(BaseHTTPMiddleware):
    """Measures how long the downstream app takes to produce a response.

    The elapsed time can be set as an ``X-Response-Time`` header, appended to
    ``file_path`` as JSON lines and/or handed to ``store_on_db``. File and sink
    failures are logged and never affect the response.
    """

    def __init__(
        self,
        app: ASGIApp,
        file_path: str | Path | None = None,
        store_on_db: TimingSink | None = None,
        set_header: bool = False,
    ) -> None:
        super().__init__(app)
        self.file_path = file_path
        self.store_on_db = store_on_db
        self.set_header = set_header

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        response_time = f"{(time.perf_counter() - start) * 1000:.3f}"

        if self.set_header:
            response.headers[RESPONSE_TIME_HEADER] = f"{response_time}ms"

        if self.file_path or self.store_on_db:
            record = RequestTimingRecord(
                method=request.method,
                url=_original_url(request),
                response_time=response_time,
                timestamp=_iso_timestamp(),
            )
            if self.file_path:
                await run_in_threadpool(append_timing_record, record, self.file_path)
            if self.store_on_db:
                await self._store(record)
        return response

    async def _store(self, record: RequestTimingRecord) -> None:
        try:
            result = self.store_on_db(record)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Error storing request timing record")


class ResponseTimeMiddleware(TrackTimeMiddleware):
    """Only sets the ``X-Response-Time`` header."""

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app, set_header=True)


class ErrorTrackingState:
    """Request and error counters shared by every request through one middleware.

    Guarded by a lock so completions from worker threads cannot lose updates.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total_requests = 0
        self.error_count = 0
        self.error_routes: dict[str, int] = {}

    def record_request(self) -> None:
        with self._lock:
            self.total_requests += 1

    def record_response(self, route: str, status_code: int) -> ErrorStats:
        with self._lock:
            if status_code >= 400:
                self.error_count += 1
                self.error_routes[route] = self.error_routes.get(route, 0) + 1
            return self._stats()

    def snapshot(self) -> ErrorStats:
        with self._lock:
            return self._stats()

    def _stats(self) -> ErrorStats:
        rate = self.error_count / self.total_requests * 100 if self.total_requests else 0.0
        return ErrorStats(
            total_requests=self.total_requests,
            error_count=self.error_count,
            error_rate=f"{rate:.2f}%",
            error_routes=dict(self.error_routes),
        )


class ErrorTrackingMiddleware(BaseHTTPMiddleware):
    """Counts responses with status >= 400 per route.

    The updated :class:`ErrorStats` is set as ``request.state.error_response``
    once the response is produced, before its body is sent. An exception
    raised downstream counts as a 500 and is re-raised.
    """

    def __init__(self, app: ASGIApp, state: ErrorTrackingState | None = None) -> None:
        super().__init__(app)
        self.tracking = state or ErrorTrackingState()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        self.tracking.record_request()
        route = _original_url(request)
        try:
            response = await call_next(request)
        except Exception:
            request.state.error_response = self.tracking.record_response(route, 500)
            raise
        request.state.error_response = self.tracking.record_response(route, response.status_code)
        return response


def _mqtt_timing_sink(config: AppConfig) -> TimingSink:
    publisher = MqttPublisher(config.mqtt)
    try:
        publisher.connect()
    except OSError:
        # paho keeps queueing; failed publishes are logged per record
        logger.exception("Error connecting timing publisher to %s", config.mqtt.host)
    return publisher.publish_timing


def setup_monitoring(
    app: Starlette,
    config: AppConfig,
    store_on_db: TimingSink | None = None,
    error_state: ErrorTrackingState | None = None,
) -> ErrorTrackingState:
    """Install all middlewares on ``app`` from an :class:`AppConfig`.

    Timing wraps everything else so it measures the metrics collection too.
    Without an explicit ``store_on_db``, a configured ``[mqtt]`` section makes
    timing records go to the broker's timing topic.
    Returns the error tracking state so callers can report on it.
    """
    error_state = error_state or ErrorTrackingState()
    if store_on_db is None and config.mqtt is not None:
        store_on_db = _mqtt_timing_sink(config)
    app.add_middleware(
        SystemMonitorMiddleware, options=config.monitor, config=config.collector
    )
    app.add_middleware(ErrorTrackingMiddleware, state=error_state)
    if config.track_time.file_path or config.track_time.header or store_on_db:
        app.add_middleware(
            TrackTimeMiddleware,
            file_path=config.track_time.file_path,
            store_on_db=store_on_db,
            set_header=config.track_time.header,
        )
    return error_state
