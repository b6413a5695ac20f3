from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Protocol

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from campus_api.services.freshness import SyncOutcome


@dataclass(frozen=True)
class ApiRequestMetric:
    method: str
    path: str
    status_code: int
    duration_ms: float
    trace_id: str


class ApiMetricCollector(Protocol):
    def observe(self, metric: ApiRequestMetric) -> None: ...


class InMemoryApiMetricsCollector(ApiMetricCollector):
    def __init__(self) -> None:
        self._metrics: list[ApiRequestMetric] = []
        self._sync_outcomes: dict[str, int] = {}

    def observe(self, metric: ApiRequestMetric) -> None:
        self._metrics.append(metric)

    def observe_sync(self, outcome: SyncOutcome) -> None:
        self._sync_outcomes[outcome.value] = self._sync_outcomes.get(outcome.value, 0) + 1

    def snapshot(self) -> list[dict]:
        return [asdict(item) for item in self._metrics]

    def sync_counts(self) -> dict[str, int]:
        return dict(self._sync_outcomes)


class PrometheusApiMetricsCollector(ApiMetricCollector):
    def __init__(self) -> None:
        self._registry = CollectorRegistry()
        self._request_counter = Counter(
            "campus_http_requests_total",
            "Total CampusLink HTTP requests",
            labelnames=("method", "path", "status_code"),
            registry=self._registry,
        )
        self._latency_histogram = Histogram(
            "campus_http_request_duration_ms",
            "CampusLink HTTP request latency in milliseconds",
            labelnames=("method", "path"),
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 3000, 6000),
            registry=self._registry,
        )
        self._sync_counter = Counter(
            "campus_status_sync",
            "Open/closed status synchronization attempts by outcome",
            labelnames=("outcome",),
            registry=self._registry,
        )

    def observe(self, metric: ApiRequestMetric) -> None:
        status = str(metric.status_code)
        self._request_counter.labels(metric.method, metric.path, status).inc()
        self._latency_histogram.labels(metric.method, metric.path).observe(metric.duration_ms)

    def observe_sync(self, outcome: SyncOutcome) -> None:
        self._sync_counter.labels(outcome.value).inc()

    def render(self) -> str:
        return generate_latest(self._registry).decode("utf-8")


class CompositeApiMetricsCollector(ApiMetricCollector):
    def __init__(self, collectors: list) -> None:
        self._collectors = collectors

    def observe(self, metric: ApiRequestMetric) -> None:
        for collector in self._collectors:
            collector.observe(metric)

    def observe_sync(self, outcome: SyncOutcome) -> None:
        for collector in self._collectors:
            collector.observe_sync(outcome)
