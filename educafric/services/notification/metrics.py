"""Prometheus counters for the notification subsystem.

Each ``NotificationMetrics`` owns its own ``CollectorRegistry`` so that
several dispatchers (one per test, for instance) never collide on metric
names in the process-wide default registry.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, generate_latest

logger = logging.getLogger(__name__)


class NotificationMetrics:
    """Counters for dispatched events, channel deliveries and queue jobs."""

    CONTENT_TYPE = CONTENT_TYPE_LATEST

    def __init__(self, registry: Optional[CollectorRegistry] = None, namespace: str = "educafric"):
        self.registry = registry or CollectorRegistry()
        self.namespace = namespace

        self.events_total = Counter(
            f"{namespace}_notification_events_total",
            "Notification events handled by the dispatcher",
            ["event_type"],
            registry=self.registry,
        )
        self.events_failed = Counter(
            f"{namespace}_notification_events_failed_total",
            "Notification events whose handler raised or was unknown",
            ["event_type"],
            registry=self.registry,
        )
        self.deliveries_total = Counter(
            f"{namespace}_notification_deliveries_total",
            "Per-channel delivery attempts",
            ["channel", "status"],
            registry=self.registry,
        )
        self.jobs_total = Counter(
            f"{namespace}_notification_jobs_total",
            "Queue jobs finished by a drain",
            ["status"],
            registry=self.registry,
        )

    def record_event(self, event_type: str) -> None:
        self.events_total.labels(event_type=event_type).inc()

    def record_event_failure(self, event_type: str) -> None:
        self.events_failed.labels(event_type=event_type).inc()

    def record_delivery(self, channel: str, status: str) -> None:
        self.deliveries_total.labels(channel=channel, status=status).inc()

    def record_job(self, status: str) -> None:
        self.jobs_total.labels(status=status).inc()

    def _value(self, name: str, labels: Dict[str, str]) -> int:
        value = self.registry.get_sample_value(f"{self.namespace}_{name}", labels)
        return int(value or 0)

    def _sum(self, name: str) -> int:
        """Sum of a counter over every label set, including unregistered event types."""
        sample_name = f"{self.namespace}_{name}"
        total = 0.0
        for metric in self.registry.collect():
            for sample in metric.samples:
                if sample.name == sample_name:
                    total += sample.value
        return int(total)

    def snapshot(self, event_types: Iterable[str]) -> Dict[str, Any]:
        """Counter values in the shape returned by the stats endpoints."""
        by_type = {t: self._value("notification_events_total", {"event_type": t}) for t in event_types}
        return {
            "total": sum(by_type.values()),
            "byType": by_type,
            "failed": self._sum("notification_events_failed_total"),
        }

    def job_count(self, status: str) -> int:
        return self._value("notification_jobs_total", {"status": status})

    def delivery_count(self, channel: str, status: str) -> int:
        return self._value("notification_deliveries_total", {"channel": channel, "status": status})

    def render(self) -> bytes:
        return generate_latest(self.registry)
