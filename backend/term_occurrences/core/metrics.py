"""Prometheus metrics instrumentation."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

REGISTRY = CollectorRegistry()

OCCURRENCES_CREATED = Counter(
    "tocc_occurrences_created_total",
    "Term occurrences persisted",
    labelnames=("origin",),
    registry=REGISTRY,
)

OCCURRENCES_APPROVED = Counter(
    "tocc_occurrences_approved_total",
    "Suggested term occurrences approved",
    registry=REGISTRY,
)

OCCURRENCES_REMOVED = Counter(
    "tocc_occurrences_removed_total",
    "Term occurrences removed",
    labelnames=("reason",),
    registry=REGISTRY,
)

RESOLUTION_DURATION = Histogram(
    "tocc_resolution_duration_seconds",
    "Annotation generation duration",
    labelnames=("kind",),
    registry=REGISTRY,
)


def render_metrics() -> bytes:
    """Return metrics in the Prometheus text exposition format."""
    return generate_latest(REGISTRY)


__all__ = [
    "REGISTRY",
    "OCCURRENCES_CREATED",
    "OCCURRENCES_APPROVED",
    "OCCURRENCES_REMOVED",
    "RESOLUTION_DURATION",
    "render_metrics",
]
