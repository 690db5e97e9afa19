"""Prometheus metrics for the Mandrill exporter."""

from mandrill_exporter.metrics.collector import (
    METRIC_DEFINITIONS,
    MandrillCollector,
    MetricDefinition,
    MetricSample,
    build_registry,
    render_metrics,
)

__all__ = [
    "METRIC_DEFINITIONS",
    "MandrillCollector",
    "MetricDefinition",
    "MetricSample",
    "build_registry",
    "render_metrics",
]
