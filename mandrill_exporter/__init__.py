"""Prometheus exporter for Mandrill per-tag statistics."""

__version__ = "1.0.0"
