"""HTTP surface and process lifecycle of the Mandrill exporter."""

from mandrill_exporter.web.api import create_app
from mandrill_exporter.web.health import HealthFlag, HealthState
from mandrill_exporter.web.server import (
    DEFAULT_DRAIN_TIMEOUT,
    DEFAULT_LISTEN_ADDR,
    ExporterServer,
    LifecycleController,
    ListenerBindError,
    ShutdownDrainTimeout,
    parse_listen_addr,
)

__all__ = [
    "create_app",
    "HealthFlag",
    "HealthState",
    "ExporterServer",
    "LifecycleController",
    "ListenerBindError",
    "ShutdownDrainTimeout",
    "DEFAULT_LISTEN_ADDR",
    "DEFAULT_DRAIN_TIMEOUT",
    "parse_listen_addr",
]
