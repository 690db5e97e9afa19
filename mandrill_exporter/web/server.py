"""HTTP server lifecycle: bind, serve, graceful shutdown."""

from __future__ import annotations

import asyncio
import socket
from types import FrameType
from typing import List, Optional, Tuple

import structlog
import uvicorn

from mandrill_exporter.web.health import HealthFlag

logger = structlog.get_logger(__name__)

DEFAULT_LISTEN_ADDR = ":9153"
DEFAULT_DRAIN_TIMEOUT = 5.0
KEEP_ALIVE_TIMEOUT = 15


class ListenerBindError(Exception):
    """The listen address could not be parsed or bound."""


class ShutdownDrainTimeout(Exception):
    """In-flight requests did not finish within the drain timeout."""

    def __init__(self, timeout: float, in_flight: int) -> None:
        self.timeout = timeout
        self.in_flight = in_flight
        super().__init__(
            f"Could not gracefully shutdown the server: {in_flight} request(s) "
            f"still running after {timeout:g}s"
        )


def parse_listen_addr(addr: str) -> Tuple[str, int]:
    """Split a ``host:port`` address.

    An empty host (``:9153``) means all interfaces, IPv4 and IPv6. IPv6
    hosts are bracketed (``[::1]:9153``).

    Raises:
        ValueError: If the address has no valid port.
    """
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {addr!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        raise ValueError(f"IPv6 address must be bracketed in {addr!r}")
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"invalid port {port!r} in address {addr!r}") from None
    if not 0 <= port_number <= 65535:
        raise ValueError(f"port out of range in address {addr!r}")
    return host, port_number


def _bound_socket(family: int, host: str, port: int, dual_stack: bool = False) -> socket.socket:
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if dual_stack:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    return sock


def _bound_any_socket(port: int) -> socket.socket:
    """Bind all interfaces: dual-stack IPv6 when the host supports it, else IPv4."""
    if socket.has_ipv6:
        try:
            return _bound_socket(socket.AF_INET6, "::", port, dual_stack=True)
        except OSError as e:
            logger.debug("ipv6_listener_unavailable", error=str(e))
    return _bound_socket(socket.AF_INET, "0.0.0.0", port)


class ExporterServer(uvicorn.Server):
    """uvicorn server that drives the health flag and bounds the drain."""

    def __init__(
        self,
        config: uvicorn.Config,
        health: HealthFlag,
        drain_timeout: float = DEFAULT_DRAIN_TIMEOUT,
    ) -> None:
        super().__init__(config)
        self.health = health
        self.drain_timeout = drain_timeout

    async def startup(self, sockets: Optional[List[socket.socket]] = None) -> None:
        await super().startup(sockets=sockets)
        if self.started and not self.should_exit and self.health.mark_healthy():
            logger.info("server_ready")

    def handle_exit(self, sig: int, frame: Optional[FrameType]) -> None:
        # Liveness fails from the moment the signal arrives
        self.health.mark_unhealthy()
        super().handle_exit(sig, frame)

    def begin_shutdown(self) -> None:
        self.health.mark_unhealthy()
        self.should_exit = True

    async def shutdown(self, sockets: Optional[List[socket.socket]] = None) -> None:
        # uvicorn closes the listeners, turns off keep-alive on open
        # connections and waits for running requests
        self.health.mark_unhealthy()
        logger.info("server_shutting_down", drain_timeout_seconds=self.drain_timeout)
        try:
            await asyncio.wait_for(super().shutdown(sockets=sockets), timeout=self.drain_timeout)
        except asyncio.TimeoutError:
            tasks = list(self.server_state.tasks)
            for task in tasks:
                task.cancel()
            logger.critical(
                "shutdown_drain_timeout",
                in_flight=len(tasks),
                drain_timeout_seconds=self.drain_timeout,
            )
            raise ShutdownDrainTimeout(self.drain_timeout, len(tasks)) from None
        logger.info("server_stopped")


class LifecycleController:
    """Owns the listener, the server and the health transitions.

    ``serve()`` blocks until shutdown completes. SIGINT and SIGTERM trigger a
    graceful shutdown when running in the main thread; ``request_shutdown()``
    does the same from any thread.
    """

    def __init__(
        self,
        app,
        health: HealthFlag,
        listen_addr: str = DEFAULT_LISTEN_ADDR,
        drain_timeout: float = DEFAULT_DRAIN_TIMEOUT,
    ) -> None:
        self.health = health
        self.listen_addr = listen_addr
        self.drain_timeout = drain_timeout
        self.config = uvicorn.Config(
            app,
            lifespan="off",
            log_config=None,
            access_log=False,
            timeout_keep_alive=KEEP_ALIVE_TIMEOUT,
        )
        self.server = ExporterServer(self.config, health, drain_timeout=drain_timeout)
        self.address: Optional[Tuple[str, int]] = None

    def bind(self) -> socket.socket:
        """Bind the listen socket.

        Raises:
            ListenerBindError: If the address is invalid or unavailable.
        """
        try:
            host, port = parse_listen_addr(self.listen_addr)
        except ValueError as e:
            raise ListenerBindError(str(e)) from e

        try:
            if host:
                family = socket.AF_INET6 if ":" in host else socket.AF_INET
                sock = _bound_socket(family, host, port)
            else:
                sock = _bound_any_socket(port)
        except OSError as e:
            raise ListenerBindError(f"Could not listen on {self.listen_addr}: {e}") from e
        sock.set_inheritable(True)
        self.address = sock.getsockname()[:2]
        return sock

    def serve(self) -> None:
        """Bind, serve until shutdown, then drain.

        Raises:
            ListenerBindError: If the listener cannot be bound.
            ShutdownDrainTimeout: If the drain exceeded its timeout.
        """
        logger.info("server_starting", listen_addr=self.listen_addr)
        sock = self.bind()
        try:
            self.server.run(sockets=[sock])
        finally:
            sock.close()

    def request_shutdown(self) -> None:
        self.server.begin_shutdown()
