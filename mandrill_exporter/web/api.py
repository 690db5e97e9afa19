"""FastAPI application serving the landing page, liveness probe and metrics."""

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import HTMLResponse
from prometheus_client import CollectorRegistry

from mandrill_exporter import __version__
from mandrill_exporter.metrics import render_metrics
from mandrill_exporter.web.health import HealthFlag

logger = structlog.get_logger(__name__)

LANDING_PAGE = """<html>
<head><title>Mandrill statistics Exporter</title></head>
<body>
<h1>Mandrill statistics Exporter</h1>
<p><a href='metrics'>Metrics</a></p>
</body>
</html>
"""


def create_app(registry: CollectorRegistry, health: HealthFlag) -> FastAPI:
    """Build the exporter's HTTP application.

    Args:
        registry: Registry rendered on every /metrics request.
        health: Liveness flag; only read here.

    Returns:
        The FastAPI application.
    """
    # Only "/", "/healthz" and "/metrics" exist; everything else is a 404
    app = FastAPI(
        title="Mandrill statistics Exporter",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            remote_addr=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent", ""),
            status_code=response.status_code,
            duration_seconds=round(time.perf_counter() - start, 6),
        )
        return response

    @app.get("/", response_class=HTMLResponse)
    async def index():
        """Serve the landing page."""
        return LANDING_PAGE

    @app.get("/healthz")
    async def healthz():
        """Liveness probe: 204 while serving, 503 while starting or shutting down."""
        if health.is_healthy():
            return Response(status_code=204)
        return Response(status_code=503)

    # Plain def: runs in the worker thread pool while the upstream call blocks
    @app.get("/metrics")
    def metrics():
        """Get Prometheus metrics.

        Returns:
            Prometheus metrics in text format.
        """
        metrics_bytes, content_type = render_metrics(registry)
        return Response(content=metrics_bytes, media_type=content_type)

    return app
