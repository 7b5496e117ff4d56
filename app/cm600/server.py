"""
HTTP front end: a landing page and the metrics endpoint that triggers a collection per scrape.
"""

import time

import structlog
from aiohttp import web
from cm600.exporter import ModemExporter
from err.exceptions import ModemScrapeError
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

log = structlog.get_logger(__name__)

EXPORTER_KEY = web.AppKey("exporter", ModemExporter)
REGISTRY_KEY = web.AppKey("registry", CollectorRegistry)
METRICS_PATH_KEY = web.AppKey("metrics_path", str)

LANDING_PAGE = """<html>
<head><title>Netgear CM600 Exporter</title></head>
<body>
<h1>Netgear CM600 Exporter</h1>
<p><a href='{metrics_path}'>Metrics</a></p>
</body>
</html>
"""


@web.middleware
async def access_log_middleware(request: web.Request, handler):
    """aiohttp's access log goes through stdlib logging; keep everything in structlog."""
    started = time.perf_counter()
    status = 500
    try:
        resp = await handler(request)
        status = resp.status
        return resp
    except web.HTTPException as e:
        status = e.status
        raise
    finally:
        log.info(
            "HTTP request",
            method=request.method,
            path=request.path,
            status=status,
            remote=request.remote,
            duration_seconds=round(time.perf_counter() - started, 4),
        )


async def landing_handler(request: web.Request) -> web.Response:
    return web.Response(
        content_type="text/html",
        text=LANDING_PAGE.format(metrics_path=request.app[METRICS_PATH_KEY]),
    )


async def metrics_handler(request: web.Request) -> web.Response:
    exporter = request.app[EXPORTER_KEY]
    try:
        await exporter.collect()
    except ModemScrapeError:
        # Already logged by the exporter. Serve whatever was last published; the meta
        #   metrics will show the failure.
        pass

    return web.Response(
        body=generate_latest(request.app[REGISTRY_KEY]),
        headers={"Content-Type": CONTENT_TYPE_LATEST},
    )


def build_app(
    exporter: ModemExporter,
    registry: CollectorRegistry,
    metrics_path: str = "/metrics",
) -> web.Application:
    app = web.Application(middlewares=[access_log_middleware])
    app[EXPORTER_KEY] = exporter
    app[REGISTRY_KEY] = registry
    app[METRICS_PATH_KEY] = metrics_path
    # Metrics served from the root wins over the landing page
    if metrics_path != "/":
        app.router.add_get("/", landing_handler)
    else:
        log.warning("Metrics path is '/'; landing page disabled")
    app.router.add_get(metrics_path, metrics_handler)
    return app
