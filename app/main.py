#!/usr/bin/env python3
"""
Main / entry point for the Netgear CM600 modem exporter.

"""
import asyncio
from os import getenv

import structlog
from aiohttp import ClientSession, web
from cm600.exporter import ModemExporter
from cm600.metrics import ModemMetrics
from cm600.server import build_app
from prometheus_client import CollectorRegistry, PlatformCollector, ProcessCollector
from util.const import COLLECT_TIMEOUT_SECONDS, REQUEST_HEADERS, LogLevel

# cfg-file/arg-arse/clip is overkill for the few things that need to be configured.
# k8s makes it trivial to define env-vars so we'll just use that.
##
MODEM_URL = getenv("MODEM_URL", "http://192.168.100.1/DocsisStatus.asp")

MODEM_USERNAME = getenv("MODEM_USERNAME", "admin")
# Factory default is 'password' but nobody should be running with that; require user provides
MODEM_PASSWORD = getenv("MODEM_PASSWORD", None)

METRICS_HOST = getenv("METRICS_HOST", "0.0.0.0")
METRICS_PORT = int(getenv("METRICS_PORT", "9191"))
METRICS_PATH = getenv("METRICS_PATH", "/metrics")
COLLECT_TIMEOUT = float(getenv("COLLECT_TIMEOUT_SECONDS", str(COLLECT_TIMEOUT_SECONDS)))
# Drop series for channels the modem no longer reports. Off by default; see ModemMetrics.
PRUNE_STALE_SERIES = getenv("PRUNE_STALE_SERIES", "false").lower() in ("1", "true", "yes")


if getenv("LOG_LEVEL") not in LogLevel.__members__ or getenv("LOG_LEVEL") is None:
    print(f"Defaulting to {LogLevel.INFO} log level")
    log_level = LogLevel.INFO
else:
    log_level = LogLevel[getenv("LOG_LEVEL")]  # type: ignore
    print(f"Using log level {log_level.value}")


structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(log_level.value)
)

log = structlog.get_logger(__name__)


async def main():
    """Main entry point."""
    log.info("Starting up")
    # Check that user set auth
    if MODEM_USERNAME is None or MODEM_PASSWORD is None:
        log.error("Missing MODEM_USERNAME or MODEM_PASSWORD")
        return

    registry = CollectorRegistry()
    ProcessCollector(registry=registry)
    PlatformCollector(registry=registry)
    metrics = ModemMetrics(registry, prune_stale=PRUNE_STALE_SERIES)

    log.debug("Setting up connection to modem...", url=MODEM_URL)
    async with ClientSession(headers=REQUEST_HEADERS) as client:
        exporter = ModemExporter(
            client,
            MODEM_URL,
            MODEM_USERNAME,
            MODEM_PASSWORD,
            metrics,
            timeout=COLLECT_TIMEOUT,
        )
        app = build_app(exporter, registry, metrics_path=METRICS_PATH)

        # access_log=None: requests are logged by our own structlog middleware
        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        try:
            site = web.TCPSite(runner, host=METRICS_HOST, port=METRICS_PORT)
            await site.start()
            log.info(
                "Metrics server started",
                host=METRICS_HOST,
                port=METRICS_PORT,
                path=METRICS_PATH,
            )
            # Collection happens on every scrape; nothing to do here but wait
            await asyncio.Event().wait()
        finally:
            await runner.cleanup()


if __name__ == "__main__":
    asyncio.run(main())
