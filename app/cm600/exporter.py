"""
The collection cycle: fetch -> parse -> publish, one at a time, under a deadline.
"""

import asyncio

import structlog
from aiohttp import BasicAuth, ClientSession
from cm600.metrics import ModemMetrics
from cm600.model import ModemSnapshot
from cm600.parse import parse_status_page
from cm600.scrape import fetch_status_page
from err.exceptions import ModemScrapeError, TransportError
from util.const import COLLECT_TIMEOUT_SECONDS

log = structlog.get_logger(__name__)


class ModemExporter:
    """Owns the modem connection details and the metrics that get updated from it."""

    def __init__(
        self,
        cs: ClientSession,
        url: str,
        username: str,
        password: str,
        metrics: ModemMetrics,
        timeout: float = COLLECT_TIMEOUT_SECONDS,
    ):
        self.cs = cs
        self.url = url
        self.metrics = metrics
        self.timeout = timeout
        self._auth = BasicAuth(username, password)
        # Two scrapes landing at the same time must not interleave their snapshots
        self._lock = asyncio.Lock()

    async def collect(self) -> ModemSnapshot:
        """Run one full cycle and return the snapshot that was published.

        On failure nothing in the channel metrics is touched, the failure is logged and the
            typed error is re-raised so the caller can decide what to serve.
        """
        async with self._lock:
            try:
                snapshot = await self._fetch_and_parse()
            except ModemScrapeError as e:
                self.metrics.collect_result.labels(e.kind).inc()
                log.error(
                    "Failed to collect modem metrics",
                    kind=e.kind,
                    error=e.message,
                    status_code=e.status_code,
                    url=self.url,
                )
                raise

            self.metrics.publish(snapshot)
            self.metrics.collect_result.labels("ok").inc()
            return snapshot

    async def _fetch_and_parse(self) -> ModemSnapshot:
        try:
            async with asyncio.timeout(self.timeout):
                with self.metrics.request_duration.time():
                    raw = await fetch_status_page(self.cs, self.url, self._auth)
                return parse_status_page(raw)
        except TimeoutError as e:
            raise TransportError(
                f"Modem did not respond within {self.timeout} seconds"
            ) from e
