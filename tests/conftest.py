"""Shared fixtures: captured status page, HTML builders and a fresh registry per test."""

import asyncio
from pathlib import Path

import pytest
import pytest_asyncio
from aiohttp import BasicAuth, ClientSession, web
from aiohttp.test_utils import TestServer
from cm600.metrics import ModemMetrics
from prometheus_client import CollectorRegistry

FIXTURES = Path(__file__).parent / "fixtures"

DS_HEADER = (
    "<tr><td>Channel</td><td>Lock Status</td><td>Modulation</td><td>Channel ID</td>"
    "<td>Frequency</td><td>Power</td><td>SNR</td><td>Correctables</td><td>Uncorrectables</td></tr>"
)
US_HEADER = (
    "<tr><td>Channel</td><td>Lock Status</td><td>US Channel Type</td><td>Channel ID</td>"
    "<td>Symbol Rate</td><td>Frequency</td><td>Power</td></tr>"
)

# The single-channel page used for the end to end checks
DS_ROW = ("1", "Locked", "256QAM", "5", "603000000 Hz", "3.5 dBmV", "39.8 dB", "1000", "2")
US_ROW = ("1", "Locked", "ATDMA", "3", "5120 ksym/s", "35600000 Hz", "45.2 dBmV")


def _row(cells) -> str:
    return "<tr>" + "".join(f"<td>{c}</td>" for c in cells) + "</tr>"


def build_status_page(ds_rows=(DS_ROW,), us_rows=(US_ROW,)) -> str:
    """Minimal DocsisStatus page. Pass None to leave a table out entirely."""
    parts = ["<html><head><title>NETGEAR Gateway CM600</title></head><body>"]
    if ds_rows is not None:
        parts.append('<table id="dsTable">' + DS_HEADER)
        parts.extend(_row(r) for r in ds_rows)
        parts.append("</table>")
    if us_rows is not None:
        parts.append('<table id="usTable">' + US_HEADER)
        parts.extend(_row(r) for r in us_rows)
        parts.append("</table>")
    parts.append("</body></html>")
    return "".join(parts)


@pytest.fixture
def status_page_html() -> bytes:
    return (FIXTURES / "DocsisStatus.html").read_bytes()


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def modem_metrics(registry) -> ModemMetrics:
    return ModemMetrics(registry)


MODEM_USERNAME = "admin"
MODEM_PASSWORD = "hunter22"
HITS_KEY = web.AppKey("hits", list)


def fake_modem(*responses, delay: float = 0) -> web.Application:
    """Stands in for the modem: basic auth checked, status page served from memory.

    Each response is a body or a (status, body) pair; requests walk through them in order
        and the last one repeats forever.
    """
    queue = [r if isinstance(r, tuple) else (200, r) for r in responses] or [
        (200, b"<html></html>")
    ]
    hits = []

    async def status_page(request: web.Request) -> web.Response:
        auth = request.headers.get("Authorization")
        if auth is None or BasicAuth.decode(auth) != BasicAuth(
            MODEM_USERNAME, MODEM_PASSWORD
        ):
            return web.Response(status=401, text="Unauthorized")
        hits.append(request.path)
        if delay:
            await asyncio.sleep(delay)
        status, body = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(body, str):
            body = body.encode()
        return web.Response(status=status, body=body, content_type="text/html")

    app = web.Application()
    app[HITS_KEY] = hits
    app.router.add_get("/DocsisStatus.asp", status_page)
    return app


async def serve(app: web.Application) -> TestServer:
    server = TestServer(app)
    await server.start_server()
    return server


@pytest_asyncio.fixture
async def client_session():
    async with ClientSession() as cs:
        yield cs
