"""
Implementation of the status page fetch.
"""

import structlog
from aiohttp import BasicAuth, ClientError, ClientSession
from err.exceptions import TransportError, UpstreamUnavailable
from util.const import MAX_BODY_BYTES, READ_CHUNK_BYTES

log = structlog.get_logger(__name__)


async def fetch_status_page(
    cs: ClientSession,
    url: str,
    auth: BasicAuth,
    max_bytes: int = MAX_BODY_BYTES,
) -> bytes:
    """
    GETs the DocsisStatus page and returns the raw body.

    No login page or CSRF token on this firmware; basic auth on every request is enough.
    The caller is expected to wrap this in a deadline; cancellation drops the connection
        rather than waiting for the modem to finish.

    Raises:
        UpstreamUnavailable: modem answered with something other than 2xx
        TransportError: connection, read failure or body larger than max_bytes
    """
    try:
        async with cs.get(url, auth=auth) as resp:
            if not 200 <= resp.status < 300:
                # In testing, 401 is by far the most common; usually a bad password
                if resp.status == 401:
                    _e = f"Modem indicated authentication details are incorrect. Status={resp.status}."
                else:
                    _e = f"Failed to get status page. Status={resp.status}."
                raise UpstreamUnavailable(_e, status_code=resp.status)

            body = bytearray()
            async for chunk in resp.content.iter_chunked(READ_CHUNK_BYTES):
                body.extend(chunk)
                if len(body) > max_bytes:
                    raise TransportError(
                        f"Status page is larger than {max_bytes} bytes",
                        status_code=resp.status,
                    )
    except (ClientError, OSError) as e:
        raise TransportError(f"Failed to fetch {url}: {e!r}") from e

    log.debug("Fetched status page", url=url, size=len(body))
    return bytes(body)
