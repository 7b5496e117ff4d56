"""Simple wrappers for the failure states that can sink a single collection cycle.

None of these are fatal to the process; the next scrape simply tries again.
"""


class ModemScrapeError(Exception):
    """Base for anything that aborts a fetch -> parse -> publish cycle."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    @property
    def kind(self) -> str:
        return type(self).__name__


class TransportError(ModemScrapeError):
    """Exception for network, timeout or body read failures."""


class UpstreamUnavailable(ModemScrapeError):
    """Exception for non-2xx responses from modem."""


class MalformedModemData(ModemScrapeError):
    """Exception for HTML that could not be turned into channel stats."""
