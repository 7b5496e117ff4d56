"""Value objects handed from the HTML parser to the metric publisher."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DownstreamChannel:
    # 1-based row position in dsTable; not the same thing as the modem's DCID
    channel: int
    dcid: int
    modulation: int
    frequency: float
    power: float
    snr: float
    correcteds: int
    uncorrectables: int


@dataclass(frozen=True)
class UpstreamChannel:
    channel: int
    ucid: int
    # Not used for any metric; carried through for debug logging
    channel_type: str
    symbol_rate: int
    frequency: float
    power: float


@dataclass(frozen=True)
class ModemSnapshot:
    """Everything parsed out of one fetch of the status page."""

    downstream: tuple[DownstreamChannel, ...] = ()
    upstream: tuple[UpstreamChannel, ...] = ()
