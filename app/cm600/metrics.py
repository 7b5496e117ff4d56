"""All the boiler plate / init code for defining metrics.
Every channel metric maps 1:1 to a numeric field on the parsed DownstreamChannel / UpstreamChannel.

OrderedDict is used to associate the field name with the specific metric that should be updated.
Nothing is registered on the prometheus_client default registry; the caller owns the registry.
"""

from collections import OrderedDict
from typing import NamedTuple

import structlog
from cm600.model import ModemSnapshot
from prometheus_client import (CollectorRegistry, Counter, Gauge, Summary,
                               disable_created_metrics)
from util.const import METRICS_NS

# By default, client will automatically create a "_created" meta metric for
#   each counter/summary defined below.
# Having the unix epoch time of when the metric was created isn't that useful for us
#   so we'll disable it.
disable_created_metrics()

log = structlog.get_logger(__name__)

# Channel ordinal (row position) first, then the ID the modem reports for the channel.
DS_LABELS = ("downstream", "dcid")
US_LABELS = ("upstream", "ucid")

# field on the parsed channel -> (metric name sans namespace, help)
DS_METRICS = OrderedDict(
    frequency=("downstream_freq_hertz", "Modem Downstream Frequency (Hz)"),
    power=("downstream_power_dbmv", "Modem Downstream Power (dBmV)"),
    snr=("downstream_snr_db", "Modem Downstream SNR (dB)"),
    modulation=("downstream_modulation_qam", "Modem Downstream Modulation (QAM)"),
    correcteds=("downstream_correcteds_total", "Modem Downstream Correcteds"),
    uncorrectables=(
        "downstream_uncorrectables_total",
        "Modem Downstream Uncorrectables",
    ),
)

US_METRICS = OrderedDict(
    frequency=("upstream_freq_hertz", "Modem Upstream Frequency (Hz)"),
    power=("upstream_power_dbmv", "Modem Upstream Power (dBmV)"),
    symbol_rate=("upstream_symbol_rate", "Modem Upstream Symbol Rate (kSym/s)"),
)


class MetricDescriptor(NamedTuple):
    name: str
    documentation: str
    labelnames: tuple[str, ...]


def describe(namespace: str = METRICS_NS) -> list[MetricDescriptor]:
    """Every channel metric family we can publish; does not need the modem to be reachable."""
    out = []
    for families, labels in ((DS_METRICS, DS_LABELS), (US_METRICS, US_LABELS)):
        for name, documentation in families.values():
            out.append(MetricDescriptor(f"{namespace}_{name}", documentation, labels))
    return out


class ModemMetrics:
    """Gauges for every channel stat plus a few meta metrics about the exporter itself.

    prometheus_client metrics are safe to read while another thread renders the registry.
    Only one publish() should run at a time; ModemExporter holds a lock around it.

    prune_stale:
        The modem drops/renumbers channels every so often. By default a label set that was
        published once keeps its last value forever. Set this to remove label sets that
        are absent from the latest snapshot instead.
    """

    def __init__(
        self,
        registry: CollectorRegistry,
        namespace: str = METRICS_NS,
        prune_stale: bool = False,
    ):
        self.registry = registry
        self.namespace = namespace
        self.prune_stale = prune_stale

        self.downstream: OrderedDict[str, Gauge] = OrderedDict(
            (field, Gauge(f"{namespace}_{name}", doc, DS_LABELS, registry=registry))
            for field, (name, doc) in DS_METRICS.items()
        )
        self.upstream: OrderedDict[str, Gauge] = OrderedDict(
            (field, Gauge(f"{namespace}_{name}", doc, US_LABELS, registry=registry))
            for field, (name, doc) in US_METRICS.items()
        )

        ##
        # Meta Metrics
        ##
        # Interested in any change in how long the modem takes to reply.
        # summary comes with both a count and a sum so we don't need to count the number of scrapes ourselves
        self.request_duration = Summary(
            f"{namespace}_meta_request_duration_seconds",
            "Time spent waiting for modem to respond",
            registry=registry,
        )
        # 'ok' or the name of the error that sank the cycle; small, bounded set of values
        self.collect_result = Counter(
            f"{namespace}_meta_collect_result",
            "Count of successful vs failed collection cycles",
            labelnames=["result"],
            registry=registry,
        )

        # Only tracked when pruning; retained series never need to be looked up again
        self._published_ds: set[tuple[str, str]] = set()
        self._published_us: set[tuple[str, str]] = set()

    def describe(self) -> list[MetricDescriptor]:
        return describe(self.namespace)

    def publish(self, snapshot: ModemSnapshot) -> None:
        """Set every channel gauge from the snapshot."""
        ds_labels = set()
        for ch in snapshot.downstream:
            labels = (str(ch.channel), str(ch.dcid))
            ds_labels.add(labels)
            for field, gauge in self.downstream.items():
                gauge.labels(*labels).set(float(getattr(ch, field)))

        us_labels = set()
        for ch in snapshot.upstream:
            labels = (str(ch.channel), str(ch.ucid))
            us_labels.add(labels)
            log.debug("Upstream channel", labels=labels, channel_type=ch.channel_type)
            for field, gauge in self.upstream.items():
                gauge.labels(*labels).set(float(getattr(ch, field)))

        if self.prune_stale:
            self._remove(self.downstream, self._published_ds - ds_labels)
            self._remove(self.upstream, self._published_us - us_labels)
            self._published_ds = ds_labels
            self._published_us = us_labels

        log.info(
            "Updated channel metrics",
            downstream=len(snapshot.downstream),
            upstream=len(snapshot.upstream),
        )

    @staticmethod
    def _remove(gauges: OrderedDict[str, Gauge], stale: set[tuple[str, str]]) -> None:
        for labels in stale:
            log.info("Removing stale channel series", labels=labels)
            for gauge in gauges.values():
                gauge.remove(*labels)
