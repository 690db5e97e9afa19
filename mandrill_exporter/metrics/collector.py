"""Prometheus collector republishing Mandrill tag statistics on every scrape."""

from collections import Counter
from typing import Iterator, List, NamedTuple

import structlog
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.gc_collector import GCCollector
from prometheus_client.platform_collector import PlatformCollector
from prometheus_client.process_collector import ProcessCollector

from mandrill_exporter.api.client import MandrillClient, UpstreamError

logger = structlog.get_logger(__name__)

TAG_LABEL = "tag"


class MetricDefinition(NamedTuple):
    """One exported metric and the TagStatistic field it reads."""

    name: str
    documentation: str
    field: str
    kind: str = "gauge"


# Registry order; every scrape emits the metrics of a tag in this order
METRIC_DEFINITIONS = (
    MetricDefinition("sent_total", "Total number of sent mails.", "sent", "counter"),
    MetricDefinition("hard_bounces", "Number of mails bounced hard", "hard_bounces"),
    MetricDefinition("soft_bounces", "Number of mails bounced soft", "soft_bounces"),
    MetricDefinition("rejects", "Number of mails rejected", "rejects"),
    MetricDefinition("complaints", "Number of complaints", "complaints"),
    MetricDefinition("unsubs", "Number of unsubscribes", "unsubs"),
    MetricDefinition("opens", "Number of mails opened", "opens"),
    MetricDefinition("clicks", "Number of clicks inside mails", "clicks"),
    MetricDefinition("unique_opens", "Unique number of mails opened", "unique_opens"),
    MetricDefinition("unique_clicks", "Unique number of clicks", "unique_clicks"),
    MetricDefinition("reputation", "Mandrill reputation", "reputation"),
)


class MetricSample(NamedTuple):
    """A single labeled observation produced by one scrape."""

    name: str
    tag: str
    value: float


class MandrillCollector:
    """Collects and exposes Mandrill tag statistics as Prometheus metrics.

    Nothing is cached: each ``collect()`` performs one upstream request and
    the samples are rebuilt from its response. Instances hold no mutable
    state, so concurrent scrapes are independent.
    """

    def __init__(self, client: MandrillClient, namespace: str = "mandrill"):
        """Initialize the collector.

        Args:
            client: Client used to fetch the tag statistics.
            namespace: Prefix prepended to every metric name, empty for none.
        """
        self.client = client
        self.namespace = namespace

    def metric_name(self, definition: MetricDefinition) -> str:
        return f"{self.namespace}_{definition.name}" if self.namespace else definition.name

    def collect_samples(self) -> List[MetricSample]:
        """Fetch tag statistics and map them to samples.

        Upstream failures are logged and produce an empty list.

        Returns:
            Eleven samples per tag record, in upstream record order.
        """
        try:
            records = self.client.fetch_tag_statistics()
        except UpstreamError as e:
            logger.error(
                "tag_statistics_fetch_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

        # Duplicates are exported unmerged
        seen = Counter(record.tag for record in records)
        for tag, count in seen.items():
            if count > 1:
                logger.warning("duplicate_tag", tag=tag, occurrences=count)

        samples: List[MetricSample] = []
        for record in records:
            for definition in METRIC_DEFINITIONS:
                samples.append(
                    MetricSample(
                        name=self.metric_name(definition),
                        tag=record.tag,
                        value=float(getattr(record, definition.field)),
                    )
                )
        return samples

    def describe(self) -> Iterator[Metric]:
        for definition in METRIC_DEFINITIONS:
            yield self._new_family(definition)

    def collect(self) -> Iterator[Metric]:
        samples = self.collect_samples()
        if not samples:
            return

        families = {}
        for definition in METRIC_DEFINITIONS:
            families[self.metric_name(definition)] = self._new_family(definition)
        for sample in samples:
            families[sample.name].add_metric([sample.tag], sample.value)
        yield from families.values()

    def _new_family(self, definition: MetricDefinition) -> Metric:
        name = self.metric_name(definition)
        if definition.kind == "counter":
            return CounterMetricFamily(name, definition.documentation, labels=[TAG_LABEL])
        return GaugeMetricFamily(name, definition.documentation, labels=[TAG_LABEL])


def build_registry(
    collector: MandrillCollector,
    include_runtime: bool = True,
) -> CollectorRegistry:
    """Create the registry served on /metrics.

    Args:
        collector: The Mandrill collector.
        include_runtime: Also register the process, platform and GC collectors.

    Returns:
        A registry private to this exporter instance.
    """
    registry = CollectorRegistry()
    if include_runtime:
        ProcessCollector(registry=registry)
        PlatformCollector(registry=registry)
        GCCollector(registry=registry)
    registry.register(collector)
    return registry


def render_metrics(registry: CollectorRegistry) -> tuple[bytes, str]:
    """Serialize every collector of a registry for a scrape response.

    Args:
        registry: Registry built by ``build_registry``.

    Returns:
        The Prometheus text exposition and its Content-Type header value.
    """
    return generate_latest(registry), CONTENT_TYPE_LATEST
