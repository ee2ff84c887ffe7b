"""
Prometheus metrics definitions for container state.

All metrics live in an explicit CollectorRegistry owned by ExporterMetrics,
built once at startup and handed to each refresh cycle. Nothing is
registered on the process-wide default registry.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from prometheus_client import CollectorRegistry, Counter, Gauge

HOST_LABEL = 'nodename'
METADATA_LABELS = ('id', 'image', 'name', 'status', 'state', HOST_LABEL)


class GaugeSink:
    """
    Label-keyed gauge collection with point updates and a full clear.

    Thread safety of individual updates is provided by prometheus_client.
    """

    def __init__(self, gauge: Gauge, labelnames: Sequence[str]):
        self.gauge = gauge
        self.labelnames = tuple(labelnames)

    def set(self, labels: Dict[str, str], value: float):
        """Set the series identified by `labels` to `value` (last write wins)."""
        self.gauge.labels(**labels).set(value)

    def remove(self, labels: Dict[str, str]):
        """Remove the series identified by `labels`, if it exists."""
        values = [labels[name] for name in self.labelnames]
        try:
            self.gauge.remove(*values)
        except KeyError:
            # Older prometheus_client raises for unknown label values
            pass

    def clear_all(self):
        """Remove every label set from the gauge."""
        self.gauge.clear()

    def samples(self) -> List[Tuple[Dict[str, str], float]]:
        """
        Enumerate the current series.

        Returns:
            List of (labels, value) pairs, one per label set.
        """
        result = []
        for family in self.gauge.collect():
            for sample in family.samples:
                result.append((dict(sample.labels), sample.value))
        return result


class ExporterMetrics:
    """Owns the registry and every gauge the exporter publishes."""

    def __init__(self, registry: Optional[CollectorRegistry] = None, namespace: str = 'cnexporter'):
        self.registry = registry if registry is not None else CollectorRegistry()

        # Container counts, one series per node
        self.total = self._count_gauge(namespace, 'containers_count', 'Number of Docker containers detected on the node')
        self.created = self._count_gauge(namespace, 'containers_created', "Number of Docker containers with status 'created'")
        self.running = self._count_gauge(namespace, 'containers_running', "Number of Docker containers with status 'running'")
        self.exited = self._count_gauge(namespace, 'containers_exited', "Number of Docker containers with status 'exited'")

        # Always 0; the labels carry the data
        self.metadata = GaugeSink(Gauge(
            f'{namespace}_containers_metadata',
            'Container metadata',
            METADATA_LABELS,
            registry=self.registry
        ), METADATA_LABELS)

        # Exporter health metrics
        self.last_refresh_timestamp = Gauge(
            f'{namespace}_last_refresh_timestamp_seconds',
            'Unix time of the last successful refresh',
            ['cycle'],
            registry=self.registry
        )
        self.refresh_duration_seconds = Gauge(
            f'{namespace}_refresh_duration_seconds',
            'Duration of the last successful refresh',
            ['cycle'],
            registry=self.registry
        )
        self.refresh_errors_total = Counter(
            f'{namespace}_refresh_errors_total',
            'Total number of skipped refreshes',
            ['cycle', 'error_type'],
            registry=self.registry
        )

    def _count_gauge(self, namespace: str, name: str, documentation: str) -> GaugeSink:
        return GaugeSink(Gauge(
            f'{namespace}_{name}',
            documentation,
            [HOST_LABEL],
            registry=self.registry
        ), [HOST_LABEL])

    @property
    def count_sinks(self) -> Sequence[Tuple[str, GaugeSink]]:
        """Count sinks keyed by the StatusCounts field they publish."""
        return (
            ('total', self.total),
            ('created', self.created),
            ('running', self.running),
            ('exited', self.exited),
        )

    def record_success(self, cycle: str, timestamp: float, duration: float):
        self.last_refresh_timestamp.labels(cycle=cycle).set(timestamp)
        self.refresh_duration_seconds.labels(cycle=cycle).set(duration)

    def record_error(self, cycle: str, error_type: str):
        self.refresh_errors_total.labels(cycle=cycle, error_type=error_type).inc()
