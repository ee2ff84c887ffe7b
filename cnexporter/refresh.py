"""
Refresh cycles publishing container state into the metric sinks.

Each cycle runs one tick at a time: take a snapshot, aggregate it and
publish the result. A tick that cannot fetch its snapshot or resolve the
hostname publishes nothing, so the sinks keep their last good values.
"""

from abc import ABC, abstractmethod
import logging
import socket
import time
from typing import Callable, List, Optional

from cnexporter.aggregator import summarize, to_metadata_row
from cnexporter.docker_client import ContainerRecord, DockerSnapshotSource
from cnexporter.errors import HostnameUnavailable, SourceUnavailable
from cnexporter.metrics import HOST_LABEL, ExporterMetrics

logger = logging.getLogger(__name__)


def get_hostname() -> str:
    """
    Get the hostname of the current node.

    Raises:
        HostnameUnavailable: If the OS lookup fails or returns nothing.
    """
    try:
        hostname = socket.gethostname()
    except OSError as e:
        raise HostnameUnavailable(f"Failed to get the hostname from the OS: {e}") from e
    if not hostname:
        raise HostnameUnavailable("The OS returned an empty hostname")
    return hostname


class RefreshCycle(ABC):
    """Base class for a periodic fetch-aggregate-publish cycle."""

    name = 'base'

    def __init__(
        self,
        source: DockerSnapshotSource,
        metrics: ExporterMetrics,
        hostname_provider: Callable[[], str] = get_hostname
    ):
        self.source = source
        self.metrics = metrics
        self.hostname_provider = hostname_provider

    def run(self) -> bool:
        """
        Execute one tick.

        Returns:
            True if the tick published, False if it was skipped.
        """
        start_time = time.time()

        try:
            records = self.source.list_containers(include_stopped=True)
            # Resolved every tick so a renamed host shows up
            hostname = self.hostname_provider()
        except SourceUnavailable as e:
            logger.error(f"[{self.name}] Snapshot fetch failed, keeping previous values: {e}")
            self.metrics.record_error(self.name, 'source_unavailable')
            return False
        except HostnameUnavailable as e:
            logger.error(f"[{self.name}] Hostname lookup failed, keeping previous values: {e}")
            self.metrics.record_error(self.name, 'hostname_unavailable')
            return False
        except Exception as e:
            logger.error(f"[{self.name}] Unexpected error fetching snapshot: {e}", exc_info=True)
            self.metrics.record_error(self.name, 'unexpected')
            return False

        try:
            self.publish(records, hostname)
        except Exception as e:
            logger.error(f"[{self.name}] Failed to publish metrics: {e}", exc_info=True)
            self.metrics.record_error(self.name, 'sink')
            return False

        end_time = time.time()
        duration = end_time - start_time
        self.metrics.record_success(self.name, end_time, duration)
        logger.debug(f"[{self.name}] Refreshed {len(records)} containers in {duration:.3f}s")
        return True

    @abstractmethod
    def publish(self, records: List[ContainerRecord], hostname: str):
        """Write one snapshot into the sinks."""


class CountsRefreshCycle(RefreshCycle):
    """Publishes total/created/running/exited counts keyed by node."""

    name = 'counts'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.last_hostname: Optional[str] = None

    def publish(self, records: List[ContainerRecord], hostname: str):
        counts = summarize(records)
        labels = {HOST_LABEL: hostname}

        for field, sink in self.metrics.count_sinks:
            sink.set(labels, getattr(counts, field))

        # Drop the series of a previous hostname once the new ones exist
        if self.last_hostname is not None and self.last_hostname != hostname:
            logger.info(f"[{self.name}] Hostname changed from {self.last_hostname} to {hostname}")
            old_labels = {HOST_LABEL: self.last_hostname}
            for _, sink in self.metrics.count_sinks:
                sink.remove(old_labels)
        self.last_hostname = hostname


class MetadataRefreshCycle(RefreshCycle):
    """
    Publishes one presence series per container, labelled with its metadata.

    The label set is the data, so a changed status or state cannot be updated
    in place. Each tick clears the gauge and rewrites every row. Between the
    clear and the last write a scrape may see fewer rows than exist; this
    window is accepted since the sink offers no atomic bulk replace.
    A failed write restores the previous tick's rows before the error
    propagates, so the sink is never left with a partial set.
    """

    name = 'metadata'

    def publish(self, records: List[ContainerRecord], hostname: str):
        # Build every row before clearing to keep the gap short
        label_sets = [to_metadata_row(record).as_labels(hostname) for record in records]

        sink = self.metrics.metadata
        previous = sink.samples()
        sink.clear_all()
        try:
            for labels in label_sets:
                sink.set(labels, 0)
        except Exception:
            sink.clear_all()
            for labels, value in previous:
                sink.set(labels, value)
            raise
