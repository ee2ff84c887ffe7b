"""
Aggregation of container snapshots.

Pure functions turning a list of ContainerRecord rows into per-state
counts and metadata label rows. No I/O happens here.
"""

from dataclasses import dataclass
from typing import Dict, Sequence

from cnexporter.docker_client import ContainerRecord

TRACKED_STATES = ('created', 'running', 'exited')
NAME_PREFIX = '/'


@dataclass(frozen=True)
class StatusCounts:
    """Container counts for one tick."""

    total: int
    created: int
    running: int
    exited: int


@dataclass(frozen=True)
class MetadataRow:
    """Metadata of one container, with the name normalized."""

    id: str
    image: str
    name: str
    status: str
    state: str

    def as_labels(self, hostname: str) -> Dict[str, str]:
        """Label set for the metadata gauge, including the host label."""
        return {
            'id': self.id,
            'image': self.image,
            'name': self.name,
            'status': self.status,
            'state': self.state,
            'nodename': hostname,
        }


def count_by_state(records: Sequence[ContainerRecord], state: str) -> int:
    """Count records whose lifecycle state is exactly `state`."""
    return sum(1 for record in records if record.state == state)


def total(records: Sequence[ContainerRecord]) -> int:
    return len(records)


def summarize(records: Sequence[ContainerRecord]) -> StatusCounts:
    """
    Compute all tracked counts for a snapshot.

    Records in an untracked state (paused, restarting, ...) are counted in
    total only.
    """
    return StatusCounts(
        total=total(records),
        created=count_by_state(records, 'created'),
        running=count_by_state(records, 'running'),
        exited=count_by_state(records, 'exited'),
    )


def normalize_name(name: str) -> str:
    # Docker reports names as "/web-1"
    if name.startswith(NAME_PREFIX):
        return name[len(NAME_PREFIX):]
    return name


def to_metadata_row(record: ContainerRecord) -> MetadataRow:
    """Map a container record to its metadata row."""
    return MetadataRow(
        id=record.id,
        image=record.image,
        name=normalize_name(record.name),
        status=record.status,
        state=record.state,
    )
