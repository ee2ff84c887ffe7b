"""
Pytest configuration and shared fixtures
"""
import pytest
from unittest.mock import Mock

from prometheus_client import CollectorRegistry

from cnexporter.docker_client import ContainerRecord, DockerSnapshotSource
from cnexporter.metrics import ExporterMetrics


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "live: mark test as requiring a reachable Docker daemon"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow running"
    )


def make_record(
    id='a1b2c3d4e5f6',
    image='nginx:1.25',
    name='/web-1',
    status='Up 2 hours',
    state='running'
):
    """Build a ContainerRecord with sensible defaults"""
    return ContainerRecord(id=id, image=image, name=name, status=status, state=state)


@pytest.fixture
def record_factory():
    """Factory fixture for ContainerRecord rows"""
    return make_record


@pytest.fixture
def mixed_snapshot():
    """Two running, one exited and one created container"""
    return [
        make_record(id='c1', name='/web-1', state='running', status='Up 2 hours'),
        make_record(id='c2', name='/web-2', state='running', status='Up 5 minutes'),
        make_record(id='c3', name='/worker', image='worker:latest', state='exited', status='Exited (0) 3 days ago'),
        make_record(id='c4', name='/migrate', image='migrate:latest', state='created', status='Created'),
    ]


@pytest.fixture
def mock_source():
    """Snapshot source returning an empty snapshot unless configured"""
    source = Mock(spec=DockerSnapshotSource)
    source.list_containers.return_value = []
    source.ping.return_value = True
    return source


@pytest.fixture
def exporter_metrics():
    """ExporterMetrics on a fresh registry per test"""
    return ExporterMetrics(registry=CollectorRegistry())


@pytest.fixture
def hostname():
    return 'node-01'
