"""
Docker API client for taking container snapshots.

This module wraps the Docker SDK and turns the container list into plain
ContainerRecord rows, so the rest of the exporter never touches SDK objects.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import docker
import requests
from docker.errors import DockerException

from cnexporter.errors import SourceUnavailable

# The SDK lets some transport errors through unwrapped
DOCKER_ERRORS = (DockerException, requests.exceptions.RequestException)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContainerRecord:
    """One row of a container snapshot, as reported by the runtime."""

    id: str
    image: str
    name: str
    status: str
    state: str

    @classmethod
    def from_attrs(cls, attrs: Dict[str, Any]) -> "ContainerRecord":
        """
        Build a record from a container list entry.

        Args:
            attrs: Raw attributes from the Docker list API (Id, Image,
                Names, Status, State).

        Returns:
            ContainerRecord with the raw (unnormalized) name.
        """
        names = attrs.get('Names') or []
        state = attrs.get('State', '')
        # Inspected containers carry State as a dict
        if isinstance(state, dict):
            state = state.get('Status', '')

        return cls(
            id=attrs.get('Id', ''),
            image=attrs.get('Image', ''),
            name=names[0] if names else attrs.get('Name', ''),
            status=attrs.get('Status', ''),
            state=state,
        )


class DockerSnapshotSource:
    """Lists containers from the Docker daemon."""

    def __init__(self, socket_path: Optional[str] = None, client: Optional[docker.DockerClient] = None):
        """
        Initialize the Docker client.

        Args:
            socket_path: Optional Docker daemon URL. If None, uses the environment.
            client: Optional pre-built client, mostly for tests.

        Raises:
            SourceUnavailable: If the daemon cannot be reached.
        """
        try:
            if client is not None:
                self.client = client
            elif socket_path:
                self.client = docker.DockerClient(base_url=socket_path)
            else:
                self.client = docker.from_env()

            # Test connection
            self.client.ping()
            logger.info("Successfully connected to Docker daemon")
        except DOCKER_ERRORS as e:
            logger.error(f"Failed to connect to Docker daemon: {e}")
            raise SourceUnavailable(f"Docker daemon unreachable: {e}") from e

    def list_containers(self, include_stopped: bool = True) -> List[ContainerRecord]:
        """
        Take a snapshot of the containers on this host.

        Args:
            include_stopped: If True, includes created and exited containers.

        Returns:
            List of ContainerRecord rows.

        Raises:
            SourceUnavailable: If the Docker API call fails.
        """
        try:
            # sparse=True skips the per-container inspect call
            containers = self.client.containers.list(all=include_stopped, sparse=True)
        except DOCKER_ERRORS as e:
            raise SourceUnavailable(f"Failed to list containers: {e}") from e

        records = [ContainerRecord.from_attrs(c.attrs) for c in containers]
        logger.debug(f"Found {len(records)} containers")
        return records

    def ping(self) -> bool:
        """Return True if the Docker daemon answers."""
        try:
            return bool(self.client.ping())
        except DOCKER_ERRORS as e:
            logger.warning(f"Docker ping failed: {e}")
            return False

    def close(self):
        """Close the Docker client connection."""
        try:
            self.client.close()
            logger.info("Docker client connection closed")
        except DOCKER_ERRORS as e:
            logger.error(f"Error closing Docker client: {e}")
