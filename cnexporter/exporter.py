"""
Main container exporter application.

This module wires the Docker snapshot source, the refresh cycles and the
scheduler together, and serves the metrics registry over HTTP in
Prometheus format.
"""

import argparse
import logging
import signal
import sys
from typing import List, Optional

from dotenv import load_dotenv
from flask import Flask, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import ValidationError

from cnexporter import APP_NAME, __version__
from cnexporter.config import ExporterConfig
from cnexporter.docker_client import DockerSnapshotSource
from cnexporter.errors import SourceUnavailable
from cnexporter.metrics import ExporterMetrics
from cnexporter.refresh import CountsRefreshCycle, MetadataRefreshCycle
from cnexporter.scheduler import RefreshScheduler

logger = logging.getLogger(__name__)


def configure_logging(level: str = 'INFO'):
    logging.basicConfig(
        level=level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def create_app(metrics: ExporterMetrics, source: Optional[DockerSnapshotSource] = None) -> Flask:
    """
    Build the Flask app exposing the exporter's registry.

    Args:
        metrics: Metrics whose registry is rendered on /metrics
        source: Snapshot source used by the health check, None while starting up
    """
    app = Flask(__name__)

    @app.route('/metrics')
    def metrics_endpoint():
        """Prometheus metrics endpoint."""
        return Response(generate_latest(metrics.registry), mimetype=CONTENT_TYPE_LATEST)

    @app.route('/health')
    def health():
        """Health check endpoint."""
        if source is None:
            return {'status': 'initializing'}, 503
        if source.ping():
            return {'status': 'healthy', 'docker': 'connected'}, 200
        return {'status': 'unhealthy', 'docker': 'disconnected'}, 503

    @app.route('/')
    def root():
        """Root endpoint with information."""
        return {
            'name': APP_NAME,
            'version': __version__,
            'endpoints': {
                '/metrics': 'Prometheus metrics',
                '/health': 'Health check'
            }
        }

    return app


class ContainerExporter:
    """Exporter publishing container counts and metadata."""

    def __init__(self, config: ExporterConfig, source: Optional[DockerSnapshotSource] = None):
        self.config = config
        self.source = source
        self.metrics = ExporterMetrics()
        self.scheduler: Optional[RefreshScheduler] = None
        self.app: Optional[Flask] = None

    def connect(self):
        """Connect to Docker and build the refresh cycles."""
        if self.source is None:
            self.source = DockerSnapshotSource(self.config.docker_socket_path)

        cycles = [
            CountsRefreshCycle(self.source, self.metrics),
            MetadataRefreshCycle(self.source, self.metrics),
        ]
        self.scheduler = RefreshScheduler(cycles, self.config.poll_interval)
        self.app = create_app(self.metrics, self.source)

    def run_once(self) -> bool:
        """Run every cycle once and report whether all of them published."""
        if self.scheduler is None:
            self.connect()
        results = self.scheduler.run_once()
        return all(results.values())

    def render(self) -> str:
        return generate_latest(self.metrics.registry).decode('utf-8')

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        self.stop()
        sys.exit(0)

    def start(self):
        """Start the refresh schedule and serve /metrics until stopped."""
        logger.info(f"Starting {APP_NAME} v{__version__}...")
        logger.info(f"Using port {self.config.port} to publish /metrics")
        logger.info(f"Setting Docker API polling interval to {self.config.poll_interval} seconds")

        if self.scheduler is None:
            self.connect()

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self.scheduler.start()

        # Binding the port is the only fatal failure once running
        self.app.run(host=self.config.host, port=self.config.port, threaded=True)

    def stop(self):
        """Stop the exporter."""
        logger.info(f"Stopping {APP_NAME}...")

        if self.scheduler:
            self.scheduler.shutdown(wait=True)

        if self.source:
            self.source.close()

        logger.info("Exporter stopped")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description='Publishes container metadata as a Prometheus exporter'
    )
    parser.add_argument('-p', '--port', type=int, help='Port for publishing the Prometheus exporter metrics (default: 9200)')
    parser.add_argument('-t', '--timeout', type=float, dest='poll_interval',
                        help='Interval for polling the Docker API in seconds (default: 15)')
    parser.add_argument('--log-level', help='Logging level (default: INFO)')
    parser.add_argument('--once', action='store_true', help='Refresh once, print the metrics and exit')
    parser.add_argument('-V', '--version', action='version', version=f'{APP_NAME}: version {__version__}')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = parse_args(argv)

    try:
        config = ExporterConfig.from_env(
            port=args.port,
            poll_interval=args.poll_interval,
            log_level=args.log_level
        )
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        return 2

    configure_logging(config.log_level)
    logger.info(f"Configuration: poll_interval={config.poll_interval}s, port={config.port}")

    exporter = ContainerExporter(config)

    try:
        exporter.connect()
    except SourceUnavailable as e:
        logger.error(f"Failed to initialize Docker client: {e}")
        logger.error("Make sure Docker socket is mounted and accessible")
        return 1

    if args.once:
        success = exporter.run_once()
        print(exporter.render(), end='')
        exporter.stop()
        return 0 if success else 1

    try:
        exporter.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
        exporter.stop()
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        exporter.stop()
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
