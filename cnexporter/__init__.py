"""
cnexporter - Docker container state exporter for Prometheus

Periodically samples the containers on the local host and republishes
their counts and metadata as Prometheus gauges.
"""

__version__ = "0.2.0"
APP_NAME = "cnexporter"
