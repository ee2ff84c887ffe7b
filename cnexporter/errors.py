"""
Error taxonomy for the container exporter.

Both error kinds are recoverable: a refresh cycle catches them per tick,
skips publishing for that tick and keeps running on schedule.
"""


class CnexporterError(Exception):
    """Base class for exporter errors."""


class SourceUnavailable(CnexporterError):
    """The container runtime could not be reached or returned an API error."""


class HostnameUnavailable(CnexporterError):
    """The hostname of the reporting node could not be determined."""
