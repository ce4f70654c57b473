"""Errors raised while discovering events."""


class DiscoveryError(Exception):
    """Base class for discovery errors."""


class SourceUnavailable(DiscoveryError):
    """An event source could not be read (network, HTTP status, bad payload, timeout)."""

    def __init__(self, source: str, cause: Exception):
        self.source = source
        self.cause = cause
        super().__init__(f"Source '{source}' unavailable: {cause}")


class BothSourcesFailed(DiscoveryError):
    """Neither the preferred nor the fallback source could be read."""

    def __init__(self, failures: list[SourceUnavailable]):
        self.failures = failures
        details = '; '.join(str(failure) for failure in failures)
        super().__init__(f"All event sources failed: {details}")
