"""Exception classes for the PVE exporter."""

from typing import Optional


class PVEExporterError(Exception):
    """Base exception for the PVE exporter."""
    pass


class UpstreamError(PVEExporterError):
    """
    Raised when one step of a scrape against the upstream API fails.

    Attributes:
        resource: Upstream resource being processed ("vms" or "storage")
        step: Scrape step that failed ("fetch" or "decode")
    """

    def __init__(self, message: str, resource: Optional[str] = None, step: Optional[str] = None):
        super().__init__(message)
        self.resource = resource
        self.step = step


class TransportError(UpstreamError):
    """Raised when the upstream API cannot be reached (connection, DNS, TLS, timeout)."""
    pass


class UpstreamStatusError(UpstreamError):
    """Raised when the upstream API answers with a non-2xx status."""

    def __init__(self, status_code: int, url: str, resource: Optional[str] = None):
        super().__init__(f"HTTP {status_code} from {url}", resource=resource, step="fetch")
        self.status_code = status_code
        self.url = url


class DecodeError(UpstreamError):
    """Raised when an upstream payload is malformed or has an unexpected shape."""
    pass


class ConfigurationError(PVEExporterError):
    """Raised when exporter configuration is invalid."""
    pass
