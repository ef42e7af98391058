"""HTTP client for the Proxmox VE API."""

import logging
from typing import Optional

import httpx

from ..config.models import ExporterConfig
from ..exceptions import TransportError, UpstreamStatusError


API_PREFIX = "/api2/json"


class PVEClient:
    """
    Thin wrapper around httpx for authenticated GETs against the Proxmox VE API.

    One instance is shared by all scrapes. The underlying httpx.Client pools
    connections and is safe to use from several threads at once. Requests are
    never retried.
    """

    def __init__(
        self,
        config: ExporterConfig,
        logger: logging.Logger = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize the client.

        Args:
            config: Exporter configuration (endpoint, credentials, timeout, TLS option)
            logger: Optional logger instance
            transport: Optional httpx transport, used by tests
        """
        self.config = config
        self.base_url = f"{config.endpoint}{API_PREFIX}"
        self.logger = logger or logging.getLogger(__name__)

        if config.insecure_skip_verify:
            self.logger.warning(
                f"TLS certificate verification is disabled for {config.endpoint}"
            )

        self._client = httpx.Client(
            headers={"Authorization": config.authorization_header},
            timeout=httpx.Timeout(config.timeout_seconds),
            verify=not config.insecure_skip_verify,
            transport=transport,
        )

    def get(self, suffix: str, resource: Optional[str] = None) -> bytes:
        """
        GET `<endpoint>/api2/json<suffix>` and return the raw body.

        Args:
            suffix: Resource path below /api2/json, starting with "/"
            resource: Resource name used in error context

        Returns:
            bytes: Response body

        Raises:
            TransportError: If the API cannot be reached or the request times out
            UpstreamStatusError: If the API answers with a non-2xx status
        """
        url = f"{self.base_url}{suffix}"

        try:
            response = self._client.get(url)
        except httpx.TransportError as e:
            raise TransportError(
                f"Request to {url} failed: {e.__class__.__name__}: {e}",
                resource=resource,
                step="fetch",
            ) from e

        if not response.is_success:
            raise UpstreamStatusError(response.status_code, url, resource=resource)

        return response.content

    def fetch_vms(self) -> bytes:
        """Fetch the qemu VM listing of the configured node."""
        return self.get(f"/nodes/{self.config.node}/qemu/", resource="vms")

    def fetch_storage(self) -> bytes:
        """Fetch the storage listing of the configured node."""
        return self.get(f"/nodes/{self.config.node}/storage/", resource="storage")

    def close(self) -> None:
        """Release pooled connections."""
        self._client.close()

    def __enter__(self) -> "PVEClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
