"""Pydantic configuration models for the exporter."""

from pydantic import BaseModel, Field, field_validator
from typing import Tuple
import re


class ExporterConfig(BaseModel):
    """Root configuration model for the PVE exporter."""
    endpoint: str = ""  # Base URL of the Proxmox VE API, without /api2/json
    api_token: str = ""  # Token id, e.g. user@realm!name
    api_secret: str = ""
    address: str = ":8000"
    path: str = "/metrics"
    node: str = "localhost"
    timeout_seconds: float = Field(default=10.0, gt=0)
    # Skips TLS certificate validation towards the API. Operators must opt in.
    insecure_skip_verify: bool = False
    log_level: str = "INFO"

    @field_validator('endpoint')
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Validate URL format and strip trailing slashes."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('endpoint must start with http:// or https://')
        return v.rstrip('/')

    @field_validator('path')
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith('/'):
            raise ValueError('path must start with /')
        return v

    @field_validator('node')
    @classmethod
    def validate_node(cls, v: str) -> str:
        if not re.match(r'^[A-Za-z0-9][A-Za-z0-9.-]*$', v):
            raise ValueError('Invalid node name')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f'Unknown log level: {v}')
        return level

    @property
    def authorization_header(self) -> str:
        """Value of the Authorization header expected by the API."""
        return f"PVEAPIToken={self.api_token}={self.api_secret}"

    @property
    def listen_address(self) -> Tuple[str, int]:
        """
        Split `address` into host and port.

        Accepts "host:port", ":port" and "[v6addr]:port". An empty host means
        all IPv4 interfaces; "[::]:port" listens on IPv6 and IPv4.

        Raises:
            ValueError: If the address cannot be parsed
        """
        match = re.match(r'^(?:\[(?P<v6>[^\]]+)\]|(?P<host>[^:\[\]]*)):(?P<port>\d+)$', self.address)
        if not match:
            raise ValueError(f'Invalid listen address: {self.address}')
        port = int(match.group('port'))
        if not 0 < port < 65536:
            raise ValueError(f'Port out of range: {port}')
        return match.group('v6') or match.group('host') or "", port
