"""Pydantic models for records returned by the Proxmox VE API."""

from pydantic import BaseModel, ConfigDict, model_validator
from typing import Any, List


class _UpstreamRecord(BaseModel):
    """Base for upstream records: unknown fields ignored, nulls treated as missing."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class VirtualMachineRecord(_UpstreamRecord):
    """One entry of GET /nodes/{node}/qemu."""
    vmid: int = 0
    name: str = ""
    status: str = ""  # Informational only
    cpu: float = 0.0  # Fraction of allocated CPUs, not clamped
    mem: int = 0
    maxmem: int = 0
    netin: int = 0  # Upstream counters, not rates
    netout: int = 0
    # Decoded but not exported
    cpus: float = 0
    disk: int = 0
    diskread: int = 0
    diskwrite: int = 0
    maxdisk: int = 0
    pid: int = 0
    uptime: int = 0


class DatastoreRecord(_UpstreamRecord):
    """One entry of GET /nodes/{node}/storage."""
    storage: str = ""
    active: int = 0
    total: int = 0
    avail: int = 0
    used: int = 0
    type: str = ""
    content: str = ""
    enabled: int = 0
    shared: int = 0


class VirtualMachineResponse(BaseModel):
    """Envelope of the qemu listing."""
    data: List[VirtualMachineRecord]


class DatastoreResponse(BaseModel):
    """Envelope of the storage listing."""
    data: List[DatastoreRecord]
