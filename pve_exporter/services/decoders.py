"""Decoders for Proxmox VE API listing payloads."""

import json
from typing import List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..exceptions import DecodeError
from ..utils.records import (
    DatastoreRecord,
    DatastoreResponse,
    VirtualMachineRecord,
    VirtualMachineResponse,
)


R = TypeVar("R", bound=BaseModel)


def _decode(payload: bytes, envelope: Type[R], resource: str) -> R:
    """
    Parse a `{"data": [...]}` payload into its envelope model.

    Args:
        payload: Raw response body
        envelope: Pydantic envelope model for the listing
        resource: Resource name used in error context

    Returns:
        Validated envelope instance

    Raises:
        DecodeError: On malformed JSON or an unexpected structure
    """
    try:
        raw = json.loads(payload)
    except (ValueError, TypeError) as e:
        # json.JSONDecodeError and UnicodeDecodeError are both ValueError
        raise DecodeError(f"Malformed JSON: {e}", resource=resource, step="decode") from e

    if not isinstance(raw, dict):
        raise DecodeError(
            f"Expected a JSON object, got {type(raw).__name__}",
            resource=resource,
            step="decode",
        )
    if "data" not in raw:
        raise DecodeError("Missing 'data' key", resource=resource, step="decode")

    try:
        return envelope.model_validate(raw)
    except ValidationError as e:
        raise DecodeError(
            f"Unexpected payload structure ({e.error_count()} error(s)): {e}",
            resource=resource,
            step="decode",
        ) from e


def decode_vm_list(payload: bytes) -> List[VirtualMachineRecord]:
    """
    Decode the qemu listing into VM records.

    Missing numeric fields default to zero. Values are not range-checked.

    Raises:
        DecodeError: On malformed JSON or an unexpected structure
    """
    return list(_decode(payload, VirtualMachineResponse, "vms").data)


def decode_datastore_list(payload: bytes) -> List[DatastoreRecord]:
    """
    Decode the storage listing into datastore records.

    Raises:
        DecodeError: On malformed JSON or an unexpected structure
    """
    return list(_decode(payload, DatastoreResponse, "storage").data)
