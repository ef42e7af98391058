"""Shared pytest configuration and fixtures."""

import json
import pytest
from unittest.mock import Mock

from pve_exporter.config.models import ExporterConfig
from pve_exporter.utils.logger import setup_logger
from pve_exporter.utils.metrics import build_schema


VM_PAYLOAD = {
    "data": [
        {
            "vmid": 100,
            "name": "web1",
            "cpu": 0.42,
            "mem": 512,
            "maxmem": 1024,
            "netin": 10,
            "netout": 20,
            "status": "running",
        }
    ]
}

STORAGE_PAYLOAD = {
    "data": [
        {"storage": "local", "total": 1000, "avail": 400, "used": 600}
    ]
}


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test")


@pytest.fixture
def config():
    """Minimal valid exporter configuration."""
    return ExporterConfig(
        endpoint="https://pve.example.com:8006",
        api_token="monitor@pve!exporter",
        api_secret="s3cr3t",
    )


@pytest.fixture
def schema():
    """Default metric catalog."""
    return build_schema()


@pytest.fixture
def vm_payload():
    """Raw qemu listing with a single VM."""
    return json.dumps(VM_PAYLOAD).encode()


@pytest.fixture
def storage_payload():
    """Raw storage listing with a single datastore."""
    return json.dumps(STORAGE_PAYLOAD).encode()


@pytest.fixture
def mock_client(vm_payload, storage_payload):
    """Upstream client double answering both listings successfully."""
    client = Mock()
    client.fetch_vms.return_value = vm_payload
    client.fetch_storage.return_value = storage_payload
    return client


@pytest.fixture
def captured(logger, caplog):
    """
    caplog wired straight onto the test logger.

    setup_logger() turns propagation off, so records never reach the root
    handler caplog installs; attach that handler once instead.
    """
    logger.addHandler(caplog.handler)
    try:
        yield caplog
    finally:
        logger.removeHandler(caplog.handler)
