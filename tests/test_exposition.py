"""Tests for the Prometheus exposition adapter and WSGI app."""

import threading
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest
from prometheus_client import generate_latest
from prometheus_client.parser import text_string_to_metric_families
from wsgiref.util import setup_testing_defaults

from pve_exporter.collectors.pve_collector import PVECollector
from pve_exporter.exceptions import TransportError
from pve_exporter.exposition import (
    PVEWSGIServer,
    PVEWSGIServerV6,
    build_registry,
    create_app,
    serve,
    server_class_for,
)


def parse(text):
    """Map (sample name, sorted label items) -> value."""
    samples = {}
    for family in text_string_to_metric_families(text):
        for sample in family.samples:
            samples[(sample.name, tuple(sorted(sample.labels.items())))] = sample.value
    return samples


def call(app, path):
    """Run a WSGI request and return (status, headers, body)."""
    environ = {"PATH_INFO": path, "REQUEST_METHOD": "GET"}
    setup_testing_defaults(environ)
    captured = {}

    def start_response(status, headers, exc_info=None):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = b"".join(app(environ, start_response))
    return captured["status"], captured["headers"], body


@pytest.fixture
def collector(mock_client, schema, logger):
    return PVECollector(mock_client, schema, logger)


class TestPrometheusAdapter:
    def test_renders_scenario(self, collector):
        registry = build_registry(collector)

        samples = parse(generate_latest(registry).decode())

        vm = (("vm_id", "100"), ("vm_name", "web1"))
        local = (("storage", "local"),)
        assert samples == {
            ("pve_up", ()): 1.0,
            ("pve_cpu_usage", vm): 0.42,
            ("pve_net_in", vm): 10.0,
            ("pve_net_out", vm): 20.0,
            ("pve_mem_usage", vm): 512.0,
            ("pve_mem_max", vm): 1024.0,
            ("pve_datastore_total", local): 1000.0,
            ("pve_datastore_avail", local): 400.0,
            ("pve_datastore_used", local): 600.0,
        }

    def test_gauge_type_and_help(self, collector):
        text = generate_latest(build_registry(collector)).decode()

        assert "# TYPE pve_up gauge" in text
        assert "# HELP pve_cpu_usage CPU Usage" in text

    def test_failure_renders_up_only(self, collector, mock_client):
        mock_client.fetch_vms.side_effect = TransportError("refused", resource="vms", step="fetch")

        samples = parse(generate_latest(build_registry(collector)).decode())

        assert samples == {("pve_up", ()): 0.0}

    def test_registration_does_not_scrape(self, collector, mock_client):
        build_registry(collector)

        mock_client.fetch_vms.assert_not_called()

    def test_each_collection_scrapes_again(self, collector, mock_client):
        registry = build_registry(collector)

        generate_latest(registry)
        generate_latest(registry)

        assert mock_client.fetch_vms.call_count == 2
        assert mock_client.fetch_storage.call_count == 2


class TestCreateApp:
    def test_metrics_path(self, collector):
        app = create_app(build_registry(collector), "/metrics")

        status, headers, body = call(app, "/metrics")

        assert status.startswith("200")
        assert headers["Content-Type"].startswith("text/plain")
        assert b"pve_up 1.0" in body

    def test_metrics_path_on_failure_still_200(self, collector, mock_client):
        mock_client.fetch_storage.side_effect = TransportError("refused", resource="storage", step="fetch")
        app = create_app(build_registry(collector), "/metrics")

        status, _, body = call(app, "/metrics")

        assert status.startswith("200")
        assert b"pve_up 0.0" in body
        assert b"pve_cpu_usage{" not in body

    def test_custom_path(self, collector):
        app = create_app(build_registry(collector), "/pve")

        assert call(app, "/pve")[0].startswith("200")
        assert call(app, "/metrics")[0].startswith("404")

    def test_landing_page(self, collector, mock_client):
        app = create_app(build_registry(collector), "/metrics")

        status, headers, body = call(app, "/")

        assert status.startswith("200")
        assert b'href="/metrics"' in body
        mock_client.fetch_vms.assert_not_called()

    def test_unknown_path(self, collector):
        app = create_app(build_registry(collector), "/metrics")

        status, _, _ = call(app, "/favicon.ico")

        assert status.startswith("404")


class TestServe:
    def test_server_class_for_host(self):
        assert server_class_for("") is PVEWSGIServer
        assert server_class_for("0.0.0.0") is PVEWSGIServer
        assert server_class_for("127.0.0.1") is PVEWSGIServer
        assert server_class_for("::") is PVEWSGIServerV6
        assert server_class_for("::1") is PVEWSGIServerV6

    def test_ephemeral_port(self, collector, logger):
        server = serve(create_app(build_registry(collector)), "127.0.0.1", 0, logger)
        try:
            assert isinstance(server, PVEWSGIServer)
            assert server.server_address[1] != 0
            assert server.logger is logger
        finally:
            server.server_close()

    def test_concurrent_scrapes(self, collector, mock_client, vm_payload, logger):
        """Two requests are served at the same time, each in its own thread."""
        # Both scrapes must be inside the VM fetch at once to get past the barrier
        barrier = threading.Barrier(2, timeout=5)

        def fetch_vms():
            barrier.wait()
            return vm_payload

        mock_client.fetch_vms.side_effect = fetch_vms
        server = serve(create_app(build_registry(collector)), "127.0.0.1", 0, logger)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        url = f"http://127.0.0.1:{server.server_address[1]}/metrics"
        try:
            with ThreadPoolExecutor(max_workers=2) as pool:
                responses = list(pool.map(lambda _: httpx.get(url, timeout=10), range(2)))
        finally:
            server.shutdown()
            server.server_close()
            thread.join(timeout=5)

        for response in responses:
            assert response.status_code == 200
            assert "pve_up 1.0" in response.text
        assert mock_client.fetch_vms.call_count == 2
