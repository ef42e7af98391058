"""Prometheus exposition adapter and HTTP listener."""

import logging
import socket
from typing import Dict, Iterator, List
from wsgiref.simple_server import WSGIRequestHandler, make_server

from prometheus_client import CollectorRegistry, make_wsgi_app
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.exposition import ThreadingWSGIServer

from .collectors.base import BaseCollector
from .utils.metrics import MetricSample


LANDING_PAGE = """<html>
<head><title>PVE Exporter</title></head>
<body>
<h1>PVE Exporter</h1>
<p><a href="{path}">Metrics</a></p>
</body>
</html>
"""


class PrometheusAdapter:
    """
    prometheus_client custom collector backed by a scrape-driven collector.

    Every registry collection runs exactly one scrape cycle and renders its
    samples as gauges, one family per catalog entry, in catalog order.
    """

    def __init__(self, collector: BaseCollector):
        self.collector = collector
        self.schema = collector.schema

    def describe(self) -> Iterator[GaugeMetricFamily]:
        """Yield empty families so registration never triggers a scrape."""
        for descriptor in self.schema.describe():
            yield GaugeMetricFamily(descriptor.name, descriptor.documentation, labels=list(descriptor.labels))

    def collect(self) -> Iterator[GaugeMetricFamily]:
        outcome = self.collector.scrape()

        by_key: Dict[str, List[MetricSample]] = {}
        for sample in outcome.samples:
            by_key.setdefault(sample.key, []).append(sample)

        for descriptor in self.schema.describe():
            samples = by_key.get(descriptor.key)
            if not samples:
                continue
            family = GaugeMetricFamily(descriptor.name, descriptor.documentation, labels=list(descriptor.labels))
            for sample in samples:
                family.add_metric(list(sample.label_values()), sample.value)
            yield family


def build_registry(collector: BaseCollector) -> CollectorRegistry:
    """Create a private registry holding only the exporter's gauges."""
    registry = CollectorRegistry()
    registry.register(PrometheusAdapter(collector))
    return registry


def create_app(registry: CollectorRegistry, path: str = "/metrics"):
    """
    Build the WSGI application serving `registry` on `path`.

    `/` answers with a small landing page, every other path with 404.
    """
    metrics_app = make_wsgi_app(registry)
    landing = LANDING_PAGE.format(path=path).encode("utf-8")

    def app(environ, start_response):
        request_path = environ.get("PATH_INFO") or "/"
        if request_path == path:
            return metrics_app(environ, start_response)
        if request_path == "/":
            start_response("200 OK", [("Content-Type", "text/html; charset=utf-8")])
            return [landing]
        start_response("404 Not Found", [("Content-Type", "text/plain; charset=utf-8")])
        return [b"Not Found\n"]

    return app


class PVEWSGIServer(ThreadingWSGIServer):
    """Threading WSGI server for IPv4 addresses, including "" (all interfaces)."""

    address_family = socket.AF_INET
    logger = logging.getLogger(__name__)


class PVEWSGIServerV6(PVEWSGIServer):
    """IPv6 variant. Binding "::" also accepts IPv4 clients (dual-stack)."""

    address_family = socket.AF_INET6

    def server_bind(self):
        if hasattr(socket, "IPV6_V6ONLY"):
            self.socket.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
        super().server_bind()


class PVERequestHandler(WSGIRequestHandler):
    """Request handler sending access lines to the server's logger."""

    def log_message(self, format, *args):
        self.server.logger.debug(f"{self.address_string()} {format % args}")


def server_class_for(host: str):
    """Pick the server class matching the address family of `host`."""
    return PVEWSGIServerV6 if ":" in host else PVEWSGIServer


def serve(app, host: str, port: int, logger: logging.Logger = None) -> PVEWSGIServer:
    """
    Bind a threading WSGI server for `app`.

    Each request runs in its own thread, so overlapping scrapes do not block
    each other. An empty host binds every IPv4 interface; use "::" (address
    "[::]:port") to listen on IPv6 and IPv4 at once. The caller is
    responsible for serve_forever()/shutdown().

    Args:
        app: WSGI application
        host: Interface to bind, "" for all IPv4 interfaces
        port: TCP port, 0 for an ephemeral port
        logger: Logger for access lines

    Returns:
        The bound server
    """
    server = make_server(
        host, port, app,
        server_class=server_class_for(host),
        handler_class=PVERequestHandler,
    )
    if logger is not None:
        server.logger = logger
    return server
