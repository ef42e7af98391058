"""Main application entry point for the Proxmox VE Prometheus exporter."""

import argparse
import logging
import signal
import sys
from typing import List, Optional

from prometheus_client import generate_latest

from .config.loader import ConfigLoader
from .config.models import ExporterConfig
from .collectors.pve_collector import PVECollector
from .exceptions import ConfigurationError
from .exposition import build_registry, create_app, serve
from .services.pve_client import PVEClient
from .utils.logger import setup_logger
from .utils.metrics import build_schema


class ExporterApp:
    """
    Exporter application.

    Wires the API client, the collector and the Prometheus registry, and
    serves the registry over HTTP until interrupted.
    """

    def __init__(self, config: ExporterConfig, logger: logging.Logger = None):
        """
        Initialize exporter application.

        Args:
            config: Validated exporter configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or setup_logger("pve_exporter", config.log_level)
        self.server = None

        self.schema = build_schema()
        self.client = PVEClient(config, self.logger.getChild("PVEClient"))
        self.collector = PVECollector(self.client, self.schema, self.logger)
        self.registry = build_registry(self.collector)

        self.logger.info(f"Exporter initialized for {config.endpoint} (node {config.node})")

    def _signal_handler(self, signum, frame):
        """
        Handle shutdown signals.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received {signal_name}, shutting down...")
        sys.exit(0)

    def render_once(self) -> bytes:
        """Run a single scrape and return the text exposition."""
        return generate_latest(self.registry)

    def run(self) -> None:
        """Serve metrics until SIGTERM/SIGINT."""
        host, port = self.config.listen_address
        app = create_app(self.registry, self.config.path)
        self.server = serve(app, host, port, self.logger.getChild("http"))

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        self.logger.info(f"Listening on {self.config.address}{self.config.path}")
        try:
            self.server.serve_forever()
        finally:
            self.close()

    def close(self) -> None:
        """Release the listener and pooled upstream connections."""
        if self.server is not None:
            self.server.server_close()
            self.server = None
        self.client.close()


def build_parser() -> argparse.ArgumentParser:
    """
    Build the command-line parser.

    Flag defaults are None so that only flags given explicitly override
    PVE_* environment variables, which in turn override the config file.
    """
    parser = argparse.ArgumentParser(
        description='Prometheus exporter for Proxmox VE virtual machines and storage',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment variables (used when the matching flag is not given):
  PVE_ENDPOINT, PVE_API_TOKEN, PVE_API_SECRET, PVE_ADDRESS, PVE_PATH,
  PVE_NODE, PVE_TIMEOUT, PVE_INSECURE_SKIP_VERIFY, PVE_LOG_LEVEL

Examples:
  pve-exporter --endpoint https://pve.example.com:8006 \\
      --apitoken 'monitor@pve!exporter' --apisecret '...'

  # Scrape once, print the exposition and exit
  pve-exporter --config config/config.yaml --once
        """
    )

    parser.add_argument('--config', default=None, help='Path to YAML configuration file')
    parser.add_argument('--endpoint', default=None, help='PVE endpoint')
    parser.add_argument('--apitoken', dest='api_token', default=None,
                        help='PVE API token (user@realm!name)')
    parser.add_argument('--apisecret', dest='api_secret', default=None, help='PVE API secret')
    parser.add_argument('--address', default=None,
                        help='Address on which to expose metrics (default: :8000)')
    parser.add_argument('--path', default=None, help='Metrics path (default: /metrics)')
    parser.add_argument('--node', default=None, help='PVE node name (default: localhost)')
    parser.add_argument('--timeout', dest='timeout_seconds', type=float, default=None,
                        help='Upstream request timeout in seconds (default: 10)')
    parser.add_argument('--insecure-skip-verify', dest='insecure_skip_verify',
                        action='store_true', default=None,
                        help='Do not verify the PVE TLS certificate')
    parser.add_argument('--log-level', default=None,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: INFO)')
    parser.add_argument('--once', action='store_true',
                        help='Scrape once, print the metrics and exit')
    return parser


def main(argv: Optional[List[str]] = None):
    """
    CLI entry point.

    Parses command-line arguments and starts the exporter.
    """
    args = build_parser().parse_args(argv)
    flags = {k: v for k, v in vars(args).items() if k not in ('config', 'once')}

    # In --once mode stdout carries the exposition, so logs go to stderr
    log_stream = sys.stderr if args.once else sys.stdout
    logger = setup_logger("pve_exporter", stream=log_stream)

    try:
        config = ConfigLoader.load(config_path=args.config, flags=flags)
    except ConfigurationError as e:
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    logger = setup_logger("pve_exporter", config.log_level, stream=log_stream)
    if args.config:
        logger.info(f"Configuration loaded from {args.config}")

    app = ExporterApp(config, logger)

    if args.once:
        try:
            sys.stdout.write(app.render_once().decode("utf-8"))
        finally:
            app.close()
        return

    app.run()


if __name__ == '__main__':
    main()
