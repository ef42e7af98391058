"""Base collector abstract class for scrape-driven collectors."""

from abc import ABC, abstractmethod
from typing import Any
import logging
import time
from functools import wraps

from ..utils.metrics import MetricSchema, ScrapeOutcome
from ..utils.status import ScrapeState


class BaseCollector(ABC):
    """Abstract base class for all collectors."""

    def __init__(self, client: Any, schema: MetricSchema, logger: logging.Logger):
        """
        Initialize base collector.

        Args:
            client: Upstream API client
            schema: Metric catalog the collector emits into
            logger: Logger instance
        """
        self.client = client
        self.schema = schema
        self.logger = logger.getChild(self.__class__.__name__)

    @abstractmethod
    def scrape(self) -> ScrapeOutcome:
        """
        Run one scrape cycle.

        Returns:
            ScrapeOutcome: Samples to expose, always including the `up` sample

        Note:
            Implementations should use the @safe_scrape decorator so that an
            unexpected error still yields `up=0` instead of propagating.
        """
        pass

    def _failed(self, error: str, started: float) -> ScrapeOutcome:
        """
        Build the outcome of a failed scrape: a single `up=0` sample.

        Args:
            error: Failure cause, kept for logs only
            started: time.monotonic() value at scrape start
        """
        return ScrapeOutcome(
            state=ScrapeState.FAILED,
            samples=[self.schema.sample("up", ScrapeState.FAILED.to_up_value())],
            error=error,
            duration_seconds=time.monotonic() - started,
        )


def safe_scrape(func):
    """
    Decorator turning any unexpected scrape exception into a failed outcome.

    Args:
        func: Collector method to wrap

    Returns:
        Wrapped function that never raises
    """
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        started = time.monotonic()
        try:
            return func(self, *args, **kwargs)
        except Exception as e:
            self.logger.error(f"Scrape failed unexpectedly: {e}", exc_info=True)
            return self._failed(str(e), started)
    return wrapper
