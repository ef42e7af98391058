"""Scrape state enumeration."""

from enum import Enum


class ScrapeState(Enum):
    """Lifecycle states of a single scrape cycle."""

    IDLE = "idle"
    FETCHING_VMS = "fetching_vms"
    FETCHING_STORAGE = "fetching_storage"
    EMITTING = "emitting"
    DONE = "done"
    FAILED = "failed"

    def to_up_value(self) -> float:
        """
        Convert a terminal state to the availability signal.

        Returns:
            float: 1.0 for a completed scrape, 0.0 otherwise
        """
        return {
            ScrapeState.DONE: 1.0,
            ScrapeState.FAILED: 0.0,
        }.get(self, 0.0)
