"""Metric catalog and sample data structures."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import time

from .status import ScrapeState


VM_LABELS = ("vm_id", "vm_name")
STORAGE_LABELS = ("storage",)


@dataclass(frozen=True)
class MetricDescriptor:
    """Name, help text and label names of one gauge in the catalog."""

    key: str
    name: str
    documentation: str
    labels: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MetricSample:
    """
    One gauge observation: metric key, label pairs and numeric value.

    Labels are (name, value) pairs in the descriptor's label order, so a
    sample is hashable and cannot be changed after it is built.
    """

    key: str
    labels: Tuple[Tuple[str, str], ...]
    value: float

    def label_values(self) -> Tuple[str, ...]:
        """Label values in descriptor order."""
        return tuple(value for _, value in self.labels)


@dataclass(frozen=True)
class MetricSchema:
    """
    Immutable catalog of every metric the exporter may emit.

    Built once at startup with build_schema() and handed to the collector.
    """

    namespace: str
    descriptors: Tuple[MetricDescriptor, ...]

    def get(self, key: str) -> MetricDescriptor:
        """
        Look up a descriptor by catalog key.

        Raises:
            KeyError: If the key is not part of the catalog
        """
        for descriptor in self.descriptors:
            if descriptor.key == key:
                return descriptor
        raise KeyError(f"Unknown metric: {key}")

    def describe(self) -> Tuple[MetricDescriptor, ...]:
        """Return all descriptors in catalog order."""
        return self.descriptors

    def sample(self, key: str, value: float, **labels: str) -> MetricSample:
        """
        Build a sample for a catalog metric.

        Args:
            key: Catalog key (e.g., "cpu_usage")
            value: Numeric gauge value
            **labels: Label values, must match the descriptor's label names exactly

        Returns:
            MetricSample: The new sample

        Raises:
            KeyError: If the key is not part of the catalog
            ValueError: If the label names do not match the descriptor
        """
        descriptor = self.get(key)
        if set(labels) != set(descriptor.labels):
            raise ValueError(
                f"Metric {descriptor.name} expects labels {list(descriptor.labels)}, "
                f"got {sorted(labels)}"
            )
        return MetricSample(
            key=key,
            labels=tuple((name, labels[name]) for name in descriptor.labels),
            value=float(value),
        )


def build_schema(namespace: str = "pve") -> MetricSchema:
    """
    Build the fixed metric catalog.

    Args:
        namespace: Prefix joined to every metric name with an underscore

    Returns:
        MetricSchema: Catalog with the availability, VM and datastore gauges
    """
    def name(suffix: str) -> str:
        return f"{namespace}_{suffix}" if namespace else suffix

    return MetricSchema(
        namespace=namespace,
        descriptors=(
            MetricDescriptor("up", name("up"), "Was the last query successful."),
            MetricDescriptor("cpu_usage", name("cpu_usage"), "CPU Usage", VM_LABELS),
            MetricDescriptor("net_in", name("net_in"), "Incoming network traffic", VM_LABELS),
            MetricDescriptor("net_out", name("net_out"), "Outgoing network traffic", VM_LABELS),
            MetricDescriptor("mem_usage", name("mem_usage"), "VM memory usage", VM_LABELS),
            MetricDescriptor("mem_max", name("mem_max"), "VM memory max", VM_LABELS),
            MetricDescriptor("datastore_total", name("datastore_total"), "Total datastore capacity", STORAGE_LABELS),
            MetricDescriptor("datastore_avail", name("datastore_avail"), "Available datastore capacity", STORAGE_LABELS),
            MetricDescriptor("datastore_used", name("datastore_used"), "Used datastore capacity", STORAGE_LABELS),
        ),
    )


@dataclass
class ScrapeOutcome:
    """Result of one scrape cycle."""

    state: ScrapeState
    samples: List[MetricSample] = field(default_factory=list)
    error: Optional[str] = None
    duration_seconds: float = 0.0
    timestamp: Optional[float] = None

    def __post_init__(self):
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = time.time()

    @property
    def up(self) -> float:
        """Availability signal for this scrape."""
        return self.state.to_up_value()

    @property
    def succeeded(self) -> bool:
        return self.state is ScrapeState.DONE
