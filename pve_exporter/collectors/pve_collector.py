"""Proxmox VE collector for VM and datastore gauges."""

import logging
import time
from typing import List

from ..exceptions import UpstreamError
from ..services.decoders import decode_datastore_list, decode_vm_list
from ..services.pve_client import PVEClient
from ..utils.metrics import MetricSample, MetricSchema, ScrapeOutcome
from ..utils.records import DatastoreRecord, VirtualMachineRecord
from ..utils.status import ScrapeState
from .base import BaseCollector, safe_scrape


class PVECollector(BaseCollector):
    """
    Collector for one Proxmox VE node.

    Every scrape fetches VMs, then storage, and only emits samples once both
    steps succeeded. If either step fails the scrape emits `up=0` alone; VM
    data fetched before a storage failure is discarded.
    """

    def __init__(self, client: PVEClient, schema: MetricSchema, logger: logging.Logger):
        """
        Initialize PVE collector.

        Args:
            client: Upstream API client (anything with fetch_vms/fetch_storage)
            schema: Metric catalog
            logger: Logger instance
        """
        super().__init__(client, schema, logger)

    @safe_scrape
    def scrape(self) -> ScrapeOutcome:
        """
        Run one scrape cycle against the upstream API.

        Returns:
            ScrapeOutcome: Either every VM and datastore sample followed by
            `up=1`, or a single `up=0` sample
        """
        started = time.monotonic()
        state = ScrapeState.IDLE

        try:
            state = ScrapeState.FETCHING_VMS
            vms = decode_vm_list(self.client.fetch_vms())

            state = ScrapeState.FETCHING_STORAGE
            datastores = decode_datastore_list(self.client.fetch_storage())

        except UpstreamError as e:
            self.logger.error(
                f"Scrape failed in {state.value} "
                f"(resource={e.resource}, step={e.step}): {e.__class__.__name__}: {e}"
            )
            return self._failed(str(e), started)

        state = ScrapeState.EMITTING
        samples = self._vm_samples(vms) + self._datastore_samples(datastores)

        state = ScrapeState.DONE
        samples.append(self.schema.sample("up", state.to_up_value()))

        duration = time.monotonic() - started
        self.logger.debug(
            f"Scrape completed: {len(vms)} VMs, {len(datastores)} datastores "
            f"in {duration:.3f}s"
        )

        return ScrapeOutcome(state=state, samples=samples, duration_seconds=duration)

    def _vm_samples(self, vms: List[VirtualMachineRecord]) -> List[MetricSample]:
        """Five samples per VM: net_in, net_out, mem_max, mem_usage, cpu_usage."""
        samples = []
        for vm in vms:
            labels = {"vm_id": str(vm.vmid), "vm_name": vm.name}
            samples.extend([
                self.schema.sample("net_in", vm.netin, **labels),
                self.schema.sample("net_out", vm.netout, **labels),
                self.schema.sample("mem_max", vm.maxmem, **labels),
                self.schema.sample("mem_usage", vm.mem, **labels),
                self.schema.sample("cpu_usage", vm.cpu, **labels),
            ])
        return samples

    def _datastore_samples(self, datastores: List[DatastoreRecord]) -> List[MetricSample]:
        """Three samples per datastore: total, avail, used."""
        samples = []
        for datastore in datastores:
            samples.extend([
                self.schema.sample("datastore_total", datastore.total, storage=datastore.storage),
                self.schema.sample("datastore_avail", datastore.avail, storage=datastore.storage),
                self.schema.sample("datastore_used", datastore.used, storage=datastore.storage),
            ])
        return samples
