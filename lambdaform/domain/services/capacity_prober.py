"""
Capacity Prober Service

Architectural Intent:
- Domain service run strictly before any launch call
- Polls the instance-type catalog until the requested type reports capacity
  in the requested region, or the capacity window closes

Domain Logic:
- Unknown instance type: ConfigurationError on the first attempt, no retry
- Known type without capacity in the region: sleep a fixed interval, retry
- Deadline reached without capacity: CapacityUnavailableError
- Catalog fetch failure: TransportError surfaces immediately
- The CapacityIndex is rebuilt from a fresh catalog on every attempt
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

from lambdaform.domain.errors import CapacityUnavailableError, ConfigurationError
from lambdaform.domain.ports.clock_port import ClockPort
from lambdaform.domain.ports.cloud_api_port import CloudAPIPort
from lambdaform.domain.value_objects.capacity_index import CapacityIndex

logger = logging.getLogger(__name__)

# Provider rate limiting allows roughly one request per second; polling every
# two seconds stays well inside it.
DEFAULT_POLL_INTERVAL_SECONDS = 2.0
DEFAULT_CAPACITY_TIMEOUT_SECONDS = 20 * 60.0


@dataclass(frozen=True)
class CapacityProbeResult:
    instance_type_name: str
    region_name: str
    attempts: int
    waited_seconds: float


class CapacityProber:
    def __init__(
        self,
        api: CloudAPIPort,
        clock: ClockPort,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        timeout_seconds: float = DEFAULT_CAPACITY_TIMEOUT_SECONDS,
    ):
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        if timeout_seconds < 0:
            raise ValueError("timeout_seconds cannot be negative")
        self.api = api
        self.clock = clock
        self.poll_interval_seconds = poll_interval_seconds
        self.timeout_seconds = timeout_seconds

    async def ensure_capacity(
        self,
        instance_type_name: str,
        region_name: str,
        timeout_seconds: Optional[float] = None,
    ) -> CapacityProbeResult:
        """
        Block until capacity exists for (instance_type_name, region_name).

        Raises ConfigurationError for an unknown type and
        CapacityUnavailableError once the window has elapsed.
        """
        window = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        started = self.clock.monotonic()
        deadline = started + window
        attempts = 0

        while True:
            attempts += 1
            index = CapacityIndex.from_catalog(await self.api.list_instance_types())

            if not index.knows(instance_type_name):
                raise ConfigurationError(
                    f"instance type {instance_type_name} not found in available "
                    "instance types",
                    operation="ensure_capacity",
                    detail=f"known types: {', '.join(sorted(index.regions_by_type)) or 'none'}",
                )

            if index.has_capacity(instance_type_name, region_name):
                waited = self.clock.monotonic() - started
                logger.info(
                    "Capacity available for %s in %s after %d attempt(s)",
                    instance_type_name,
                    region_name,
                    attempts,
                )
                return CapacityProbeResult(
                    instance_type_name=instance_type_name,
                    region_name=region_name,
                    attempts=attempts,
                    waited_seconds=waited,
                )

            remaining = deadline - self.clock.monotonic()
            if remaining <= 0:
                available = index.regions_for(instance_type_name) or frozenset()
                raise CapacityUnavailableError(
                    f"no capacity available for {instance_type_name} in region "
                    f"{region_name} after {window:.0f}s",
                    attempts=attempts,
                    operation="ensure_capacity",
                    detail=f"{attempts} attempt(s); regions with capacity: "
                    f"{', '.join(sorted(available)) or 'none'}",
                )

            logger.debug(
                "No capacity for %s in %s (attempt %d), retrying in %.1fs",
                instance_type_name,
                region_name,
                attempts,
                min(self.poll_interval_seconds, remaining),
            )
            await self.clock.sleep(min(self.poll_interval_seconds, remaining))
