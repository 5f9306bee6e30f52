"""
Simulated Lambda Cloud Adapter

Architectural Intent:
- Implements CloudAPIPort entirely in memory, enabling integration testing
  and `lambdaform --simulate` runs with zero cloud credentials
- Mirrors the provider's response shapes and failure modes (unknown type,
  no capacity, duplicate key name, unknown id) so the reconcilers exercise
  the same paths they take against the real API

Design Decisions:
- Capacity is controlled per (type, region): open immediately, closed, or
  opening after N catalog polls, which is how the capacity prober is driven
  through its waiting path without a real clock
- Every call is appended to `calls` and logged at DEBUG level
- Instances launch straight into "active" with a simulated private IP
"""

import logging
import uuid
from dataclasses import replace
from typing import Optional

from lambdaform.domain.errors import TransportError
from lambdaform.domain.value_objects.filesystem import Filesystem
from lambdaform.domain.value_objects.instance_spec import LaunchRequest
from lambdaform.domain.value_objects.instance_type import (
    InstanceSpecs,
    InstanceType,
    InstanceTypeOffer,
    Region,
)
from lambdaform.domain.value_objects.observed_instance import (
    InstanceStatus,
    ObservedInstance,
)
from lambdaform.domain.value_objects.ssh_key import SSHKey

logger = logging.getLogger(__name__)


DEFAULT_REGIONS = {
    "us-east-1": Region("us-east-1", "Virginia, USA"),
    "us-west-1": Region("us-west-1", "California, USA"),
    "europe-central-1": Region("europe-central-1", "Germany"),
}

DEFAULT_INSTANCE_TYPES = [
    InstanceType(
        "gpu_1x_a10", "1x A10 (24 GB PCIe)", 75, InstanceSpecs(30, 200, 1400)
    ),
    InstanceType(
        "gpu_1x_a100_sxm4", "1x A100 (40 GB SXM4)", 129, InstanceSpecs(30, 200, 512)
    ),
    InstanceType(
        "gpu_8x_h100_sxm5", "8x H100 (80 GB SXM5)", 2392, InstanceSpecs(208, 1800, 24780)
    ),
]


def _make_instance_id() -> str:
    """Return a plausible Lambda instance id (32 hex characters)."""
    return uuid.uuid4().hex


def _make_private_ip(index: int) -> str:
    return f"10.19.{(index // 250) % 250}.{index % 250 + 2}"


class SimulatedCloudAdapter:
    """In-memory stand-in for the Lambda Cloud API."""

    def __init__(
        self,
        instance_types: Optional[list[InstanceType]] = None,
        regions: Optional[dict[str, Region]] = None,
        open_capacity: bool = True,
    ) -> None:
        self._regions = dict(regions or DEFAULT_REGIONS)
        self._types = {t.name: t for t in (instance_types or DEFAULT_INSTANCE_TYPES)}
        # type -> region -> catalog polls remaining before capacity opens
        self._capacity: dict[str, dict[str, int]] = {
            name: ({region: 0 for region in self._regions} if open_capacity else {})
            for name in self._types
        }
        self._instances: dict[str, ObservedInstance] = {}
        self._ssh_keys: dict[str, SSHKey] = {}
        self._filesystems: dict[str, Filesystem] = {}
        self._launched = 0
        self.extra_ids_per_launch = 0
        self.calls: list[tuple[str, tuple]] = []

    # -- Simulation controls -------------------------------------------------

    def set_capacity(
        self, instance_type_name: str, region_name: str, after_polls: int = 0
    ) -> None:
        """Open capacity now, or after `after_polls` further catalog polls."""
        self._capacity.setdefault(instance_type_name, {})[region_name] = after_polls

    def clear_capacity(self, instance_type_name: Optional[str] = None) -> None:
        names = [instance_type_name] if instance_type_name else list(self._capacity)
        for name in names:
            self._capacity[name] = {}

    def add_filesystem(self, name: str, region_name: str) -> Filesystem:
        filesystem = Filesystem(
            id=uuid.uuid4().hex,
            name=name,
            region=self._regions.get(region_name) or Region(region_name),
            mount_point=f"/home/ubuntu/{name}",
        )
        self._filesystems[filesystem.id] = filesystem
        return filesystem

    def remove_instance_out_of_band(self, instance_id: str) -> None:
        """Delete an instance behind the reconciler's back (console deletion)."""
        self._instances.pop(instance_id, None)

    def rename_instance_out_of_band(self, instance_id: str, name: str) -> None:
        self._instances[instance_id] = replace(self._instances[instance_id], name=name)

    # -- CloudAPIPort --------------------------------------------------------

    async def list_instance_types(self) -> dict[str, InstanceTypeOffer]:
        self._record("list_instance_types")
        catalog = {}
        for name, instance_type in self._types.items():
            regions = []
            pending = self._capacity.get(name, {})
            for region_name, polls_left in sorted(pending.items()):
                if polls_left <= 0:
                    regions.append(self._regions.get(region_name) or Region(region_name))
                else:
                    pending[region_name] = polls_left - 1
            catalog[name] = InstanceTypeOffer(instance_type, tuple(regions))
        return catalog

    async def launch_instance(self, request: LaunchRequest) -> list[str]:
        self._record("launch_instance", request)
        instance_type = self._types.get(request.instance_type_name)
        if instance_type is None:
            raise self._bad_request(
                "create", "global/invalid-parameters", "Invalid instance type"
            )
        if self._capacity.get(instance_type.name, {}).get(request.region_name, 1) > 0:
            raise self._bad_request(
                "create",
                "instance-operations/launch/insufficient-capacity",
                "Not enough capacity to fulfill launch request.",
            )
        region = self._regions.get(request.region_name) or Region(request.region_name)
        ids = []
        for _ in range(request.quantity + self.extra_ids_per_launch):
            instance_id = _make_instance_id()
            self._instances[instance_id] = ObservedInstance(
                id=instance_id,
                status=InstanceStatus.ACTIVE.value,
                region=region,
                instance_type=instance_type,
                name=request.name,
                hostname=f"{instance_id[:8]}.cloud.lambdalabs.com",
                ip=_make_private_ip(self._launched),
                ssh_key_names=request.ssh_key_names,
                filesystem_names=request.filesystem_names,
            )
            self._launched += 1
            ids.append(instance_id)
        logger.debug("Simulated launch of %s in %s: %s", instance_type.name, region.name, ids)
        return ids

    async def list_instances(self) -> list[ObservedInstance]:
        self._record("list_instances")
        return list(self._instances.values())

    async def terminate_instances(self, instance_ids: list[str]) -> list[str]:
        self._record("terminate_instances", tuple(instance_ids))
        unknown = [i for i in instance_ids if i not in self._instances]
        if unknown:
            raise self._bad_request(
                "delete", "global/object-does-not-exist", f"Instance {unknown[0]} not found"
            )
        for instance_id in instance_ids:
            del self._instances[instance_id]
        return list(instance_ids)

    async def list_ssh_keys(self) -> list[SSHKey]:
        self._record("list_ssh_keys")
        return list(self._ssh_keys.values())

    async def add_ssh_key(self, name: str, public_key: str) -> SSHKey:
        self._record("add_ssh_key", name)
        if any(k.name == name for k in self._ssh_keys.values()):
            raise self._bad_request(
                "add_ssh_key", "global/invalid-parameters", f"SSH key {name} already exists"
            )
        key = SSHKey(id=uuid.uuid4().hex, name=name, public_key=public_key.strip())
        self._ssh_keys[key.id] = key
        return key

    async def delete_ssh_key(self, key_id: str) -> None:
        self._record("delete_ssh_key", key_id)
        if self._ssh_keys.pop(key_id, None) is None:
            raise TransportError(
                "DELETE /ssh-keys failed with status 404",
                operation="delete_ssh_key",
                resource_id=key_id,
                status_code=404,
                body="global/object-does-not-exist: SSH key not found",
            )

    async def list_filesystems(self) -> list[Filesystem]:
        self._record("list_filesystems")
        return list(self._filesystems.values())

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, args))
        logger.debug("Simulated API call: %s%s", method, args)

    def call_count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    @staticmethod
    def _bad_request(operation: str, code: str, message: str) -> TransportError:
        return TransportError(
            "request failed with status 400",
            operation=operation,
            status_code=400,
            body=f"{code}: {message}",
        )
