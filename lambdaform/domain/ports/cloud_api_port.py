"""
Cloud API Port

Architectural Intent:
- Port interface for the provider's REST API (the Remote API Gateway)
- Implemented by the HTTP adapter and by the in-memory simulator
- Returns domain value objects; wire-level (de)serialization stays in adapters

Design Decisions:
- Uses Protocol for structural typing (no inheritance needed)
- Every method is a single round-trip with no internal retry; failures raise
  TransportError (network error, non-200 status, empty success envelope)
"""

from typing import Protocol, runtime_checkable

from lambdaform.domain.value_objects.filesystem import Filesystem
from lambdaform.domain.value_objects.instance_spec import LaunchRequest
from lambdaform.domain.value_objects.instance_type import InstanceTypeOffer
from lambdaform.domain.value_objects.observed_instance import ObservedInstance
from lambdaform.domain.value_objects.ssh_key import SSHKey


@runtime_checkable
class CloudAPIPort(Protocol):
    """Port for provider API operations."""

    async def list_instance_types(self) -> dict[str, InstanceTypeOffer]:
        """Return the catalog keyed by instance type name."""
        ...

    async def launch_instance(self, request: LaunchRequest) -> list[str]:
        """Launch instances and return the issued instance ids."""
        ...

    async def list_instances(self) -> list[ObservedInstance]:
        """Return every instance in the account, in provider order."""
        ...

    async def terminate_instances(self, instance_ids: list[str]) -> list[str]:
        """Terminate instances and return the ids the provider reports terminated."""
        ...

    async def list_ssh_keys(self) -> list[SSHKey]:
        ...

    async def add_ssh_key(self, name: str, public_key: str) -> SSHKey:
        ...

    async def delete_ssh_key(self, key_id: str) -> None:
        ...

    async def list_filesystems(self) -> list[Filesystem]:
        ...
