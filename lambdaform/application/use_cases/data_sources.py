"""
Data Sources

Architectural Intent:
- Read-only lookups the engine can reference without managing a lifecycle
- Each source is a thin query over the gateway; misses on single-item
  lookups raise ResourceNotFoundError
"""

import logging

from lambdaform.domain.errors import ResourceNotFoundError
from lambdaform.domain.ports.cloud_api_port import CloudAPIPort
from lambdaform.domain.services.drift_detection import find_instance
from lambdaform.domain.value_objects.filesystem import Filesystem
from lambdaform.domain.value_objects.instance_type import InstanceTypeOffer
from lambdaform.domain.value_objects.observed_instance import ObservedInstance
from lambdaform.domain.value_objects.ssh_key import SSHKey

logger = logging.getLogger(__name__)


class InstanceDataSource:
    def __init__(self, api: CloudAPIPort):
        self.api = api

    async def read(self, instance_id: str) -> ObservedInstance:
        instance, scanned = find_instance(await self.api.list_instances(), instance_id)
        if instance is None:
            raise ResourceNotFoundError(
                f"instance {instance_id} not found",
                operation="read",
                resource_id=instance_id,
                detail=f"scanned {scanned} instance(s)",
            )
        return instance


class InstancesDataSource:
    def __init__(self, api: CloudAPIPort):
        self.api = api

    async def read(self) -> list[ObservedInstance]:
        return await self.api.list_instances()


class SSHKeyDataSource:
    def __init__(self, api: CloudAPIPort):
        self.api = api

    async def read(self, name: str) -> SSHKey:
        for key in await self.api.list_ssh_keys():
            if key.name == name:
                return key
        raise ResourceNotFoundError(
            f"SSH key {name!r} not found", operation="read", resource_id=name
        )


class SSHKeysDataSource:
    def __init__(self, api: CloudAPIPort):
        self.api = api

    async def read(self) -> list[SSHKey]:
        return await self.api.list_ssh_keys()


class FilesystemsDataSource:
    """Shared filesystems; the provider offers no create or delete for them."""

    def __init__(self, api: CloudAPIPort):
        self.api = api

    async def read(self) -> list[Filesystem]:
        return await self.api.list_filesystems()

    async def find(self, name: str) -> Filesystem:
        for filesystem in await self.read():
            if filesystem.name == name:
                return filesystem
        raise ResourceNotFoundError(
            f"filesystem {name!r} not found", operation="read", resource_id=name
        )


class InstanceTypesDataSource:
    def __init__(self, api: CloudAPIPort):
        self.api = api

    async def read(self) -> list[InstanceTypeOffer]:
        catalog = await self.api.list_instance_types()
        logger.debug("Catalog lists %d instance type(s)", len(catalog))
        return [catalog[name] for name in sorted(catalog)]
