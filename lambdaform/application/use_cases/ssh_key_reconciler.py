"""
SSH Key Reconciler Use Case

Architectural Intent:
- CRUD contract for an SSH key registered with the provider
- Keys are matched by name on read; the provider id is only needed to delete

Design Decisions:
- A key missing on read is not fatal: the snapshot is returned unchanged and
  the next plan decides what to do with it
- Keys are never edited in place; a changed name or key material replaces it
"""

import logging
from typing import Optional

from lambdaform.domain.errors import ResourceNotFoundError, UnsupportedOperationError
from lambdaform.domain.events.resource_events import SSHKeyAdded, SSHKeyDeleted
from lambdaform.domain.ports.cloud_api_port import CloudAPIPort
from lambdaform.domain.ports.event_bus_port import EventBusPort
from lambdaform.domain.value_objects.ssh_key import SSHKeySpec, SSHKeyState

logger = logging.getLogger(__name__)


class SSHKeyReconciler:
    def __init__(self, api: CloudAPIPort, event_bus: Optional[EventBusPort] = None):
        self.api = api
        self.event_bus = event_bus

    async def create(self, spec: SSHKeySpec) -> SSHKeyState:
        logger.info("Adding SSH key %s", spec.name)
        key = await self.api.add_ssh_key(spec.name, spec.public_key)
        state = SSHKeyState.from_key(key)
        logger.info("Added SSH key %s (id=%s)", state.name, state.id)
        if self.event_bus:
            await self.event_bus.publish([SSHKeyAdded(aggregate_id=state.id, name=state.name)])
        return state

    async def read(self, state: SSHKeyState) -> SSHKeyState:
        keys = await self.api.list_ssh_keys()
        for key in keys:
            if key.name == state.name:
                return SSHKeyState.from_key(key)
        logger.debug("SSH key %s not found in %d listed key(s)", state.name, len(keys))
        return state

    async def update(self, prior: SSHKeyState, desired: SSHKeySpec) -> SSHKeyState:
        raise UnsupportedOperationError(
            "SSH key resource does not support updates; name and public key "
            "require replacement",
            operation="update",
            resource_id=prior.id,
        )

    async def delete(self, state: SSHKeyState) -> None:
        logger.info("Removing SSH key %s (id=%s)", state.name, state.id)
        await self.api.delete_ssh_key(state.id)
        if self.event_bus:
            await self.event_bus.publish([SSHKeyDeleted(aggregate_id=state.id, name=state.name)])

    async def import_state(self, key_id: str) -> SSHKeyState:
        """Adopt an existing key by its provider id."""
        for key in await self.api.list_ssh_keys():
            if key.id == key_id:
                logger.info("Imported SSH key %s (id=%s)", key.name, key.id)
                return SSHKeyState.from_key(key)
        raise ResourceNotFoundError(
            f"SSH key {key_id} not found",
            operation="import",
            resource_id=key_id,
        )
