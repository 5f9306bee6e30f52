"""
Apply / Destroy Use Cases

Architectural Intent:
- Minimal registry driver used by the CLI: load the tracked snapshot, refresh
  it, plan against the desired spec, execute, persist
- Every outcome is appended to the state store's operation history

Design Decisions:
- REPLACE is delete-then-create; the old snapshot is dropped as soon as the
  terminate succeeds so a failed relaunch never leaves a stale id tracked
- Destroy persists a DELETING snapshot before terminating and restores it to
  PRESENT on any failure, including cancellation; the snapshot is removed
  only after a confirmed terminate
- A DELETING snapshot left by an interrupted process is retried by destroy
  and treated as PRESENT by apply and refresh
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

from lambdaform.application.use_cases.instance_reconciler import InstanceReconciler
from lambdaform.application.use_cases.ssh_key_reconciler import SSHKeyReconciler
from lambdaform.domain.entities.instance_state import InstanceState, ResourceLifecycle
from lambdaform.domain.errors import (
    ConfigurationError,
    DriftError,
    LambdaformError,
    ResourceNotFoundError,
)
from lambdaform.domain.ports.state_store_port import StateStorePort
from lambdaform.domain.services.change_planner import (
    ChangePlan,
    PlanAction,
    plan_instance_change,
    plan_ssh_key_change,
)
from lambdaform.domain.value_objects.instance_spec import DesiredInstanceSpec
from lambdaform.domain.value_objects.ssh_key import SSHKeySpec, SSHKeyState

logger = logging.getLogger(__name__)

INSTANCE_KIND = "instance"
SSH_KEY_KIND = "ssh_key"


def _settled(address: str, state: InstanceState) -> InstanceState:
    # A DELETING snapshot means an earlier destroy never finished.
    if state.lifecycle == ResourceLifecycle.DELETING:
        logger.warning(
            "Snapshot for %s was left deleting by an interrupted destroy; "
            "instance %s still exists",
            address,
            state.id,
        )
        return state.mark_present()
    return state


@dataclass(frozen=True)
class ApplyResult:
    address: str
    plan: ChangePlan
    state: InstanceState | SSHKeyState


class ApplyInstance:
    def __init__(self, reconciler: InstanceReconciler, store: StateStorePort):
        self.reconciler = reconciler
        self.store = store

    async def execute(
        self,
        address: str,
        desired: DesiredInstanceSpec,
        recreate_on_drift: bool = False,
    ) -> ApplyResult:
        prior = await self._refresh(address, recreate_on_drift)
        plan = plan_instance_change(prior, desired)
        logger.info("Plan for %s: %s", address, plan.describe())

        if plan.action == PlanAction.NOOP:
            assert prior is not None
            self.store.save(address, INSTANCE_KIND, prior.id, prior.to_dict())
            return ApplyResult(address, plan, prior)

        if plan.action == PlanAction.REPLACE:
            assert prior is not None
            await self._delete(address, prior)

        try:
            state = await self.reconciler.create(desired)
        except LambdaformError as e:
            self.store.record_operation(address, "create", False, details=str(e))
            raise

        self.store.save(address, INSTANCE_KIND, state.id, state.to_dict())
        self.store.record_operation(
            address, "create", True, state.id, details=plan.describe()
        )
        return ApplyResult(address, plan, state)

    async def _refresh(
        self, address: str, recreate_on_drift: bool
    ) -> Optional[InstanceState]:
        stored = self.store.load(address)
        if stored is None:
            return None

        prior = InstanceState.from_dict(stored)
        try:
            refreshed = _settled(address, await self.reconciler.read(prior))
        except DriftError as e:
            self.store.record_operation(address, "read", False, prior.id, str(e))
            if not recreate_on_drift:
                raise
            logger.warning("Dropping drifted snapshot for %s; it will be recreated", address)
            self.store.remove(address)
            return None

        self.store.record_operation(address, "read", True, refreshed.id)
        return refreshed

    async def _delete(self, address: str, prior: InstanceState) -> None:
        try:
            terminated = await self.reconciler.delete(prior)
        except LambdaformError as e:
            self.store.record_operation(address, "delete", False, prior.id, str(e))
            raise
        self.store.remove(address)
        self.store.record_operation(
            address, "delete", True, prior.id, details=", ".join(terminated)
        )


class DestroyInstance:
    def __init__(self, reconciler: InstanceReconciler, store: StateStorePort):
        self.reconciler = reconciler
        self.store = store

    async def execute(self, address: str) -> list[str]:
        stored = self.store.load(address)
        if stored is None:
            raise ResourceNotFoundError(
                f"no tracked instance at {address!r}", operation="delete"
            )

        state = InstanceState.from_dict(stored)
        deleting = state.mark_deleting()
        self.store.save(address, INSTANCE_KIND, deleting.id, deleting.to_dict())

        try:
            terminated = await self.reconciler.delete(deleting)
        except BaseException as e:
            restored = deleting.mark_present()
            self.store.save(address, INSTANCE_KIND, restored.id, restored.to_dict())
            self.store.record_operation(
                address, "delete", False, state.id, str(e) or type(e).__name__
            )
            raise

        self.store.remove(address)
        self.store.record_operation(
            address, "delete", True, state.id, details=", ".join(terminated)
        )
        return terminated


class ApplySSHKey:
    def __init__(self, reconciler: SSHKeyReconciler, store: StateStorePort):
        self.reconciler = reconciler
        self.store = store

    async def execute(self, address: str, desired: SSHKeySpec) -> ApplyResult:
        stored = self.store.load(address)
        prior = None
        if stored is not None:
            prior = await self.reconciler.read(SSHKeyState.from_dict(stored))

        plan = plan_ssh_key_change(prior, desired)
        logger.info("Plan for %s: %s", address, plan.describe())
        if plan.action == PlanAction.NOOP:
            assert prior is not None
            self.store.save(address, SSH_KEY_KIND, prior.id, prior.to_dict())
            return ApplyResult(address, plan, prior)

        if plan.action == PlanAction.REPLACE:
            assert prior is not None
            try:
                await self.reconciler.delete(prior)
            except LambdaformError as e:
                self.store.record_operation(address, "delete", False, prior.id, str(e))
                raise
            self.store.remove(address)
            self.store.record_operation(address, "delete", True, prior.id)

        state = await self.reconciler.create(desired)
        self.store.save(address, SSH_KEY_KIND, state.id, state.to_dict())
        self.store.record_operation(address, "create", True, state.id)
        return ApplyResult(address, plan, state)


class RemoveSSHKey:
    def __init__(self, reconciler: SSHKeyReconciler, store: StateStorePort):
        self.reconciler = reconciler
        self.store = store

    async def execute(self, address: str) -> SSHKeyState:
        stored = self.store.load(address)
        if stored is None:
            raise ResourceNotFoundError(
                f"no tracked SSH key at {address!r}", operation="delete"
            )
        state = SSHKeyState.from_dict(stored)
        try:
            await self.reconciler.delete(state)
        except LambdaformError as e:
            self.store.record_operation(address, "delete", False, state.id, str(e))
            raise
        self.store.remove(address)
        self.store.record_operation(address, "delete", True, state.id)
        return state


class RefreshInstance:
    """Refresh a tracked snapshot and persist the provider's view of it."""

    def __init__(self, reconciler: InstanceReconciler, store: StateStorePort):
        self.reconciler = reconciler
        self.store = store

    async def execute(self, address: str) -> InstanceState:
        stored = self.store.load(address)
        if stored is None:
            raise ResourceNotFoundError(
                f"no tracked instance at {address!r}", operation="read"
            )
        prior = InstanceState.from_dict(stored)
        try:
            state = _settled(address, await self.reconciler.read(prior))
        except LambdaformError as e:
            self.store.record_operation(address, "read", False, prior.id, str(e))
            raise
        self.store.save(address, INSTANCE_KIND, state.id, state.to_dict())
        self.store.record_operation(address, "read", True, state.id)
        return state


class ImportInstance:
    """Start tracking an instance that was created outside lambdaform."""

    def __init__(self, reconciler: InstanceReconciler, store: StateStorePort):
        self.reconciler = reconciler
        self.store = store

    async def execute(self, address: str, instance_id: str) -> InstanceState:
        if self.store.load(address) is not None:
            raise ConfigurationError(
                f"address {address!r} is already tracked",
                operation="import",
                resource_id=instance_id,
            )
        state = await self.reconciler.import_state(instance_id)
        self.store.save(address, INSTANCE_KIND, state.id, state.to_dict())
        self.store.record_operation(address, "import", True, state.id)
        return state
