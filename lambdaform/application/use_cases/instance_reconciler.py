"""
Instance Reconciler Use Case

Architectural Intent:
- Owns the create/read/update/delete contract for one declared instance
- Orchestrates the capacity prober, issues launch/terminate calls and
  reconciles the tracked snapshot against the provider on every read
- Holds no mutable state between calls; independent instances can be
  reconciled concurrently with the same reconciler

Design Decisions:
- Capacity polling happens strictly before launch, so an abandoned create
  never leaves a remote instance behind
- Launch and terminate are never retried: the call may have taken effect
  remotely and a blind retry risks duplicate provisioning
- A launch returning more than one id tracks the first and records the rest
  on the snapshot as untracked ids for the caller's attention
"""

import logging
from typing import Optional

from lambdaform.application.use_cases.tracing import traced
from lambdaform.domain.entities.instance_state import (
    InstanceState,
    ResourceLifecycle,
    advance,
)
from lambdaform.domain.errors import (
    DriftError,
    TransportError,
    UnsupportedOperationError,
)
from lambdaform.domain.events.event_base import DomainEvent
from lambdaform.domain.events.resource_events import (
    InstanceDriftDetected,
    InstanceLaunched,
    InstanceTerminated,
    LaunchAnomalyDetected,
)
from lambdaform.domain.ports.cloud_api_port import CloudAPIPort
from lambdaform.domain.ports.event_bus_port import EventBusPort
from lambdaform.domain.ports.telemetry_port import TelemetryPort
from lambdaform.domain.services.capacity_prober import CapacityProber
from lambdaform.domain.services.drift_detection import reconcile_instance
from lambdaform.domain.value_objects.field_policy import replacement_fields
from lambdaform.domain.value_objects.instance_spec import (
    INSTANCE_FIELDS,
    DesiredInstanceSpec,
)
from lambdaform.domain.value_objects.observed_instance import InstanceStatus

logger = logging.getLogger(__name__)


class InstanceReconciler:
    def __init__(
        self,
        api: CloudAPIPort,
        prober: CapacityProber,
        event_bus: Optional[EventBusPort] = None,
        telemetry: Optional[TelemetryPort] = None,
    ):
        self.api = api
        self.prober = prober
        self.event_bus = event_bus
        self.telemetry = telemetry

    async def create(self, spec: DesiredInstanceSpec) -> InstanceState:
        """
        Provision one instance for the spec.

        absent -> provisioning -> present. On any failure nothing is
        returned and the resource stays absent.
        """
        attributes = {
            "instance_type": spec.instance_type_name,
            "region": spec.region_name,
        }
        with traced(self.telemetry, "instance.create", attributes):
            lifecycle = advance(
                ResourceLifecycle.ABSENT, ResourceLifecycle.PROVISIONING
            )
            logger.info(
                "Provisioning %s instance in %s (name=%s)",
                spec.instance_type_name,
                spec.region_name,
                spec.name,
            )
            try:
                return await self._provision(spec)
            except BaseException:
                lifecycle = advance(lifecycle, ResourceLifecycle.ABSENT)
                logger.debug(
                    "Provisioning %s in %s failed; resource is %s",
                    spec.instance_type_name,
                    spec.region_name,
                    lifecycle.value,
                )
                raise

    async def _provision(self, spec: DesiredInstanceSpec) -> InstanceState:
        probe = await self.prober.ensure_capacity(
            spec.instance_type_name, spec.region_name
        )
        if self.telemetry:
            self.telemetry.record_capacity_probe(
                spec.instance_type_name,
                spec.region_name,
                probe.attempts,
                probe.waited_seconds,
            )

        instance_ids = await self.api.launch_instance(spec.to_launch_request())
        if not instance_ids:
            raise TransportError(
                "launch succeeded but returned no instance ids",
                operation="create",
            )

        tracked_id = instance_ids[0]
        untracked = tuple(instance_ids[1:])
        events: list[DomainEvent] = [
            InstanceLaunched(
                aggregate_id=tracked_id,
                instance_type_name=spec.instance_type_name,
                region_name=spec.region_name,
                capacity_attempts=probe.attempts,
            )
        ]
        if untracked:
            logger.warning(
                "Launch of quantity 1 returned %d instance ids; tracking %s, "
                "untracked: %s",
                len(instance_ids),
                tracked_id,
                ", ".join(untracked),
            )
            events.append(
                LaunchAnomalyDetected(
                    aggregate_id=tracked_id, untracked_instance_ids=untracked
                )
            )

        state = InstanceState.launched(spec, tracked_id, untracked)
        logger.info("Created instance %s", tracked_id)
        if self.telemetry:
            self.telemetry.record_launch(
                tracked_id, spec.instance_type_name, spec.region_name
            )
        await self._publish(events)
        return state

    async def read(self, state: InstanceState) -> InstanceState:
        """
        Refresh the snapshot from the provider's instance list.

        Raises DriftError when the tracked id is no longer listed.
        """
        with traced(self.telemetry, "instance.read", {"instance_id": state.id}):
            logger.debug("Reading current instance state %s", state.id)
            instances = await self.api.list_instances()
            try:
                result = reconcile_instance(state, instances)
            except DriftError as e:
                logger.warning("Drift detected: %s", e)
                if self.telemetry:
                    self.telemetry.record_drift(state.id)
                await self._publish(
                    [InstanceDriftDetected(aggregate_id=state.id, details=str(e))]
                )
                raise

            observed = result.state.observed
            if observed is not None and not InstanceStatus.is_known(observed.status):
                logger.warning(
                    "Instance %s reports unrecognised status %r",
                    state.id,
                    observed.status,
                )
            elif observed is not None and not observed.is_active:
                logger.info("Instance %s is %s", state.id, observed.status)
            if result.has_remote_changes:
                logger.info(
                    "Instance %s differs remotely in: %s",
                    state.id,
                    ", ".join(result.changed_fields),
                )
            return result.state

    async def update(
        self, prior: InstanceState, desired: DesiredInstanceSpec
    ) -> InstanceState:
        """Always fails: instances cannot be changed in place."""
        changed = replacement_fields(
            INSTANCE_FIELDS, prior.declared_fields(), desired.declared_fields()
        )
        raise UnsupportedOperationError(
            "instance resource does not support updates; every declared field "
            "requires replacement",
            operation="update",
            resource_id=prior.id,
            detail=f"changed fields: {', '.join(changed) or 'none'}",
        )

    async def delete(self, state: InstanceState) -> list[str]:
        """
        Terminate exactly the tracked instance and return the terminated ids.

        Zero terminated ids, or a list without the tracked id, is an error:
        nothing we asked for was removed.
        """
        with traced(self.telemetry, "instance.delete", {"instance_id": state.id}):
            logger.debug("Terminating instance %s", state.id)
            terminated = await self.api.terminate_instances([state.id])

            if not terminated:
                raise TransportError(
                    "terminate reported no terminated instances",
                    operation="delete",
                    resource_id=state.id,
                )
            if state.id not in terminated:
                raise TransportError(
                    "terminate did not report the tracked instance",
                    operation="delete",
                    resource_id=state.id,
                    detail=f"terminated: {', '.join(terminated)}",
                )

            if len(terminated) == 1:
                logger.info("Terminated instance %s", state.id)
            else:
                logger.info("Terminated instances %s", ", ".join(terminated))

            if self.telemetry:
                self.telemetry.record_termination(state.id, len(terminated))
            await self._publish(
                [InstanceTerminated(aggregate_id=state.id, terminated_ids=tuple(terminated))]
            )
            return terminated

    async def import_state(self, instance_id: str) -> InstanceState:
        """Adopt an existing instance by id."""
        logger.info("Importing instance %s", instance_id)
        return await self.read(InstanceState.for_import(instance_id))

    async def _publish(self, events: list[DomainEvent]) -> None:
        if self.event_bus:
            await self.event_bus.publish(events)
