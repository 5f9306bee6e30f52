"""
Composition Root

Architectural Intent:
- Dependency injection composition root for lambdaform
- Single place where all adapters and use cases are wired together
- No adapter instantiation should occur outside this module (except CLI)

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- Factory function creates and wires all dependencies
- The telemetry exporter is created here but initialized by the caller
  (initialization is async and optional)
- --simulate swaps the HTTP gateway for the in-memory simulator and needs no
  credentials
"""

from dataclasses import dataclass
from typing import Optional

from lambdaform.application.use_cases.apply_instance import (
    ApplyInstance,
    ApplySSHKey,
    DestroyInstance,
    ImportInstance,
    RefreshInstance,
    RemoveSSHKey,
)
from lambdaform.application.use_cases.data_sources import (
    FilesystemsDataSource,
    InstanceDataSource,
    InstancesDataSource,
    InstanceTypesDataSource,
    SSHKeyDataSource,
    SSHKeysDataSource,
)
from lambdaform.application.use_cases.instance_reconciler import InstanceReconciler
from lambdaform.application.use_cases.ssh_key_reconciler import SSHKeyReconciler
from lambdaform.domain.ports.clock_port import ClockPort
from lambdaform.domain.ports.cloud_api_port import CloudAPIPort
from lambdaform.domain.services.capacity_prober import CapacityProber
from lambdaform.infrastructure.adapters.lambda_cloud_adapter import LambdaCloudAdapter
from lambdaform.infrastructure.adapters.simulated_cloud_adapter import (
    SimulatedCloudAdapter,
)
from lambdaform.infrastructure.clock import SystemClock
from lambdaform.infrastructure.config import LambdaformConfig, resolve_api_settings
from lambdaform.infrastructure.event_bus import EventBus
from lambdaform.infrastructure.repositories.sqlite_state_repository import (
    SQLiteStateRepository,
)
from lambdaform.infrastructure.telemetry.otel_exporter import OTELConfig, OTELExporter


@dataclass
class LambdaformContainer:
    """DI container holding all wired dependencies."""

    api: CloudAPIPort
    clock: ClockPort
    event_bus: EventBus
    telemetry: OTELExporter
    state_store: SQLiteStateRepository
    prober: CapacityProber
    instance_reconciler: InstanceReconciler
    ssh_key_reconciler: SSHKeyReconciler
    apply_instance: ApplyInstance
    destroy_instance: DestroyInstance
    refresh_instance: RefreshInstance
    import_instance: ImportInstance
    apply_ssh_key: ApplySSHKey
    remove_ssh_key: RemoveSSHKey
    instance_data_source: InstanceDataSource
    instances_data_source: InstancesDataSource
    ssh_key_data_source: SSHKeyDataSource
    ssh_keys_data_source: SSHKeysDataSource
    filesystems_data_source: FilesystemsDataSource
    instance_types_data_source: InstanceTypesDataSource


def create_container(
    config: Optional[LambdaformConfig] = None,
    simulate: bool = False,
    api: Optional[CloudAPIPort] = None,
    clock: Optional[ClockPort] = None,
) -> LambdaformContainer:
    """Create and wire all dependencies."""
    config = config or LambdaformConfig()

    if api is None:
        if simulate:
            api = SimulatedCloudAdapter()
        else:
            settings = resolve_api_settings(config.api)
            api = LambdaCloudAdapter(
                api_key=settings.api_key,
                host=settings.host,
                timeout_seconds=settings.timeout_seconds,
            )
    clock = clock or SystemClock()
    event_bus = EventBus()
    telemetry = OTELExporter(
        OTELConfig(
            endpoint=config.telemetry.endpoint,
            insecure=config.telemetry.insecure,
        )
    )
    state_store = SQLiteStateRepository(
        ":memory:" if simulate else config.state.db_path
    )
    state_store.connect()

    prober = CapacityProber(
        api,
        clock,
        poll_interval_seconds=config.capacity.poll_interval_seconds,
        timeout_seconds=config.capacity.timeout_seconds,
    )
    instance_reconciler = InstanceReconciler(api, prober, event_bus, telemetry)
    ssh_key_reconciler = SSHKeyReconciler(api, event_bus)

    return LambdaformContainer(
        api=api,
        clock=clock,
        event_bus=event_bus,
        telemetry=telemetry,
        state_store=state_store,
        prober=prober,
        instance_reconciler=instance_reconciler,
        ssh_key_reconciler=ssh_key_reconciler,
        apply_instance=ApplyInstance(instance_reconciler, state_store),
        destroy_instance=DestroyInstance(instance_reconciler, state_store),
        refresh_instance=RefreshInstance(instance_reconciler, state_store),
        import_instance=ImportInstance(instance_reconciler, state_store),
        apply_ssh_key=ApplySSHKey(ssh_key_reconciler, state_store),
        remove_ssh_key=RemoveSSHKey(ssh_key_reconciler, state_store),
        instance_data_source=InstanceDataSource(api),
        instances_data_source=InstancesDataSource(api),
        ssh_key_data_source=SSHKeyDataSource(api),
        ssh_keys_data_source=SSHKeysDataSource(api),
        filesystems_data_source=FilesystemsDataSource(api),
        instance_types_data_source=InstanceTypesDataSource(api),
    )
