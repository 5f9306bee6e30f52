"""Tests for the InstanceReconciler use case."""

import logging

import pytest
from unittest.mock import AsyncMock, MagicMock

from lambdaform.application.use_cases.instance_reconciler import InstanceReconciler
from lambdaform.domain.entities.instance_state import InstanceState, ResourceLifecycle
from lambdaform.domain.errors import (
    CapacityUnavailableError,
    ConfigurationError,
    DriftError,
    TransportError,
    UnsupportedOperationError,
)
from lambdaform.domain.events import (
    InstanceDriftDetected,
    InstanceLaunched,
    InstanceTerminated,
    LaunchAnomalyDetected,
)
from lambdaform.domain.services.capacity_prober import CapacityProber
from lambdaform.domain.value_objects.instance_spec import DesiredInstanceSpec
from lambdaform.domain.value_objects.instance_type import (
    InstanceType,
    InstanceTypeOffer,
    Region,
)
from lambdaform.domain.value_objects.observed_instance import ObservedInstance


def _make_catalog(*regions):
    return {
        "gpu_1x_a10": InstanceTypeOffer(
            InstanceType("gpu_1x_a10"), tuple(Region(r) for r in regions)
        )
    }


def _make_observed(instance_id, **overrides):
    values = {
        "id": instance_id,
        "status": "active",
        "region": Region("us-east-1"),
        "instance_type": InstanceType("gpu_1x_a10"),
        "name": "trainer",
        "ssh_key_names": ("laptop",),
    }
    values.update(overrides)
    return ObservedInstance(**values)


def _make_spec(**overrides):
    values = {
        "instance_type_name": "gpu_1x_a10",
        "region_name": "us-east-1",
        "ssh_key_names": ("laptop",),
        "name": "trainer",
    }
    values.update(overrides)
    return DesiredInstanceSpec(**values)


def _make_state(instance_id="i-1"):
    return InstanceState.launched(_make_spec(), instance_id)


def _make_reconciler(clock, api=None):
    if api is None:
        api = AsyncMock()
        api.list_instance_types = AsyncMock(return_value=_make_catalog("us-east-1"))
        api.launch_instance = AsyncMock(return_value=["i-1"])
        api.list_instances = AsyncMock(return_value=[_make_observed("i-1")])
        api.terminate_instances = AsyncMock(return_value=["i-1"])
    event_bus = AsyncMock()
    telemetry = MagicMock()
    telemetry.start_span = MagicMock(return_value="span")
    reconciler = InstanceReconciler(api, CapacityProber(api, clock), event_bus, telemetry)
    return reconciler, api, event_bus, telemetry


def _published(event_bus):
    return [event for call in event_bus.publish.await_args_list for event in call.args[0]]


class TestCreate:
    @pytest.mark.asyncio
    async def test_launches_one_instance(self, fake_clock):
        reconciler, api, event_bus, telemetry = _make_reconciler(fake_clock)

        state = await reconciler.create(_make_spec())

        assert state.id == "i-1"
        assert state.declared_fields() == _make_spec().declared_fields()
        assert state.lifecycle == ResourceLifecycle.PRESENT
        request = api.launch_instance.await_args.args[0]
        assert request.quantity == 1
        assert request.ssh_key_names == ("laptop",)
        telemetry.record_launch.assert_called_once_with("i-1", "gpu_1x_a10", "us-east-1")
        telemetry.record_capacity_probe.assert_called_once()
        assert [type(e) for e in _published(event_bus)] == [InstanceLaunched]

    @pytest.mark.asyncio
    async def test_three_empty_polls_then_exactly_one_launch(self, fake_clock):
        api = AsyncMock()
        api.list_instance_types = AsyncMock(
            side_effect=[_make_catalog(), _make_catalog(), _make_catalog(), _make_catalog("us-east-1")]
        )
        api.launch_instance = AsyncMock(return_value=["i-1"])
        reconciler, _, event_bus, _ = _make_reconciler(fake_clock, api)

        state = await reconciler.create(_make_spec())

        assert state.id == "i-1"
        assert api.list_instance_types.await_count == 4
        api.launch_instance.assert_awaited_once()
        assert _published(event_bus)[0].capacity_attempts == 4

    @pytest.mark.asyncio
    async def test_unknown_type_never_launches(self, fake_clock):
        reconciler, api, _, _ = _make_reconciler(fake_clock)

        with pytest.raises(ConfigurationError):
            await reconciler.create(_make_spec(instance_type_name="gpu_9x_missing"))

        api.launch_instance.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_capacity_never_launches(self, fake_clock):
        reconciler, api, _, _ = _make_reconciler(fake_clock)
        api.list_instance_types = AsyncMock(return_value=_make_catalog())

        with pytest.raises(CapacityUnavailableError):
            await reconciler.create(_make_spec())

        api.launch_instance.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_id_list_is_transport_error(self, fake_clock):
        reconciler, api, event_bus, _ = _make_reconciler(fake_clock)
        api.launch_instance = AsyncMock(return_value=[])

        with pytest.raises(TransportError, match="no instance ids"):
            await reconciler.create(_make_spec())

        event_bus.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_launch_failure_propagates_and_ends_span_with_error(self, fake_clock):
        reconciler, api, _, telemetry = _make_reconciler(fake_clock)
        error = TransportError("launch failed", status_code=400)
        api.launch_instance = AsyncMock(side_effect=error)

        with pytest.raises(TransportError):
            await reconciler.create(_make_spec())

        telemetry.end_span.assert_called_once_with("span", error)
        telemetry.record_launch.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_create_returns_resource_to_absent(self, fake_clock, caplog):
        reconciler, api, _, _ = _make_reconciler(fake_clock)
        api.launch_instance = AsyncMock(side_effect=TransportError("launch failed"))

        with caplog.at_level(logging.DEBUG, logger="lambdaform"):
            with pytest.raises(TransportError):
                await reconciler.create(_make_spec())

        assert "Provisioning gpu_1x_a10 in us-east-1 failed; resource is absent" in caplog.text

    @pytest.mark.asyncio
    async def test_extra_ids_are_an_anomaly(self, fake_clock, caplog):
        reconciler, api, event_bus, _ = _make_reconciler(fake_clock)
        api.launch_instance = AsyncMock(return_value=["i-1", "i-2", "i-3"])

        with caplog.at_level(logging.WARNING, logger="lambdaform"):
            state = await reconciler.create(_make_spec())

        assert state.id == "i-1"
        assert state.untracked_instance_ids == ("i-2", "i-3")
        assert "untracked" in caplog.text
        anomalies = [e for e in _published(event_bus) if isinstance(e, LaunchAnomalyDetected)]
        assert anomalies[0].untracked_instance_ids == ("i-2", "i-3")


class TestRead:
    @pytest.mark.asyncio
    async def test_read_after_create_matches_id(self, fake_clock):
        reconciler, api, _, _ = _make_reconciler(fake_clock)
        api.list_instances = AsyncMock(
            return_value=[_make_observed("i-0"), _make_observed("i-1", ip="10.0.0.1"), _make_observed("i-9")]
        )

        created = await reconciler.create(_make_spec())
        state = await reconciler.read(created)

        assert state.observed.id == created.id
        assert state.observed.ip == "10.0.0.1"

    @pytest.mark.asyncio
    async def test_missing_instance_raises_drift(self, fake_clock):
        reconciler, api, event_bus, telemetry = _make_reconciler(fake_clock)
        api.list_instances = AsyncMock(return_value=[_make_observed("i-0")])

        with pytest.raises(DriftError, match="i-1"):
            await reconciler.read(_make_state())

        telemetry.record_drift.assert_called_once_with("i-1")
        drift = _published(event_bus)
        assert isinstance(drift[0], InstanceDriftDetected)
        assert "i-1" in drift[0].details

    @pytest.mark.asyncio
    async def test_list_failure_propagates(self, fake_clock):
        reconciler, api, _, _ = _make_reconciler(fake_clock)
        api.list_instances = AsyncMock(side_effect=TransportError("boom"))

        with pytest.raises(TransportError):
            await reconciler.read(_make_state())

    @pytest.mark.asyncio
    async def test_remote_change_logged(self, fake_clock, caplog):
        reconciler, api, _, _ = _make_reconciler(fake_clock)
        api.list_instances = AsyncMock(return_value=[_make_observed("i-1", name="renamed")])

        with caplog.at_level(logging.INFO, logger="lambdaform"):
            state = await reconciler.read(_make_state())

        assert state.name == "renamed"
        assert "differs remotely in: name" in caplog.text

    @pytest.mark.asyncio
    async def test_unrecognised_status_warns(self, fake_clock, caplog):
        reconciler, api, _, _ = _make_reconciler(fake_clock)
        api.list_instances = AsyncMock(return_value=[_make_observed("i-1", status="preempted")])

        with caplog.at_level(logging.WARNING, logger="lambdaform"):
            state = await reconciler.read(_make_state())

        assert state.observed.status == "preempted"
        assert "unrecognised status 'preempted'" in caplog.text

    @pytest.mark.asyncio
    async def test_inactive_status_logged(self, fake_clock, caplog):
        reconciler, api, _, _ = _make_reconciler(fake_clock)
        api.list_instances = AsyncMock(return_value=[_make_observed("i-1", status="booting")])

        with caplog.at_level(logging.INFO, logger="lambdaform"):
            await reconciler.read(_make_state())

        assert "Instance i-1 is booting" in caplog.text
        assert "unrecognised" not in caplog.text


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_always_fails(self, fake_clock):
        reconciler, api, _, _ = _make_reconciler(fake_clock)
        prior = _make_state()

        with pytest.raises(UnsupportedOperationError) as exc_info:
            await reconciler.update(prior, _make_spec(region_name="us-west-1"))

        assert "region_name" in str(exc_info.value)
        api.launch_instance.assert_not_awaited()
        api.terminate_instances.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_read_after_failed_update_matches_read_before(self, fake_clock):
        reconciler, api, _, _ = _make_reconciler(fake_clock)
        api.list_instances = AsyncMock(
            return_value=[_make_observed("i-1", ip="10.0.0.1")]
        )
        before = await reconciler.read(_make_state())

        with pytest.raises(UnsupportedOperationError):
            await reconciler.update(before, _make_spec(name="renamed"))
        after = await reconciler.read(before)

        assert after == before
        assert after.to_dict() == before.to_dict()
        assert api.list_instances.await_count == 2
        api.launch_instance.assert_not_awaited()
        api.terminate_instances.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_fails_even_without_changes(self, fake_clock):
        reconciler, _, _, _ = _make_reconciler(fake_clock)

        with pytest.raises(UnsupportedOperationError):
            await reconciler.update(_make_state(), _make_spec())


class TestDelete:
    @pytest.mark.asyncio
    async def test_terminates_tracked_id_only(self, fake_clock):
        reconciler, api, event_bus, telemetry = _make_reconciler(fake_clock)

        terminated = await reconciler.delete(_make_state())

        assert terminated == ["i-1"]
        api.terminate_instances.assert_awaited_once_with(["i-1"])
        telemetry.record_termination.assert_called_once_with("i-1", 1)
        assert isinstance(_published(event_bus)[0], InstanceTerminated)

    @pytest.mark.asyncio
    async def test_zero_terminated_is_transport_error(self, fake_clock):
        reconciler, api, event_bus, _ = _make_reconciler(fake_clock)
        api.terminate_instances = AsyncMock(return_value=[])

        with pytest.raises(TransportError) as exc_info:
            await reconciler.delete(_make_state())

        assert exc_info.value.resource_id == "i-1"
        event_bus.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_terminated_list_without_tracked_id_fails(self, fake_clock):
        reconciler, api, _, _ = _make_reconciler(fake_clock)
        api.terminate_instances = AsyncMock(return_value=["i-other"])

        with pytest.raises(TransportError, match="tracked instance"):
            await reconciler.delete(_make_state())

    @pytest.mark.asyncio
    async def test_several_terminated_logged_at_info(self, fake_clock, caplog):
        reconciler, api, _, _ = _make_reconciler(fake_clock)
        api.terminate_instances = AsyncMock(return_value=["i-1", "i-2"])

        with caplog.at_level(logging.INFO, logger="lambdaform"):
            terminated = await reconciler.delete(_make_state())

        assert terminated == ["i-1", "i-2"]
        assert "Terminated instances i-1, i-2" in caplog.text


class TestImport:
    @pytest.mark.asyncio
    async def test_import_reads_declared_fields(self, fake_clock):
        reconciler, _, _, _ = _make_reconciler(fake_clock)

        state = await reconciler.import_state("i-1")

        assert state.id == "i-1"
        assert state.instance_type_name == "gpu_1x_a10"
        assert state.name == "trainer"

    @pytest.mark.asyncio
    async def test_import_unknown_id_raises_drift(self, fake_clock):
        reconciler, _, _, _ = _make_reconciler(fake_clock)

        with pytest.raises(DriftError):
            await reconciler.import_state("i-missing")


class TestWithoutCollaborators:
    @pytest.mark.asyncio
    async def test_works_without_event_bus_or_telemetry(self, fake_clock):
        api = AsyncMock()
        api.list_instance_types = AsyncMock(return_value=_make_catalog("us-east-1"))
        api.launch_instance = AsyncMock(return_value=["i-1"])
        reconciler = InstanceReconciler(api, CapacityProber(api, fake_clock))

        state = await reconciler.create(_make_spec())

        assert state.id == "i-1"
