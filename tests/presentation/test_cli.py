"""Tests for CLI module."""

import pytest
from unittest.mock import patch, AsyncMock, MagicMock

from lambdaform.application.use_cases.apply_instance import ApplyResult
from lambdaform.domain.entities.instance_state import InstanceState
from lambdaform.domain.errors import CapacityUnavailableError, DriftError
from lambdaform.domain.services.change_planner import plan_instance_change
from lambdaform.domain.value_objects.instance_spec import DesiredInstanceSpec
from lambdaform.domain.value_objects.instance_type import InstanceType, Region
from lambdaform.domain.value_objects.observed_instance import ObservedInstance
from lambdaform.presentation.cli.cli import async_main

CREATE_CONTAINER = "lambdaform.presentation.cli.cli.create_container"


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("LAMBDALABS_API_KEY", "LAMBDAFORM_API_KEY", "LAMBDALABS_HOST"):
        monkeypatch.delenv(name, raising=False)


def _make_container(**overrides):
    """Create a mock container with sensible defaults."""
    container = MagicMock()
    container.telemetry.initialize = AsyncMock(return_value=None)
    container.telemetry.export = AsyncMock(return_value=None)
    container.apply_instance.execute = AsyncMock()
    container.destroy_instance.execute = AsyncMock(return_value=["i-1"])
    container.import_instance.execute = AsyncMock()
    for key, value in overrides.items():
        setattr(container, key, value)
    return container


def _spec():
    return DesiredInstanceSpec(
        instance_type_name="gpu_1x_a10",
        region_name="us-east-1",
        ssh_key_names=("laptop",),
    )


class TestCLIHelp:
    """Test all help outputs (no adapter dependencies)."""

    @pytest.mark.asyncio
    async def test_no_command_prints_help(self, capsys):
        with patch("sys.argv", ["lambdaform"]):
            await async_main()
        captured = capsys.readouterr()
        assert "declarative Lambda Cloud instances" in captured.out

    @pytest.mark.asyncio
    async def test_help_flag(self):
        with patch("sys.argv", ["lambdaform", "--help"]), \
             pytest.raises(SystemExit, match="0"):
            await async_main()

    @pytest.mark.asyncio
    async def test_instance_apply_help(self):
        with patch("sys.argv", ["lambdaform", "instance", "apply", "--help"]), \
             pytest.raises(SystemExit, match="0"):
            await async_main()

    @pytest.mark.asyncio
    async def test_ssh_key_help(self):
        with patch("sys.argv", ["lambdaform", "ssh-key", "--help"]), \
             pytest.raises(SystemExit, match="0"):
            await async_main()

    @pytest.mark.asyncio
    async def test_apply_requires_type(self):
        with patch("sys.argv", ["lambdaform", "instance", "apply", "trainer"]), \
             pytest.raises(SystemExit, match="2"):
            await async_main()

    @pytest.mark.asyncio
    async def test_verbose_flag(self):
        with patch("sys.argv", ["lambdaform", "--verbose"]):
            await async_main()

    @pytest.mark.asyncio
    async def test_debug_flag(self):
        with patch("sys.argv", ["lambdaform", "--debug"]):
            await async_main()


class TestConfiguration:
    @pytest.mark.asyncio
    async def test_missing_api_key_exits(self, capsys):
        with patch("sys.argv", ["lambdaform", "instances"]), \
             pytest.raises(SystemExit, match="1"):
            await async_main()
        assert "Configuration error" in capsys.readouterr().out


class TestInstanceCommands:
    @pytest.mark.asyncio
    async def test_apply(self, capsys):
        state = InstanceState.launched(_spec(), "i-1")
        container = _make_container()
        container.apply_instance.execute = AsyncMock(
            return_value=ApplyResult("trainer", plan_instance_change(None, _spec()), state)
        )
        argv = [
            "lambdaform", "instance", "apply", "trainer",
            "-t", "gpu_1x_a10", "-r", "us-east-1", "-k", "laptop",
        ]
        with patch("sys.argv", argv), patch(CREATE_CONTAINER, return_value=container):
            await async_main()

        out = capsys.readouterr().out
        assert "[+] trainer: create -> i-1" in out
        address, desired = container.apply_instance.execute.await_args.args
        assert address == "trainer"
        assert desired.ssh_key_names == ("laptop",)
        assert desired.name is None
        assert container.apply_instance.execute.await_args.kwargs == {"recreate_on_drift": False}
        container.state_store.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_apply_drift_hint(self, capsys):
        container = _make_container()
        container.apply_instance.execute = AsyncMock(
            side_effect=DriftError("instance i-1 not found", resource_id="i-1")
        )
        argv = [
            "lambdaform", "instance", "apply", "trainer",
            "-t", "gpu_1x_a10", "-r", "us-east-1", "-k", "laptop",
        ]
        with patch("sys.argv", argv), patch(CREATE_CONTAINER, return_value=container), \
             pytest.raises(SystemExit, match="1"):
            await async_main()

        out = capsys.readouterr().out
        assert "[-] Apply failed" in out
        assert "--recreate-on-drift" in out

    @pytest.mark.asyncio
    async def test_apply_capacity_hint(self, capsys):
        container = _make_container()
        container.apply_instance.execute = AsyncMock(
            side_effect=CapacityUnavailableError("no capacity", attempts=601)
        )
        argv = [
            "lambdaform", "instance", "apply", "trainer",
            "-t", "gpu_1x_a10", "-r", "us-east-1", "-k", "laptop",
        ]
        with patch("sys.argv", argv), patch(CREATE_CONTAINER, return_value=container), \
             pytest.raises(SystemExit, match="1"):
            await async_main()

        assert "601 capacity check(s)" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_destroy(self, capsys):
        container = _make_container()
        with patch("sys.argv", ["lambdaform", "instance", "destroy", "trainer"]), \
             patch(CREATE_CONTAINER, return_value=container):
            await async_main()

        assert "[+] Terminated: i-1" in capsys.readouterr().out
        container.destroy_instance.execute.assert_awaited_once_with("trainer")
        container.telemetry.export.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_instances_without_address_show_dash(self, capsys):
        booting = ObservedInstance(
            id="i-1", status="booting", region=Region("us-east-1"), instance_type=InstanceType("gpu_1x_a10")
        )
        active = ObservedInstance(
            id="i-2", status="active", region=Region("us-east-1"), instance_type=InstanceType("gpu_1x_a10"),
            ip="10.0.0.2",
        )
        container = _make_container()
        container.instances_data_source.read = AsyncMock(return_value=[booting, active])
        with patch("sys.argv", ["lambdaform", "instances"]), \
             patch(CREATE_CONTAINER, return_value=container):
            await async_main()

        rows = {line.split()[0]: line for line in capsys.readouterr().out.splitlines() if line.startswith("  ")}
        assert rows["i-1"].endswith("us-east-1  -")
        assert rows["i-2"].endswith("us-east-1  10.0.0.2")


class TestSimulatedRuns:
    @pytest.mark.asyncio
    async def test_instance_types(self, capsys):
        with patch("sys.argv", ["lambdaform", "--simulate", "instance-types"]):
            await async_main()

        out = capsys.readouterr().out
        assert "gpu_1x_a10" in out
        assert "$0.75/hr" in out
        assert "us-east-1" in out

    @pytest.mark.asyncio
    async def test_apply_creates_instance(self, capsys):
        argv = [
            "lambdaform", "--simulate", "instance", "apply", "trainer",
            "-t", "gpu_1x_a10", "-r", "us-east-1", "-k", "laptop", "-n", "trainer",
        ]
        with patch("sys.argv", argv):
            await async_main()

        assert "[+] trainer: create -> " in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_apply_unknown_type_fails(self, capsys):
        argv = [
            "lambdaform", "--simulate", "instance", "apply", "trainer",
            "-t", "gpu_0x_none", "-r", "us-east-1", "-k", "laptop",
        ]
        with patch("sys.argv", argv), pytest.raises(SystemExit, match="1"):
            await async_main()

        assert "gpu_0x_none" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_destroy_untracked_address(self, capsys):
        with patch("sys.argv", ["lambdaform", "--simulate", "instance", "destroy", "nope"]), \
             pytest.raises(SystemExit, match="1"):
            await async_main()

        assert "no tracked instance" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_ssh_key_add(self, capsys, tmp_path):
        key_file = tmp_path / "id_ed25519.pub"
        key_file.write_text("ssh-ed25519 AAAA laptop\n")
        argv = [
            "lambdaform", "--simulate", "ssh-key", "add", "laptop",
            "-n", "laptop", "-p", str(key_file),
        ]
        with patch("sys.argv", argv):
            await async_main()

        assert "[+] laptop: create -> " in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_ssh_key_add_missing_file(self, capsys, tmp_path):
        argv = [
            "lambdaform", "--simulate", "ssh-key", "add", "laptop",
            "-n", "laptop", "-p", str(tmp_path / "missing.pub"),
        ]
        with patch("sys.argv", argv), pytest.raises(SystemExit, match="1"):
            await async_main()

        assert "Public key file not found" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_state_list_empty(self, capsys):
        with patch("sys.argv", ["lambdaform", "--simulate", "state", "list"]):
            await async_main()

        assert capsys.readouterr().out == ""
