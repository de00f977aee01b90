"""Unit tests for command dispatch and outcome reporting."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from rmadmin.cli.dispatcher import CommandDispatcher, parse_command
from rmadmin.cli.main import build_parser, run
from rmadmin.config import AdminSettings, StoreSettings
from rmadmin.core.commands import CommandKind
from rmadmin.core.executor import DualPathExecutor
from rmadmin.errors import ArityError, FormatError, LocalStoreError, RemoteServiceError
from rmadmin.storage import FileSystemLabelStore


@pytest.fixture
def executor() -> MagicMock:
    executor = MagicMock(spec=DualPathExecutor)
    executor.refresh = AsyncMock()
    executor.get_groups = AsyncMock(return_value=[])
    executor.add_labels = AsyncMock()
    executor.remove_labels = AsyncMock()
    executor.set_node_to_labels = AsyncMock()
    executor.get_node_to_labels = AsyncMock(return_value={})
    executor.get_labels = AsyncMock(return_value=set())
    executor.load_labels_config_file = AsyncMock()
    return executor


def _dispatcher(executor: MagicMock, **settings) -> CommandDispatcher:
    return CommandDispatcher(AdminSettings(**settings), executor=executor)


class TestParseCommand:
    """Test argument parsing ahead of execution."""

    def test_add_labels(self) -> None:
        """Test add-labels parsing."""
        command = parse_command("add-labels", ["gpu,ssd"])

        assert command.kind == CommandKind.ADD_LABELS
        assert command.labels == {"gpu", "ssd"}

    def test_set_node_to_labels(self) -> None:
        """Test set-node-to-labels parsing."""
        command = parse_command("set-node-to-labels", ["n1:A,b;n2:"])

        assert command.node_to_labels == {"n1": {"a", "b"}, "n2": set()}

    def test_blank_label_list(self) -> None:
        """Test blank label list is rejected."""
        with pytest.raises(FormatError, match="No labels given"):
            parse_command("remove-labels", [" , "])

    def test_get_groups_takes_any_number_of_users(self) -> None:
        """Test get-groups accepts any number of users."""
        assert parse_command("get-groups", []).usernames == []
        assert parse_command("get-groups", ["a", "b", "c"]).usernames == ["a", "b", "c"]

    def test_get_labels_rejects_arguments(self) -> None:
        """Test get-labels rejects arguments."""
        with pytest.raises(ArityError, match="expected 0 argument"):
            parse_command("get-labels", ["extra"])


class TestCommandDispatcher:
    """Test the run() state machine against a mocked executor."""

    @pytest.mark.asyncio
    async def test_no_arguments_prints_usage(self, executor, capsys) -> None:
        """Test no arguments prints usage."""
        status = await _dispatcher(executor).run([])

        assert status == -1
        assert "Usage: rmadmin" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_unknown_command(self, executor, capsys) -> None:
        """Test unknown command prints usage."""
        status = await _dispatcher(executor).run(["frobnicate"])

        err = capsys.readouterr().err
        assert status == -1
        assert "frobnicate: Unknown command" in err
        assert "refresh-queues" in err

    @pytest.mark.asyncio
    async def test_arity_error_prints_command_usage(self, executor, capsys) -> None:
        """Test arity error prints the command's usage."""
        status = await _dispatcher(executor).run(["refresh-queues", "extra"])

        err = capsys.readouterr().err
        assert status == -1
        assert "Usage: rmadmin [refresh-queues]" in err
        executor.refresh.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_argument(self, executor, capsys) -> None:
        """Test missing argument."""
        status = await _dispatcher(executor).run(["add-labels"])

        assert status == -1
        assert "add-labels: expected 1 argument(s), got 0" in capsys.readouterr().err
        executor.add_labels.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_format_error(self, executor, capsys) -> None:
        """Test malformed node assignment."""
        status = await _dispatcher(executor).run(["set-node-to-labels", "n1-gpu"])

        err = capsys.readouterr().err
        assert status == -1
        assert "Format is incorrect" in err
        assert "Usage: rmadmin [set-node-to-labels" in err
        executor.set_node_to_labels.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "n1:a;;n2:b"])
    async def test_empty_node_clause_fails(self, executor, capsys, text: str) -> None:
        """Test empty node clauses fail."""
        status = await _dispatcher(executor).run(["set-node-to-labels", text])

        assert status == -1
        assert "set-node-to-labels: Format is incorrect" in capsys.readouterr().err
        executor.set_node_to_labels.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_labels_file_path(self, executor, capsys) -> None:
        """Test empty labels file path fails."""
        status = await _dispatcher(executor).run(["load-labels-config-file", ""])

        assert status == -1
        assert "No labels config file given" in capsys.readouterr().err
        executor.load_labels_config_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refresh(self, executor) -> None:
        """Test refresh command."""
        status = await _dispatcher(executor).run(["refresh-service-acls"])

        assert status == 0
        executor.refresh.assert_awaited_once_with(CommandKind.REFRESH_SERVICE_ACLS)

    @pytest.mark.asyncio
    async def test_add_labels(self, executor, capsys) -> None:
        """Test add-labels prints nothing on success."""
        status = await _dispatcher(executor).run(["add-labels", "gpu,ssd,"])

        assert status == 0
        executor.add_labels.assert_awaited_once_with({"gpu", "ssd"})
        assert capsys.readouterr().out == ""

    @pytest.mark.asyncio
    async def test_load_labels_config_file(self, executor) -> None:
        """Test load-labels-config-file command."""
        status = await _dispatcher(executor).run(["load-labels-config-file", "labels.yaml"])

        assert status == 0
        executor.load_labels_config_file.assert_awaited_once_with("labels.yaml")

    @pytest.mark.asyncio
    async def test_get_node_to_labels_sorted(self, executor, capsys) -> None:
        """Test node labels printed in sorted order."""
        executor.get_node_to_labels.return_value = {"b": {"z", "a"}, "a": {"y"}}

        status = await _dispatcher(executor).run(["get-node-to-labels"])

        assert status == 0
        assert capsys.readouterr().out.splitlines() == [
            "Host=a, Labels=[y]",
            "Host=b, Labels=[a,z]",
        ]

    @pytest.mark.asyncio
    async def test_get_labels(self, executor, capsys) -> None:
        """Test labels printed on one line."""
        executor.get_labels.return_value = {"ssd", "gpu"}

        status = await _dispatcher(executor).run(["get-labels"])

        assert status == 0
        assert capsys.readouterr().out.strip() == "Labels=gpu,ssd"

    @pytest.mark.asyncio
    async def test_get_groups(self, executor, capsys) -> None:
        """Test groups printed per user."""
        executor.get_groups.return_value = [("alice", ["eng", "ops"]), ("bob", [])]

        status = await _dispatcher(executor).run(["get-groups", "alice", "bob"])

        assert status == 0
        executor.get_groups.assert_awaited_once_with(["alice", "bob"])
        assert capsys.readouterr().out.splitlines() == ["alice: eng ops", "bob:"]

    @pytest.mark.asyncio
    async def test_remote_error_first_line_only(self, executor, capsys) -> None:
        """Test only the first line of a remote error is shown."""
        executor.add_labels.side_effect = RemoteServiceError(
            403, "User bob is not authorized\n\tat AdminService.check\n\tat Server.handle"
        )

        status = await _dispatcher(executor).run(["add-labels", "gpu"])

        err = capsys.readouterr().err
        assert status == -1
        assert "add-labels: User bob is not authorized" in err
        assert "AdminService" not in err
        assert "Usage" not in err

    @pytest.mark.asyncio
    async def test_local_store_error(self, executor, capsys) -> None:
        """Test local store errors are reported."""
        executor.get_labels.side_effect = LocalStoreError("Corrupt edit log /x at record 3")

        status = await _dispatcher(executor).run(["get-labels"])

        assert status == -1
        assert "get-labels: Corrupt edit log" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_unexpected_error(self, executor, capsys) -> None:
        """Test unexpected errors are reported."""
        executor.remove_labels.side_effect = RuntimeError("boom")

        status = await _dispatcher(executor).run(["remove-labels", "gpu"])

        assert status == -1
        assert "remove-labels: boom" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_help(self, executor, capsys) -> None:
        """Test full help."""
        status = await _dispatcher(executor).run(["help"])

        out = capsys.readouterr().out
        assert status == 0
        assert "The full syntax is:" in out
        assert "transition-to-active" not in out

    @pytest.mark.asyncio
    async def test_help_for_one_command(self, executor, capsys) -> None:
        """Test help for a single command."""
        status = await _dispatcher(executor).run(["help", "add-labels"])

        assert status == 0
        assert capsys.readouterr().out.strip() == "Usage: rmadmin [add-labels [labels splitted by ',']]"


class TestHaCommands:
    """Test delegation of HA commands."""

    @pytest.mark.asyncio
    async def test_ha_disabled(self, executor, capsys) -> None:
        """Test HA command without HA enabled."""
        status = await _dispatcher(executor).run(["transition-to-active", "rm1"])

        assert status == -1
        assert "Cannot run transition-to-active when ResourceManager HA is not enabled" in (
            capsys.readouterr().err
        )

    @pytest.mark.asyncio
    async def test_ha_enabled_delegates(self, executor) -> None:
        """Test HA command is delegated to the runner."""
        ha_runner = AsyncMock(return_value=0)
        dispatcher = CommandDispatcher(
            AdminSettings(ha_enabled=True), executor=executor, ha_runner=ha_runner
        )

        status = await dispatcher.run(["failover", "rm1", "rm2"])

        assert status == 0
        ha_runner.assert_awaited_once_with(["failover", "rm1", "rm2"])

    @pytest.mark.asyncio
    async def test_ha_enabled_without_runner(self, executor, capsys) -> None:
        """Test HA command without a runner."""
        status = await _dispatcher(executor, ha_enabled=True).run(["check-health", "rm1"])

        assert status == -1
        assert "check-health: no HA admin tool is configured" in capsys.readouterr().err


class TestEndToEnd:
    """Run command lines through a real executor."""

    @pytest.mark.asyncio
    async def test_labels_land_in_local_store_when_manager_is_down(
        self, tmp_path: Path, capsys
    ) -> None:
        """Test label changes reach the file store while the manager is down."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        settings = AdminSettings(label_store=StoreSettings(path=str(tmp_path)))
        executor = DualPathExecutor(settings, transport=httpx.MockTransport(handler))
        dispatcher = CommandDispatcher(settings, executor=executor)

        assert await dispatcher.run(["add-labels", "gpu,ssd"]) == 0
        assert await dispatcher.run(["set-node-to-labels", "n1:GPU"]) == 0
        capsys.readouterr()
        assert await dispatcher.run(["get-node-to-labels"]) == 0

        assert capsys.readouterr().out.strip() == "Host=n1, Labels=[gpu]"
        store = FileSystemLabelStore(str(tmp_path))
        await store.init()
        await store.start()
        assert await store.get_labels() == {"gpu", "ssd"}
        await store.close()

    @pytest.mark.asyncio
    async def test_malformed_assignment_never_sent(self, tmp_path: Path) -> None:
        """Test malformed assignments are never sent."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        settings = AdminSettings(label_store=StoreSettings(path=str(tmp_path / "labels")))
        executor = DualPathExecutor(settings, transport=httpx.MockTransport(handler))
        dispatcher = CommandDispatcher(settings, executor=executor)

        assert await dispatcher.run(["set-node-to-labels", ""]) == -1
        assert await dispatcher.run(["set-node-to-labels", "n1:a;;n2:b"]) == -1
        assert seen == []
        assert not (tmp_path / "labels").exists()

    @pytest.mark.asyncio
    async def test_rejected_change_not_written_locally(self, tmp_path: Path, capsys) -> None:
        """Test rejected change is not written locally."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"detail": "Access denied for user bob"})

        settings = AdminSettings(label_store=StoreSettings(path=str(tmp_path / "labels")))
        executor = DualPathExecutor(settings, transport=httpx.MockTransport(handler))

        status = await CommandDispatcher(settings, executor=executor).run(["add-labels", "gpu"])

        assert status == -1
        assert "add-labels: Access denied for user bob" in capsys.readouterr().err
        assert not (tmp_path / "labels").exists()


class TestMain:
    """Test the console entry point."""

    def test_parser_keeps_command_arguments(self) -> None:
        """Test command arguments are kept after options."""
        args = build_parser().parse_args(["--admin-url", "http://rm:1", "add-labels", "gpu"])

        assert args.admin_url == "http://rm:1"
        assert args.command == ["add-labels", "gpu"]

    @pytest.mark.asyncio
    async def test_invalid_settings(self, tmp_path: Path, capsys) -> None:
        """Test invalid settings file."""
        path = tmp_path / "rmadmin.yaml"
        path.write_text("timeout: 0\n")

        status = await run(["get-labels"], config_path=str(path))

        assert status == -1
        assert "Invalid settings" in capsys.readouterr().err
