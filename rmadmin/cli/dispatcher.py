"""Maps a command line to one administrative operation and reports the result.

Each invocation goes ParseArgs -> ValidateArity -> Execute -> ReportOutcome
exactly once. Every failure is turned into status -1 and a one-line
diagnostic on stderr; user errors also print usage.
"""

from typing import Awaitable, Callable, Optional, Sequence

import structlog

from rmadmin.cli.formatter import CLIFormatter
from rmadmin.cli.usage import HA_USAGE, build_help, build_usage
from rmadmin.config import AdminSettings
from rmadmin.core.commands import REFRESH_COMMANDS, AdminCommand, CommandKind, Outcome
from rmadmin.core.executor import DualPathExecutor
from rmadmin.errors import (
    AdminError,
    ArityError,
    FormatError,
    RemoteServiceError,
    UnknownCommandError,
)
from rmadmin.labels.codec import parse_labels, parse_node_to_labels

logger = structlog.get_logger(__name__)

HaRunner = Callable[[list[str]], Awaitable[int]]

# (min args, max args); None means unbounded
ARITY: dict[CommandKind, tuple[int, Optional[int]]] = {
    **{kind: (0, 0) for kind in REFRESH_COMMANDS},
    CommandKind.GET_GROUPS: (0, None),
    CommandKind.ADD_LABELS: (1, 1),
    CommandKind.REMOVE_LABELS: (1, 1),
    CommandKind.SET_NODE_TO_LABELS: (1, 1),
    CommandKind.GET_NODE_TO_LABELS: (0, 0),
    CommandKind.GET_LABELS: (0, 0),
    CommandKind.LOAD_LABELS_CONFIG_FILE: (1, 1),
}

HELP_COMMAND = "help"


def validate_arity(kind: CommandKind, args: Sequence[str]) -> None:
    low, high = ARITY[kind]
    if len(args) < low or (high is not None and len(args) > high):
        if high is None:
            expected = f"at least {low}"
        elif low == high:
            expected = str(low)
        else:
            expected = f"{low} to {high}"
        raise ArityError(kind.value, expected, len(args))


def parse_command(token: str, args: Sequence[str]) -> AdminCommand:
    """Turn a command token and its arguments into an AdminCommand.

    Raises:
        UnknownCommandError: If the token is not a command.
        ArityError: If the argument count is wrong.
        FormatError: If a label argument is malformed.
    """
    kind = CommandKind.from_token(token)
    if kind is None:
        raise UnknownCommandError(token)
    validate_arity(kind, args)

    if kind in (CommandKind.ADD_LABELS, CommandKind.REMOVE_LABELS):
        labels = parse_labels(args[0])
        if not labels:
            raise FormatError("No labels given")
        return AdminCommand(kind=kind, labels=labels)
    if kind == CommandKind.SET_NODE_TO_LABELS:
        return AdminCommand(kind=kind, node_to_labels=parse_node_to_labels(args[0]))
    if kind == CommandKind.LOAD_LABELS_CONFIG_FILE:
        return AdminCommand(kind=kind, path=args[0])
    if kind == CommandKind.GET_GROUPS:
        return AdminCommand(kind=kind, usernames=list(args))
    return AdminCommand(kind=kind)


class CommandDispatcher:
    """Runs a single rmadmin command line.

    Args:
        settings: Loaded settings.
        executor: Operation executor; built from ``settings`` when omitted.
        formatter: Output formatter.
        ha_runner: Coroutine handling HA commands, called with the full
            argument list when HA is enabled.
    """

    def __init__(
        self,
        settings: AdminSettings,
        executor: Optional[DualPathExecutor] = None,
        formatter: Optional[CLIFormatter] = None,
        ha_runner: Optional[HaRunner] = None,
    ) -> None:
        self.settings = settings
        self.executor = executor or DualPathExecutor(settings)
        self.fmt = formatter or CLIFormatter()
        self.ha_runner = ha_runner

        self._handlers: dict[CommandKind, Callable[[AdminCommand], Awaitable[Outcome]]] = {
            **{kind: self._cmd_refresh for kind in REFRESH_COMMANDS},
            CommandKind.GET_GROUPS: self._cmd_get_groups,
            CommandKind.ADD_LABELS: self._cmd_add_labels,
            CommandKind.REMOVE_LABELS: self._cmd_remove_labels,
            CommandKind.SET_NODE_TO_LABELS: self._cmd_set_node_to_labels,
            CommandKind.GET_NODE_TO_LABELS: self._cmd_get_node_to_labels,
            CommandKind.GET_LABELS: self._cmd_get_labels,
            CommandKind.LOAD_LABELS_CONFIG_FILE: self._cmd_load_labels_config_file,
        }

    # ── entry ────────────────────────────────────────────────────────

    async def run(self, argv: Sequence[str]) -> int:
        """Run one command line and return its exit status."""
        if not argv:
            self.fmt.usage(build_usage("", self.settings.ha_enabled))
            return Outcome.FAILURE

        token, args = argv[0], list(argv[1:])

        if token == HELP_COMMAND:
            return self._help(args)
        if token in HA_USAGE:
            return await self._run_ha(list(argv))

        try:
            command = parse_command(token, args)
            outcome = await self.execute(command)
        except UnknownCommandError:
            self.fmt.error(token, "Unknown command")
            self.fmt.usage(build_usage("", self.settings.ha_enabled))
            return Outcome.FAILURE
        except (ArityError, FormatError) as exc:
            self.fmt.error(token, str(exc))
            self.fmt.usage(build_usage(token, self.settings.ha_enabled))
            return Outcome.FAILURE
        except RemoteServiceError as exc:
            # only the first line of the service's diagnostic is shown
            self.fmt.error(token, exc.first_line)
            return Outcome.FAILURE
        except AdminError as exc:
            self.fmt.error(token, str(exc))
            return Outcome.FAILURE
        except Exception as exc:
            await logger.aerror("command_failed", command=token, error=repr(exc))
            self.fmt.error(token, str(exc) or type(exc).__name__)
            return Outcome.FAILURE

        return self.report(token, outcome)

    async def execute(self, command: AdminCommand) -> Outcome:
        handler = self._handlers[command.kind]
        await logger.adebug("executing_command", command=command.kind.value)
        return await handler(command)

    def report(self, token: str, outcome: Outcome) -> int:
        if not outcome.ok and outcome.message:
            self.fmt.error(token, outcome.message)
        return outcome.status

    # ── built-ins ────────────────────────────────────────────────────

    def _help(self, args: list[str]) -> int:
        if args:
            self.fmt.print_help(build_usage(args[0], self.settings.ha_enabled))
        else:
            self.fmt.print_help(build_help(self.settings.ha_enabled))
        return Outcome.SUCCESS

    async def _run_ha(self, argv: list[str]) -> int:
        token = argv[0]
        if not self.settings.ha_enabled:
            self.fmt.warning(f"Cannot run {token} when ResourceManager HA is not enabled")
            return Outcome.FAILURE
        if self.ha_runner is None:
            self.fmt.error(token, "no HA admin tool is configured")
            return Outcome.FAILURE
        return await self.ha_runner(argv)

    # ── command handlers ─────────────────────────────────────────────

    async def _cmd_refresh(self, command: AdminCommand) -> Outcome:
        await self.executor.refresh(command.kind)
        return Outcome.success()

    async def _cmd_get_groups(self, command: AdminCommand) -> Outcome:
        for user, groups in await self.executor.get_groups(command.usernames):
            self.fmt.print_groups(user, groups)
        return Outcome.success()

    async def _cmd_add_labels(self, command: AdminCommand) -> Outcome:
        await self.executor.add_labels(command.labels or set())
        return Outcome.success()

    async def _cmd_remove_labels(self, command: AdminCommand) -> Outcome:
        await self.executor.remove_labels(command.labels or set())
        return Outcome.success()

    async def _cmd_set_node_to_labels(self, command: AdminCommand) -> Outcome:
        await self.executor.set_node_to_labels(command.node_to_labels or {})
        return Outcome.success()

    async def _cmd_get_node_to_labels(self, _command: AdminCommand) -> Outcome:
        self.fmt.print_node_to_labels(await self.executor.get_node_to_labels())
        return Outcome.success()

    async def _cmd_get_labels(self, _command: AdminCommand) -> Outcome:
        self.fmt.print_labels(await self.executor.get_labels())
        return Outcome.success()

    async def _cmd_load_labels_config_file(self, command: AdminCommand) -> Outcome:
        if not command.path:
            raise FormatError("No labels config file given")
        await self.executor.load_labels_config_file(command.path)
        return Outcome.success()
