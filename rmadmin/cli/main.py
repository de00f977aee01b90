"""Entry point for the rmadmin command.

Usage:
    rmadmin add-labels gpu,ssd
    rmadmin set-node-to-labels "node1:gpu;node2:ssd"
    rmadmin --admin-url http://rm-host:8033 get-node-to-labels
    rmadmin help add-labels
"""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

import structlog

from rmadmin.cli.dispatcher import CommandDispatcher
from rmadmin.cli.formatter import CLIFormatter
from rmadmin.config import load_settings
from rmadmin.core.commands import Outcome
from rmadmin.errors import ConfigError
from rmadmin.log import configure_logging

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rmadmin",
        description="Resource manager administration commands",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s refresh-queues\n"
            "  %(prog)s add-labels gpu,ssd\n"
            "  %(prog)s set-node-to-labels 'node1:gpu,ssd;node2:gpu'\n"
            "  %(prog)s load-labels-config-file node-labels.yaml\n"
            "  %(prog)s help\n"
        ),
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Settings file (default: $RMADMIN_CONFIG or config/rmadmin.yaml)",
    )
    parser.add_argument(
        "--admin-url",
        default=None,
        help="Admin service base URL (default: $RMADMIN_ADMIN_URL or settings file)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="HTTP request timeout in seconds",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Command and its arguments (see 'help')",
    )
    return parser


async def run(argv: Sequence[str], config_path: Optional[str] = None, **overrides) -> int:
    """Load settings and run one command line. Returns the exit status."""
    try:
        settings = load_settings(config_path, **overrides)
    except ConfigError as exc:
        CLIFormatter().error("rmadmin", str(exc))
        return Outcome.FAILURE

    configure_logging(settings.debug)
    dispatcher = CommandDispatcher(settings)
    return await dispatcher.run(list(argv))


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(args.debug)

    status = asyncio.run(
        run(
            args.command,
            config_path=args.config,
            admin_url=args.admin_url,
            timeout=args.timeout,
            debug=True if args.debug else None,
        )
    )
    sys.exit(status)


if __name__ == "__main__":
    main()
