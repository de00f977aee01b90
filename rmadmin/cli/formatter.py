"""Terminal output for rmadmin commands.

Command results go to stdout, diagnostics and usage to stderr. Markup and
highlighting are off so labels such as ``[gpu]`` print exactly as stored.
"""

from typing import Iterable, Mapping

from rich.console import Console

from rmadmin.labels.codec import LABEL_SEPARATOR, format_labels, sorted_node_to_labels


class CLIFormatter:
    """Handles all terminal output formatting."""

    def __init__(self) -> None:
        options = dict(soft_wrap=True, highlight=False, markup=False, emoji=False)
        self.console = Console(**options)
        self.err_console = Console(stderr=True, **options)

    # ── command results ──────────────────────────────────────────────

    def print_labels(self, labels: Iterable[str]) -> None:
        """``Labels=a,b,c``"""
        self.console.print(f"Labels={format_labels(labels)}")

    def print_node_to_labels(self, node_to_labels: Mapping[str, Iterable[str]]) -> None:
        """One ``Host=<node>, Labels=[a,b]`` line per node, sorted."""
        for node, labels in sorted_node_to_labels(node_to_labels):
            self.console.print(f"Host={node}, Labels=[{LABEL_SEPARATOR.join(labels)}]")

    def print_groups(self, user: str, groups: Iterable[str]) -> None:
        """``user: group1 group2``"""
        self.console.print(f"{user}:" + "".join(f" {group}" for group in groups))

    def print_help(self, text: str) -> None:
        self.console.print(text)

    # ── diagnostics ──────────────────────────────────────────────────

    def usage(self, text: str) -> None:
        self.err_console.print(text)

    def error(self, command: str, message: str) -> None:
        """Single-line ``<command>: <message>`` diagnostic."""
        first = (message or "").strip().splitlines()
        self.err_console.print(f"{command}: {first[0] if first else 'failed'}", style="red")

    def warning(self, message: str) -> None:
        self.err_console.print(message, style="yellow")
