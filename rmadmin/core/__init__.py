"""Command model and the dual-path executor (rmadmin.core.executor)."""

from rmadmin.core.commands import (
    AdminCommand,
    CommandKind,
    Outcome,
    RemoteCall,
    RemoteResult,
    RemoteStatus,
)

__all__ = [
    "AdminCommand",
    "CommandKind",
    "Outcome",
    "RemoteCall",
    "RemoteResult",
    "RemoteStatus",
]
