"""Usage and help text for rmadmin commands."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

PROG = "rmadmin"


@dataclass(frozen=True)
class UsageInfo:
    args: str
    help: str


ADMIN_USAGE: Mapping[str, UsageInfo] = MappingProxyType(
    {
        "refresh-queues": UsageInfo(
            "",
            "Reload the queues' acls, states and scheduler specific properties.\n"
            "\t\tResourceManager will reload the mapred-queues configuration file.",
        ),
        "refresh-nodes": UsageInfo("", "Refresh the hosts information at the ResourceManager."),
        "refresh-superuser-groups-mappings": UsageInfo("", "Refresh superuser proxy groups mappings"),
        "refresh-user-groups-mappings": UsageInfo("", "Refresh user-to-groups mappings"),
        "refresh-admin-acls": UsageInfo("", "Refresh acls for administration of ResourceManager"),
        "refresh-service-acls": UsageInfo(
            "",
            "Reload the service-level authorization policy file.\n"
            "\t\tResourceManager will reload the authorization policy file.",
        ),
        "get-groups": UsageInfo("[username]", "Get the groups which given user belongs to."),
        "help": UsageInfo(
            "[cmd]", "Displays help for the given command or all commands if none is specified."
        ),
        "add-labels": UsageInfo("[labels splitted by ',']", "Add labels"),
        "remove-labels": UsageInfo("[labels splitted by ',']", "Remove labels"),
        "set-node-to-labels": UsageInfo(
            "[node1:label1,label2,label3;node2:label2,label3]", "set node to labels"
        ),
        "get-node-to-labels": UsageInfo("", "Get node to label mappings"),
        "get-labels": UsageInfo("", "Get labels in the cluster"),
        "load-labels-config-file": UsageInfo(
            "[path/to/node-labels.yaml]", "Load labels config file"
        ),
    }
)

# Handled by the HA admin tool; listed here so usage stays complete.
HA_USAGE: Mapping[str, UsageInfo] = MappingProxyType(
    {
        "transition-to-active": UsageInfo(
            "<serviceId>", "Transitions the service into Active state"
        ),
        "transition-to-standby": UsageInfo(
            "<serviceId>", "Transitions the service into Standby state"
        ),
        "failover": UsageInfo(
            "[--forcefence] [--forceactive] <serviceId> <serviceId>",
            "Failover from the first service to the second.",
        ),
        "get-service-state": UsageInfo(
            "<serviceId>", "Returns the state of the service"
        ),
        "check-health": UsageInfo(
            "<serviceId>",
            "Requests that the service perform a health check.\n"
            "\t\tThe command exits with a non-zero code if the check fails.",
        ),
    }
)


def is_known(cmd: str) -> bool:
    return cmd in ADMIN_USAGE or cmd in HA_USAGE


def _lookup(cmd: str) -> tuple[UsageInfo, bool]:
    if cmd in ADMIN_USAGE:
        return ADMIN_USAGE[cmd], False
    return HA_USAGE[cmd], True


def _signature(cmd: str, info: UsageInfo) -> str:
    return f"{cmd} {info.args}" if info.args else cmd


def build_usage(cmd: str, ha_enabled: bool) -> str:
    """Usage for one command, or the command list when ``cmd`` is unknown."""
    if is_known(cmd):
        info, is_ha = _lookup(cmd)
        lines = [f"Usage: {PROG} [{_signature(cmd, info)}]"]
        if is_ha:
            lines.append(f"{cmd} can only be used when RM HA is enabled")
        return "\n".join(lines)

    lines = [f"Usage: {PROG}"]
    lines += [f"   {_signature(key, info)}" for key, info in ADMIN_USAGE.items()]
    if ha_enabled:
        lines += [f"   {_signature(key, info)}" for key, info in HA_USAGE.items()]
    return "\n".join(lines)


def build_help(ha_enabled: bool) -> str:
    """Full help: syntax summary followed by a description of each command."""
    commands = dict(ADMIN_USAGE)
    if ha_enabled:
        commands.update(HA_USAGE)

    syntax = " ".join(f"[{_signature(key, info)}]" for key, info in commands.items())
    lines = [
        f"{PROG} is the command to execute resource manager administrative commands.",
        "The full syntax is:",
        "",
        f"{PROG} {syntax}",
        "",
    ]
    lines += [f"   {_signature(key, info)}: {info.help}" for key, info in commands.items()]
    return "\n".join(lines)
