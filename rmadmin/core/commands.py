"""Command vocabulary, request payloads and typed results."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from rmadmin.errors import AdminError


class CommandKind(str, Enum):
    """Administrative commands accepted on the command line.

    The value is the command token.
    """

    REFRESH_QUEUES = "refresh-queues"
    REFRESH_NODES = "refresh-nodes"
    REFRESH_USER_GROUPS = "refresh-user-groups-mappings"
    REFRESH_SUPERUSER_GROUPS = "refresh-superuser-groups-mappings"
    REFRESH_ADMIN_ACLS = "refresh-admin-acls"
    REFRESH_SERVICE_ACLS = "refresh-service-acls"
    GET_GROUPS = "get-groups"
    ADD_LABELS = "add-labels"
    REMOVE_LABELS = "remove-labels"
    SET_NODE_TO_LABELS = "set-node-to-labels"
    GET_NODE_TO_LABELS = "get-node-to-labels"
    GET_LABELS = "get-labels"
    LOAD_LABELS_CONFIG_FILE = "load-labels-config-file"

    @classmethod
    def from_token(cls, token: str) -> Optional["CommandKind"]:
        try:
            return cls(token)
        except ValueError:
            return None


REFRESH_COMMANDS = frozenset(
    {
        CommandKind.REFRESH_QUEUES,
        CommandKind.REFRESH_NODES,
        CommandKind.REFRESH_USER_GROUPS,
        CommandKind.REFRESH_SUPERUSER_GROUPS,
        CommandKind.REFRESH_ADMIN_ACLS,
        CommandKind.REFRESH_SERVICE_ACLS,
    }
)


class RemoteCall(str, Enum):
    """Requests understood by the admin service."""

    REFRESH_QUEUES = "refresh_queues"
    REFRESH_NODES = "refresh_nodes"
    REFRESH_USER_TO_GROUPS_MAPPINGS = "refresh_user_to_groups_mappings"
    REFRESH_SUPERUSER_GROUPS_CONFIGURATION = "refresh_superuser_groups_configuration"
    REFRESH_ADMIN_ACLS = "refresh_admin_acls"
    REFRESH_SERVICE_ACLS = "refresh_service_acls"
    GET_GROUPS_FOR_USER = "get_groups_for_user"
    ADD_LABELS = "add_labels"
    REMOVE_LABELS = "remove_labels"
    SET_NODE_TO_LABELS = "set_node_to_labels"
    GET_NODE_TO_LABELS = "get_node_to_labels"
    GET_LABELS = "get_labels"


REFRESH_CALLS: dict[CommandKind, RemoteCall] = {
    CommandKind.REFRESH_QUEUES: RemoteCall.REFRESH_QUEUES,
    CommandKind.REFRESH_NODES: RemoteCall.REFRESH_NODES,
    CommandKind.REFRESH_USER_GROUPS: RemoteCall.REFRESH_USER_TO_GROUPS_MAPPINGS,
    CommandKind.REFRESH_SUPERUSER_GROUPS: RemoteCall.REFRESH_SUPERUSER_GROUPS_CONFIGURATION,
    CommandKind.REFRESH_ADMIN_ACLS: RemoteCall.REFRESH_ADMIN_ACLS,
    CommandKind.REFRESH_SERVICE_ACLS: RemoteCall.REFRESH_SERVICE_ACLS,
}


class AdminCommand(BaseModel):
    """One parsed administrative command with at most one payload."""

    kind: CommandKind = Field(..., description="Command to run")
    labels: Optional[set[str]] = Field(default=None, description="Label set payload")
    node_to_labels: Optional[dict[str, set[str]]] = Field(
        default=None, description="Node-to-labels payload"
    )
    usernames: list[str] = Field(default_factory=list, description="get-groups users")
    path: Optional[str] = Field(default=None, description="Labels file path")


@dataclass(frozen=True)
class Outcome:
    """Exit status of a command plus an optional diagnostic."""

    status: int
    message: Optional[str] = None

    SUCCESS = 0
    FAILURE = -1

    @classmethod
    def success(cls) -> "Outcome":
        return cls(cls.SUCCESS)

    @classmethod
    def failure(cls, message: Optional[str] = None) -> "Outcome":
        return cls(cls.FAILURE, message)

    @property
    def ok(self) -> bool:
        return self.status == self.SUCCESS


class RemoteStatus(str, Enum):
    OK = "ok"
    CONNECTION_FAILED = "connection_failed"
    FAILED = "failed"


@dataclass(frozen=True)
class RemoteResult:
    """Result of a single remote call.

    ``CONNECTION_FAILED`` means the request never reached the service and is
    the only status that allows applying the change elsewhere.
    """

    status: RemoteStatus
    value: Any = None
    error: Optional[AdminError] = None

    @classmethod
    def ok(cls, value: Any = None) -> "RemoteResult":
        return cls(RemoteStatus.OK, value=value)

    @classmethod
    def connection_failed(cls, error: AdminError) -> "RemoteResult":
        return cls(RemoteStatus.CONNECTION_FAILED, error=error)

    @classmethod
    def failed(cls, error: AdminError) -> "RemoteResult":
        return cls(RemoteStatus.FAILED, error=error)

    def unwrap(self) -> Any:
        """Return the value, or raise the carried error."""
        if self.status == RemoteStatus.OK:
            return self.value
        if self.error is None:
            raise AdminError(f"Remote call ended with status {self.status.value} and no error")
        raise self.error
