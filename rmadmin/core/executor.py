"""Runs admin commands against the resource manager or the local label store.

Label commands try the resource manager first with connection retries
disabled. When, and only when, the manager cannot be reached, the same
change is written to the standalone label store, which the manager
reconciles from on its next start. A change the manager received and
rejected is never written locally.
"""

import getpass
from contextlib import AbstractAsyncContextManager
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

import httpx
import structlog

from rmadmin.cli.client import AdminClient, connect
from rmadmin.config import AdminSettings
from rmadmin.core.commands import REFRESH_CALLS, CommandKind, RemoteCall, RemoteStatus
from rmadmin.labels.config_file import LabelsConfig, load_labels_config
from rmadmin.storage.base import LabelStore
from rmadmin.storage.factory import open_standalone_store

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Connector = Callable[..., Awaitable[AdminClient]]
StoreOpener = Callable[[AdminSettings], AbstractAsyncContextManager]


class DualPathExecutor:
    """Executes one administrative operation per call.

    Args:
        settings: Connection and store settings.
        connector: Replacement for ``rmadmin.cli.client.connect``.
        store_opener: Replacement for ``open_standalone_store``.
        transport: httpx transport handed to the default connector.
    """

    def __init__(
        self,
        settings: AdminSettings,
        connector: Optional[Connector] = None,
        store_opener: Optional[StoreOpener] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self._connector = connector
        self._store_opener = store_opener or open_standalone_store
        self._transport = transport

    async def _connect(self, no_retry: bool) -> AdminClient:
        if self._connector is not None:
            return await self._connector(self.settings, no_retry=no_retry)
        return await connect(self.settings, no_retry=no_retry, transport=self._transport)

    async def _remote_only(self, call: RemoteCall, *args: Any) -> Any:
        client = await self._connect(no_retry=False)
        try:
            result = await client.submit(call, *args)
        finally:
            await client.close()
        return result.unwrap()

    async def _dual_path(
        self,
        call: RemoteCall,
        args: tuple,
        local_op: Callable[[LabelStore], Awaitable[T]],
    ) -> T:
        client = await self._connect(no_retry=True)
        try:
            result = await client.submit(call, *args)
        finally:
            # the remote session is released before any local store is opened
            await client.close()

        if result.status == RemoteStatus.OK:
            return result.value

        if result.status == RemoteStatus.CONNECTION_FAILED:
            await logger.ainfo(
                "using_standalone_label_store",
                call=call.value,
                url=self.settings.admin_url,
                store=self.settings.label_store.kind.value,
                path=self.settings.label_store.path,
            )
            async with self._store_opener(self.settings) as store:
                return await local_op(store)

        return result.unwrap()

    # ── remote-only commands ─────────────────────────────────────────

    async def refresh(self, kind: CommandKind) -> None:
        """Run one of the refresh-* commands."""
        await self._remote_only(REFRESH_CALLS[kind])
        await logger.ainfo("refreshed", command=kind.value)

    async def get_groups(self, usernames: Iterable[str]) -> list[tuple[str, list[str]]]:
        """Groups of each user; the current user when none are given."""
        users = list(usernames) or [getpass.getuser()]
        client = await self._connect(no_retry=False)
        try:
            groups = []
            for user in users:
                result = await client.submit(RemoteCall.GET_GROUPS_FOR_USER, user)
                groups.append((user, result.unwrap()))
        finally:
            await client.close()
        return groups

    # ── label commands ───────────────────────────────────────────────

    async def add_labels(self, labels: set[str]) -> None:
        await self._dual_path(
            RemoteCall.ADD_LABELS,
            (labels,),
            lambda store: store.persist_adding_labels(labels),
        )

    async def remove_labels(self, labels: set[str]) -> None:
        await self._dual_path(
            RemoteCall.REMOVE_LABELS,
            (labels,),
            lambda store: store.persist_removing_labels(labels),
        )

    async def set_node_to_labels(self, node_to_labels: dict[str, set[str]]) -> None:
        await self._dual_path(
            RemoteCall.SET_NODE_TO_LABELS,
            (node_to_labels,),
            lambda store: store.persist_node_to_labels_changes(node_to_labels),
        )

    async def get_node_to_labels(self) -> dict[str, set[str]]:
        return await self._dual_path(
            RemoteCall.GET_NODE_TO_LABELS,
            (),
            lambda store: store.get_nodes_to_labels(),
        )

    async def get_labels(self) -> set[str]:
        return await self._dual_path(
            RemoteCall.GET_LABELS,
            (),
            lambda store: store.get_labels(),
        )

    async def load_labels_config_file(self, path: str) -> LabelsConfig:
        """Apply a labels file: add its labels, then its node assignments.

        If adding the labels fails the node assignments are not sent.
        """
        config = load_labels_config(path)
        await self.add_labels(config.labels)
        await self.set_node_to_labels(config.node_to_labels)
        await logger.ainfo(
            "labels_config_applied",
            path=path,
            labels=len(config.labels),
            nodes=len(config.node_to_labels),
        )
        return config
