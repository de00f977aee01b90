"""Common interface of standalone node-label stores."""

from abc import ABC, abstractmethod
from typing import ClassVar, Mapping

from rmadmin.errors import LocalStoreError


class LabelStore(ABC):
    """A node-label manager usable without the live resource manager.

    Lifecycle is ``init() -> start() -> ... -> stop()``. ``close()`` is the
    idempotent teardown used by callers; it stops the store if it was
    started and never fails on a store that never got that far.

    Subclasses set ``supports_recovery`` to True when their state survives
    the process, i.e. a restarted resource manager can reconcile from it.
    """

    supports_recovery: ClassVar[bool] = False

    def __init__(self) -> None:
        self._labels: set[str] = set()
        self._node_to_labels: dict[str, set[str]] = {}
        self._started = False
        self._closed = False

    # ── lifecycle ────────────────────────────────────────────────────

    async def init(self) -> None:
        """Prepare resources; the default does nothing."""

    async def start(self) -> None:
        self._started = True

    async def stop(self) -> None:
        self._started = False

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.is_started:
            await self.stop()

    @property
    def is_started(self) -> bool:
        return self._started

    def _ensure_started(self) -> None:
        if not self.is_started:
            raise LocalStoreError(f"{type(self).__name__} is not started")

    # ── persistence ──────────────────────────────────────────────────

    @abstractmethod
    async def persist_adding_labels(self, labels: set[str]) -> None:
        """Add labels to the cluster label set."""

    @abstractmethod
    async def persist_removing_labels(self, labels: set[str]) -> None:
        """Remove labels from the cluster label set."""

    @abstractmethod
    async def persist_node_to_labels_changes(self, changes: Mapping[str, set[str]]) -> None:
        """Replace the label assignment of every node in ``changes``."""

    async def get_labels(self) -> set[str]:
        self._ensure_started()
        return set(self._labels)

    async def get_nodes_to_labels(self) -> dict[str, set[str]]:
        self._ensure_started()
        return {node: set(labels) for node, labels in self._node_to_labels.items()}

    # ── in-memory state transitions ──────────────────────────────────

    def _apply_add(self, labels: set[str]) -> None:
        self._labels |= set(labels)

    def _apply_remove(self, labels: set[str]) -> None:
        self._labels -= set(labels)

    def _apply_node_changes(self, changes: Mapping[str, set[str]]) -> None:
        for node, labels in changes.items():
            if labels:
                self._node_to_labels[node] = set(labels)
            else:
                self._node_to_labels.pop(node, None)
