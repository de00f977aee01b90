"""In-memory label store.

Mirrors what a resource manager without durable label storage keeps: state
lives only in the process. It cannot serve as a standalone fallback because
nothing it records would reach the cluster after the process exits.
"""

from typing import Mapping

import structlog

from rmadmin.storage.base import LabelStore

logger = structlog.get_logger(__name__)


class InMemoryLabelStore(LabelStore):
    """Process-local label store with no recovery."""

    supports_recovery = False

    async def start(self) -> None:
        await super().start()
        await logger.adebug("memory_label_store_started")

    async def persist_adding_labels(self, labels: set[str]) -> None:
        self._ensure_started()
        self._apply_add(labels)

    async def persist_removing_labels(self, labels: set[str]) -> None:
        self._ensure_started()
        self._apply_remove(labels)

    async def persist_node_to_labels_changes(self, changes: Mapping[str, set[str]]) -> None:
        self._ensure_started()
        self._apply_node_changes(changes)
