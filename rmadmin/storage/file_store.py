"""File-backed node-label store used when the resource manager is down.

State lives in a store directory as two files:

  nodelabel.mirror   JSON snapshot: {"labels": [...], "node_to_labels": {...}}
  nodelabel.editlog  one JSON edit record per line, appended after the snapshot

On start the snapshot is loaded, the edit log replayed on top of it, a fresh
snapshot written (temp file + rename) and the log truncated. The resource
manager reads the same directory when it starts, so edits recorded here
reach the cluster on its next restart.
"""

import json
import os
from pathlib import Path
from typing import IO, Any, Mapping, Optional

import structlog

from rmadmin.errors import LocalStoreError
from rmadmin.labels.codec import sorted_labels
from rmadmin.storage.base import LabelStore

logger = structlog.get_logger(__name__)

MIRROR_FILE = "nodelabel.mirror"
EDITLOG_FILE = "nodelabel.editlog"

OP_ADD_LABELS = "add_labels"
OP_REMOVE_LABELS = "remove_labels"
OP_NODE_TO_LABELS = "node_to_labels"


class FileSystemLabelStore(LabelStore):
    """Durable label store rooted at a local directory.

    Attributes:
        root_dir: Directory holding the mirror and edit log.
    """

    supports_recovery = True

    def __init__(self, root_dir: str) -> None:
        super().__init__()
        self.root_dir = Path(root_dir).expanduser()
        self._editlog: Optional[IO[str]] = None

    @property
    def mirror_path(self) -> Path:
        return self.root_dir / MIRROR_FILE

    @property
    def editlog_path(self) -> Path:
        return self.root_dir / EDITLOG_FILE

    # ── lifecycle ────────────────────────────────────────────────────

    async def init(self) -> None:
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise LocalStoreError(f"Cannot create label store at {self.root_dir}: {exc}") from exc

    async def start(self) -> None:
        """Recover state from disk and open the edit log for appending."""
        replayed = self._recover()
        try:
            self._write_mirror()
            self._editlog = open(self.editlog_path, "w", encoding="utf-8")
        except OSError as exc:
            raise LocalStoreError(f"Cannot open label store at {self.root_dir}: {exc}") from exc
        await super().start()
        await logger.ainfo(
            "label_store_recovered",
            root_dir=str(self.root_dir),
            labels=len(self._labels),
            nodes=len(self._node_to_labels),
            replayed_edits=replayed,
        )

    async def stop(self) -> None:
        if self._editlog is not None:
            self._editlog.close()
            self._editlog = None
        await super().stop()
        await logger.adebug("label_store_stopped", root_dir=str(self.root_dir))

    # ── persistence ──────────────────────────────────────────────────

    async def persist_adding_labels(self, labels: set[str]) -> None:
        self._ensure_started()
        self._append_edit({"op": OP_ADD_LABELS, "labels": sorted_labels(labels)})
        self._apply_add(labels)

    async def persist_removing_labels(self, labels: set[str]) -> None:
        self._ensure_started()
        self._append_edit({"op": OP_REMOVE_LABELS, "labels": sorted_labels(labels)})
        self._apply_remove(labels)

    async def persist_node_to_labels_changes(self, changes: Mapping[str, set[str]]) -> None:
        self._ensure_started()
        self._append_edit(
            {
                "op": OP_NODE_TO_LABELS,
                "changes": {node: sorted_labels(labels) for node, labels in changes.items()},
            }
        )
        self._apply_node_changes(changes)

    # ── disk I/O ─────────────────────────────────────────────────────

    def _append_edit(self, record: dict[str, Any]) -> None:
        if self._editlog is None:
            raise LocalStoreError("Edit log is not open")
        try:
            self._editlog.write(json.dumps(record, sort_keys=True) + "\n")
            self._editlog.flush()
            os.fsync(self._editlog.fileno())
        except OSError as exc:
            raise LocalStoreError(f"Failed to write edit log {self.editlog_path}: {exc}") from exc

    def _recover(self) -> int:
        """Load the mirror and replay the edit log. Returns the edit count."""
        self._labels = set()
        self._node_to_labels = {}

        if self.mirror_path.exists():
            try:
                with open(self.mirror_path, "r", encoding="utf-8") as f:
                    snapshot = json.load(f)
            except (OSError, json.JSONDecodeError) as exc:
                raise LocalStoreError(f"Corrupt label mirror {self.mirror_path}: {exc}") from exc
            if not isinstance(snapshot, dict):
                raise LocalStoreError(
                    f"Corrupt label mirror {self.mirror_path}: expected an object, "
                    f"got {type(snapshot).__name__}"
                )
            self._labels = set(snapshot.get("labels", []))
            self._node_to_labels = {
                node: set(labels) for node, labels in snapshot.get("node_to_labels", {}).items()
            }

        if not self.editlog_path.exists():
            return 0

        try:
            with open(self.editlog_path, "r", encoding="utf-8") as f:
                lines = [line for line in f.read().splitlines() if line.strip()]
        except OSError as exc:
            raise LocalStoreError(f"Cannot read edit log {self.editlog_path}: {exc}") from exc

        replayed = 0
        for index, line in enumerate(lines):
            try:
                record = json.loads(line)
            except json.JSONDecodeError as exc:
                # a torn final record is an interrupted write, anything else is corruption
                if index == len(lines) - 1:
                    logger.warning("label_store_truncated_edit", path=str(self.editlog_path))
                    break
                raise LocalStoreError(
                    f"Corrupt edit log {self.editlog_path} at record {index + 1}: {exc}"
                ) from exc
            self._replay(record)
            replayed += 1
        return replayed

    def _replay(self, record: dict[str, Any]) -> None:
        op = record.get("op")
        if op == OP_ADD_LABELS:
            self._apply_add(set(record.get("labels", [])))
        elif op == OP_REMOVE_LABELS:
            self._apply_remove(set(record.get("labels", [])))
        elif op == OP_NODE_TO_LABELS:
            self._apply_node_changes(
                {node: set(labels) for node, labels in record.get("changes", {}).items()}
            )
        else:
            raise LocalStoreError(f"Unknown edit log operation: {op!r}")

    def _write_mirror(self) -> None:
        snapshot = {
            "labels": sorted_labels(self._labels),
            "node_to_labels": {
                node: sorted_labels(labels) for node, labels in sorted(self._node_to_labels.items())
            },
        }
        # temp file, then rename over the mirror
        temp_path = self.mirror_path.with_suffix(".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        temp_path.replace(self.mirror_path)
