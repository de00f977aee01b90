"""Reader for node-label configuration files.

A labels file lists the cluster labels and the per-node assignments::

    labels: [gpu, ssd]
    nodes:
      host-1: [gpu]
      host-2: "gpu, ssd"

Both lists and comma-separated strings are accepted. JSON is valid YAML,
so JSON documents of the same shape load too.
"""

from pathlib import Path
from typing import Any, Union

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from rmadmin.errors import FormatError
from rmadmin.labels.codec import LABEL_SEPARATOR, normalize_labels

logger = structlog.get_logger(__name__)


def _as_label_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return value.split(LABEL_SEPARATOR)
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value]
    raise ValueError(f"expected a list or a comma-separated string, got {type(value).__name__}")


class LabelsConfig(BaseModel):
    """Labels and node assignments read from a labels file."""

    labels: set[str] = Field(default_factory=set, description="Cluster label set")
    node_to_labels: dict[str, set[str]] = Field(
        default_factory=dict,
        alias="nodes",
        description="Per-node label assignments",
    )

    model_config = {"populate_by_name": True}

    @field_validator("labels", mode="before")
    @classmethod
    def _parse_labels(cls, value: Any) -> set[str]:
        return normalize_labels(_as_label_list(value))

    @field_validator("node_to_labels", mode="before")
    @classmethod
    def _parse_nodes(cls, value: Any) -> dict[str, set[str]]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValueError("nodes must be a mapping of node name to labels")
        nodes: dict[str, set[str]] = {}
        for node, labels in value.items():
            name = str(node).strip()
            if not name:
                raise ValueError("node name cannot be empty")
            nodes[name] = normalize_labels(_as_label_list(labels))
        return nodes


def load_labels_config(path: Union[str, Path]) -> LabelsConfig:
    """Load and validate a labels file.

    Raises:
        FormatError: If the path is missing, is a directory, or does not
            hold a valid labels document.
    """
    path = Path(path)
    if not path.exists() or path.is_dir():
        raise FormatError(f"ConfigFile={path}, doesn't exist or it's a directory")

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise FormatError(f"Cannot read labels file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise FormatError(f"Labels file {path} must contain a mapping")

    try:
        config = LabelsConfig.model_validate(data)
    except ValidationError as exc:
        raise FormatError(f"Invalid labels file {path}: {exc}") from exc

    logger.debug(
        "labels_config_loaded",
        path=str(path),
        labels=len(config.labels),
        nodes=len(config.node_to_labels),
    )
    return config
