"""Label text codec and labels-file reader."""

from rmadmin.labels.codec import (
    format_labels,
    normalize_label,
    parse_labels,
    parse_node_to_labels,
    sorted_node_to_labels,
)
from rmadmin.labels.config_file import LabelsConfig, load_labels_config

__all__ = [
    "format_labels",
    "normalize_label",
    "parse_labels",
    "parse_node_to_labels",
    "sorted_node_to_labels",
    "LabelsConfig",
    "load_labels_config",
]
