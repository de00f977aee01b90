"""Parsing and formatting of label lists and node-to-labels maps.

Two text forms are accepted on the command line:

    add-labels / remove-labels    gpu,ssd,large-mem
    set-node-to-labels            node1:gpu,ssd;node2:large-mem

Plain label lists are kept verbatim. Node-to-labels text is normalized
(trimmed, lower-cased) because it is compared against node reports that are
always lower case.
"""

from typing import Iterable, Mapping

from rmadmin.errors import FormatError

LABEL_SEPARATOR = ","
CLAUSE_SEPARATOR = ";"
NODE_SEPARATOR = ":"


def normalize_label(label: str) -> str:
    return label.strip().lower()


def parse_labels(text: str) -> set[str]:
    """Split a comma-separated label list.

    Tokens are not trimmed or lower-cased; only blank tokens are dropped.
    """
    return {token for token in text.split(LABEL_SEPARATOR) if token.strip()}


def parse_node_to_labels(text: str) -> dict[str, set[str]]:
    """Parse ``node1:l1,l2;node2:l3`` into a node -> labels mapping.

    Only the first two ``:``-separated parts of a clause are used, so
    ``n1:a:b`` assigns just ``a``. A later clause for the same node replaces
    the earlier one. Trailing ``;`` are ignored; any other empty clause,
    including empty text, is malformed.

    Raises:
        FormatError: If a clause has no ``:`` or an empty node name.
    """
    mapping: dict[str, set[str]] = {}

    clauses = text.split(CLAUSE_SEPARATOR)
    while len(clauses) > 1 and clauses[-1] == "":
        clauses.pop()

    for clause in clauses:
        if NODE_SEPARATOR not in clause:
            raise FormatError("Format is incorrect, should be node:label1,label2...")

        parts = clause.split(NODE_SEPARATOR)
        node = parts[0].strip()
        if not node:
            raise FormatError("node name cannot be empty")

        labels: set[str] = set()
        if len(parts) > 1:
            for label in parts[1].split(LABEL_SEPARATOR):
                if label.strip():
                    labels.add(normalize_label(label))
        mapping[node] = labels

    return mapping


def normalize_labels(labels: Iterable[str]) -> set[str]:
    return {normalize_label(label) for label in labels if label.strip()}


def sorted_labels(labels: Iterable[str]) -> list[str]:
    return sorted(labels)


def format_labels(labels: Iterable[str]) -> str:
    """Serialize labels as a sorted comma-separated list."""
    return LABEL_SEPARATOR.join(sorted_labels(labels))


def sorted_node_to_labels(mapping: Mapping[str, Iterable[str]]) -> list[tuple[str, list[str]]]:
    """Nodes in lexicographic order, each with its labels sorted."""
    return [(node, sorted_labels(mapping[node])) for node in sorted(mapping)]

