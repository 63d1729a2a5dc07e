"""
Tree Payload Loader

Builds a validated ThoughtTree from an external payload. Three payload
shapes are accepted and normalized to the hierarchical form first:

- Hierarchical: ``{id, text, type?, status?, rejectionReason?, children: [...]}``
- Node/edge: ``{nodes: [...], edges: [{parent, child}, ...]}``
- Flat array: ``[{id, text, ..., parentId?}, ...]``

Any structural problem fails fast with a MalformedTreeError naming the
offending ids. No partial tree is ever returned.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import yaml

from .model import NodeId, NodeKind, NodeStatus, ThoughtNode, ThoughtTree

logger = logging.getLogger(__name__)

# Keys accepted for the same field in the different payload dialects
REJECTION_REASON_KEYS = ("rejectionReason", "rejection_reason")
PARENT_ID_KEYS = ("parentId", "parent_id")

_KINDS = {"input": NodeKind.INPUT, "output": NodeKind.OUTPUT, "thought": NodeKind.THOUGHT}
_STATUSES = {s.value: s for s in NodeStatus}


class MalformedTreeError(ValueError):
    """The payload does not describe a single connected, acyclic tree."""

    def __init__(self, message: str, node_ids: Iterable[NodeId] = ()):
        self.node_ids = list(node_ids)
        if self.node_ids:
            message = f"{message}: {', '.join(repr(i) for i in self.node_ids)}"
        super().__init__(message)


def _first_key(entry: Dict, keys: Sequence[str]) -> Any:
    for key in keys:
        if entry.get(key) is not None:
            return entry[key]
    return None


def _require_id(entry: Any, position: str) -> NodeId:
    if not isinstance(entry, dict):
        raise MalformedTreeError(f"Node at {position} is not an object")
    node_id = entry.get("id")
    if node_id is None or node_id == "":
        raise MalformedTreeError(f"Node at {position} has no id")
    if not isinstance(node_id, (str, int)) or isinstance(node_id, bool):
        raise MalformedTreeError(f"Node at {position} has an invalid id type", [node_id])
    return node_id


def _require_ref(ref: Any, position: str) -> NodeId:
    """A parent/child reference must be a str or int id."""
    if not isinstance(ref, (str, int)) or isinstance(ref, bool):
        raise MalformedTreeError(
            f"{position} has an invalid reference of type {type(ref).__name__}")
    return ref


def _find_duplicates(ids: Iterable[NodeId]) -> List[NodeId]:
    seen = set()
    duplicates = []
    for node_id in ids:
        if node_id in seen and node_id not in duplicates:
            duplicates.append(node_id)
        seen.add(node_id)
    return duplicates


def _strip_links(entry: Dict) -> Dict:
    node = {k: v for k, v in entry.items() if k not in PARENT_ID_KEYS}
    node["children"] = []
    return node


def _check_reachable(by_id: Dict[NodeId, Dict], root_id: NodeId):
    """Every node must hang off the root; leftovers can only sit on a cycle."""
    reached = set()
    stack = [root_id]
    while stack:
        node_id = stack.pop()
        reached.add(node_id)
        stack.extend(child["id"] for child in by_id[node_id]["children"])
    unreachable = [node_id for node_id in by_id if node_id not in reached]
    if unreachable:
        raise MalformedTreeError("Cycle detected; nodes unreachable from root", unreachable)


def convert_from_node_edge_format(payload: Dict) -> Dict:
    """Normalize ``{nodes, edges}`` into a hierarchical payload."""
    nodes = payload.get("nodes")
    edges = payload.get("edges")
    if not isinstance(nodes, list) or not isinstance(edges, list):
        raise MalformedTreeError("Node/edge payload needs 'nodes' and 'edges' lists")
    if not nodes:
        raise MalformedTreeError("Tree has no nodes")

    ids = [_require_id(entry, f"nodes[{i}]") for i, entry in enumerate(nodes)]
    duplicates = _find_duplicates(ids)
    if duplicates:
        raise MalformedTreeError("Duplicate node id", duplicates)

    by_id = {node_id: _strip_links(entry) for node_id, entry in zip(ids, nodes)}
    parent_of: Dict[NodeId, NodeId] = {}

    for i, edge in enumerate(edges):
        if not isinstance(edge, dict):
            raise MalformedTreeError(f"Edge at edges[{i}] is not an object")
        parent_id = _require_ref(edge.get("parent"), f"Edge at edges[{i}] parent")
        child_id = _require_ref(edge.get("child"), f"Edge at edges[{i}] child")
        missing = [ref for ref in (parent_id, child_id) if ref not in by_id]
        if missing:
            raise MalformedTreeError(f"Edge at edges[{i}] references unknown node", missing)
        if child_id in parent_of:
            raise MalformedTreeError("Node has more than one parent", [child_id])
        parent_of[child_id] = parent_id
        by_id[parent_id]["children"].append(by_id[child_id])

    roots = [node_id for node_id in ids if node_id not in parent_of]
    if len(roots) != 1:
        if not roots:
            raise MalformedTreeError("Tree has no root; every node is a child", ids)
        raise MalformedTreeError("Tree has multiple roots", roots)

    _check_reachable(by_id, roots[0])
    return by_id[roots[0]]


def convert_from_flat_array(payload: List) -> Dict:
    """Normalize a flat list with parent pointers into a hierarchical payload."""
    if not payload:
        raise MalformedTreeError("Tree has no nodes")

    ids = [_require_id(entry, f"[{i}]") for i, entry in enumerate(payload)]
    duplicates = _find_duplicates(ids)
    if duplicates:
        raise MalformedTreeError("Duplicate node id", duplicates)

    by_id = {node_id: _strip_links(entry) for node_id, entry in zip(ids, payload)}
    roots = []

    for node_id, entry in zip(ids, payload):
        parent_id = _first_key(entry, PARENT_ID_KEYS)
        if parent_id is None:
            roots.append(node_id)
            continue
        _require_ref(parent_id, f"Node {node_id!r} parentId")
        if parent_id not in by_id:
            raise MalformedTreeError(
                f"Node {node_id!r} references unknown parent", [parent_id])
        by_id[parent_id]["children"].append(by_id[node_id])

    if len(roots) != 1:
        if not roots:
            raise MalformedTreeError("Tree has no root; every node has a parent", ids)
        raise MalformedTreeError("Tree has multiple roots", roots)

    _check_reachable(by_id, roots[0])
    return by_id[roots[0]]


def normalize_payload(payload: Union[Dict, List]) -> Dict:
    """Convert any accepted payload shape to the hierarchical form."""
    if isinstance(payload, list):
        return convert_from_flat_array(payload)
    if isinstance(payload, dict):
        if "nodes" in payload and "edges" in payload:
            return convert_from_node_edge_format(payload)
        return payload
    raise MalformedTreeError(f"Unsupported payload type: {type(payload).__name__}")


def _build_node(entry: Dict, node_id: NodeId, parent_id: Optional[NodeId]) -> ThoughtNode:
    kind_value = entry.get("type") or "thought"
    kind = _KINDS.get(kind_value) if isinstance(kind_value, str) else None
    if kind is None:
        raise MalformedTreeError(f"Unknown node type {kind_value!r}", [node_id])

    status_value = entry.get("status") or "neutral"
    status = _STATUSES.get(status_value) if isinstance(status_value, str) else None
    if status is None:
        raise MalformedTreeError(f"Unknown node status {status_value!r}", [node_id])

    text = entry.get("text")
    return ThoughtNode(
        id=node_id,
        text="" if text is None else str(text),
        kind=kind,
        status=status,
        rejection_reason=_first_key(entry, REJECTION_REASON_KEYS),
        deleted=bool(entry.get("deleted", False)),
        parent=parent_id,
    )


def build_tree(payload: Union[Dict, List]) -> ThoughtTree:
    """
    Build a ThoughtTree from any accepted payload shape.

    Raises:
        MalformedTreeError: if ids are missing or duplicated, the structure
            has zero/multiple roots or a cycle, or a reference is unresolvable.
    """
    root_entry = normalize_payload(payload)
    root_id = _require_id(root_entry, "root")

    nodes: Dict[NodeId, ThoughtNode] = {}
    # (entry, parent id, path for diagnostics)
    stack = [(root_entry, None, "root")]
    while stack:
        entry, parent_id, position = stack.pop()
        node_id = _require_id(entry, position)
        if node_id in nodes:
            raise MalformedTreeError("Duplicate node id", [node_id])

        node = _build_node(entry, node_id, parent_id)
        nodes[node_id] = node
        if parent_id is not None:
            nodes[parent_id].children.append(node_id)

        children = entry.get("children") or []
        if not isinstance(children, list):
            raise MalformedTreeError("Node children must be a list", [node_id])
        for index in range(len(children) - 1, -1, -1):
            stack.append((children[index], node_id, f"{node_id!r}.children[{index}]"))

    tree = ThoughtTree(nodes, root_id)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Built tree: nodes=%d max_depth=%d root=%r",
                     len(tree), tree.max_depth, root_id)
    return tree


def from_text_array(
    texts: Sequence[str],
    parent_indices: Sequence[int],
    kinds: Sequence[Optional[str]] = (),
    statuses: Sequence[Optional[str]] = (),
    rejection_reasons: Sequence[Optional[str]] = (),
) -> ThoughtTree:
    """
    Build a tree from parallel lists.

    Node ids are ``1..n``. ``parent_indices`` are 0-based, ``-1`` marks the
    root. The first node defaults to an ``input`` node; rejected nodes are
    pre-marked as deleted.
    """
    if len(parent_indices) != len(texts):
        raise MalformedTreeError(
            f"Expected {len(texts)} parent indices, got {len(parent_indices)}")

    def pick(values: Sequence, index: int):
        return values[index] if index < len(values) else None

    entries = []
    for index, text in enumerate(texts):
        parent_index = parent_indices[index]
        if parent_index >= len(texts):
            raise MalformedTreeError(
                f"Parent index {parent_index} out of range", [index + 1])
        status = pick(statuses, index) or "neutral"
        entries.append({
            "id": index + 1,
            "text": text,
            "parentId": parent_index + 1 if parent_index >= 0 else None,
            "type": pick(kinds, index) or ("input" if index == 0 else "thought"),
            "status": status,
            "deleted": status == "rejected",
            "rejectionReason": pick(rejection_reasons, index),
        })
    return build_tree(entries)


def load_tree_file(path: Union[str, Path]) -> ThoughtTree:
    """Load a payload from a ``.json`` or ``.yaml``/``.yml`` file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Tree payload not found: {path}")

    content = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        try:
            payload = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise MalformedTreeError(f"Invalid YAML in {path}: {e}") from e
    else:
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise MalformedTreeError(f"Invalid JSON in {path}: {e}") from e

    logger.debug("Loaded tree payload from %s", path)
    return build_tree(payload)
