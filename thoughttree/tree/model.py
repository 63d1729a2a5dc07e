"""
Reasoning Tree Model

Holds the hierarchical "tree of thoughts" that the layout engine positions
and the traversal controller animates. Nodes live in an arena indexed by id;
parent/child links are stored as ids so traversals are explicit worklist
walks over owned references rather than recursive callbacks.

The tree is read-only after construction. Runtime highlight state is not
stored here - it is an overlay owned by the traversal controller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Set, Union

NodeId = Union[str, int]


class NodeKind(Enum):
    """Structural role of a node."""
    INPUT = "input"
    OUTPUT = "output"
    THOUGHT = "thought"


class NodeStatus(Enum):
    """Verdict attached to a node when the tree was produced."""
    PRODUCTIVE = "productive"
    REJECTED = "rejected"
    NEUTRAL = "neutral"


class HighlightState(Enum):
    """Per-node visual state derived from the traversal position."""
    NONE = "none"
    CURRENT = "current"
    VISITED = "visited"
    UPWARD_HIGHLIGHTED = "upward-highlighted"
    DIMMED = "dimmed"
    DELETED = "deleted"
    FADED_OUT = "faded-out"


@dataclass
class ThoughtNode:
    """A single reasoning step."""
    id: NodeId
    text: str
    kind: NodeKind = NodeKind.THOUGHT
    status: NodeStatus = NodeStatus.NEUTRAL
    rejection_reason: Optional[str] = None
    deleted: bool = False  # pre-marked for deletion by the payload
    parent: Optional[NodeId] = None
    children: List[NodeId] = field(default_factory=list)

    @property
    def is_framing(self) -> bool:
        """Input/output nodes frame the reasoning and always survive synthesis."""
        return self.kind in (NodeKind.INPUT, NodeKind.OUTPUT)

    @property
    def is_rejected(self) -> bool:
        return self.status == NodeStatus.REJECTED

    @property
    def marked_for_deletion(self) -> bool:
        """Whether revealing this node triggers the deletion effect."""
        return self.is_rejected or self.deleted


class ThoughtTree:
    """
    Arena of ThoughtNodes with a single root.

    Construction goes through ``thoughttree.tree.loader`` which validates the
    payload; this class assumes ids are unique and the structure is acyclic.
    Depths are computed once at construction.
    """

    def __init__(self, nodes: Dict[NodeId, ThoughtNode], root_id: NodeId):
        self.nodes = nodes
        self.root_id = root_id
        self._depths: Dict[NodeId, int] = {}
        self._compute_depths()

    def _compute_depths(self):
        self._depths[self.root_id] = 0
        for node_id in self.preorder():
            depth = self._depths[node_id] + 1
            for child_id in self.nodes[node_id].children:
                self._depths[child_id] = depth

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id) -> bool:
        return node_id in self.nodes

    def __getitem__(self, node_id: NodeId) -> ThoughtNode:
        return self.nodes[node_id]

    @property
    def root(self) -> ThoughtNode:
        return self.nodes[self.root_id]

    @property
    def max_depth(self) -> int:
        return max(self._depths.values())

    def depth(self, node_id: NodeId) -> int:
        return self._depths[node_id]

    def children(self, node_id: NodeId) -> List[ThoughtNode]:
        return [self.nodes[c] for c in self.nodes[node_id].children]

    def parent(self, node_id: NodeId) -> Optional[ThoughtNode]:
        parent_id = self.nodes[node_id].parent
        return self.nodes[parent_id] if parent_id is not None else None

    def preorder(self, start: Optional[NodeId] = None) -> Iterator[NodeId]:
        """Yield ids depth-first, parent before children, children in order."""
        stack = [self.root_id if start is None else start]
        while stack:
            node_id = stack.pop()
            yield node_id
            # Reverse so the first child is popped first
            stack.extend(reversed(self.nodes[node_id].children))

    def subtree(self, node_id: NodeId, include_root: bool = True) -> List[NodeId]:
        """Ids of the subtree rooted at ``node_id`` in preorder."""
        ids = list(self.preorder(node_id))
        return ids if include_root else ids[1:]

    def nodes_by_depth(self) -> List[List[NodeId]]:
        """Preorder visit bucketed by depth: ``[level0, level1, ...]``."""
        levels: List[List[NodeId]] = [[] for _ in range(self.max_depth + 1)]
        for node_id in self.preorder():
            levels[self._depths[node_id]].append(node_id)
        return levels

    def level_widths(self) -> List[int]:
        return [len(level) for level in self.nodes_by_depth()]

    def ancestors(self, node_id: NodeId, include_self: bool = False) -> Iterator[NodeId]:
        """Yield ancestors walking toward the root."""
        current = node_id if include_self else self.nodes[node_id].parent
        while current is not None:
            yield current
            current = self.nodes[current].parent

    def has_rejected_ancestor(self, node_id: NodeId) -> bool:
        """True when the node or any ancestor has status rejected."""
        return any(self.nodes[a].is_rejected
                   for a in self.ancestors(node_id, include_self=True))

    def rejected_subtrees(self) -> Set[NodeId]:
        """All ids that sit at or below a rejected node."""
        excluded: Set[NodeId] = set()
        for node_id in self.preorder():
            if node_id in excluded:
                continue
            if self.nodes[node_id].is_rejected:
                excluded.update(self.subtree(node_id))
        return excluded

    def describe_node(self, node_id: NodeId) -> Dict:
        """Detail record for a node, as shown in a node-details panel."""
        node = self.nodes[node_id]
        details = {
            "id": node.id,
            "text": node.text,
            "type": node.kind.value,
            "status": node.status.value,
            "depth": self._depths[node_id],
            "children": len(node.children),
        }
        if node.rejection_reason:
            details["rejection_reason"] = node.rejection_reason
        return details
