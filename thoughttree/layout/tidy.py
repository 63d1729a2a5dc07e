"""
Tidy Tree Layout

Generic layered tree drawing (Reingold-Tilford with Walker's improvements,
in Buchheim's linear-time formulation). Siblings are placed left to right
under their parent, subtrees are packed as closely as the separation
function allows, and parents are centered over their children.

The result is normalized so the leftmost node sits half a separation in
from x=0 and the rightmost half a separation in from ``width``. Both walks
run over explicit node lists so deep, unbalanced trees do not hit the
interpreter recursion limit.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..config import LayoutConfig
from ..tree.model import NodeId, ThoughtNode, ThoughtTree

SeparationFn = Callable[[ThoughtNode, ThoughtNode], float]


@dataclass
class NodePosition:
    """Layout coordinates of one node."""
    x: float
    y: float
    depth: int


def make_separation(config: LayoutConfig) -> SeparationFn:
    """
    Text-length-aware separation between two horizontally adjacent nodes.

    Siblings get ``sibling_separation``, nodes with different parents get
    ``cousin_separation``; pairs of long labels get extra room.
    """
    def separation(a: ThoughtNode, b: ThoughtNode) -> float:
        base = config.sibling_separation if a.parent == b.parent else config.cousin_separation
        text_factor = max(
            0.0,
            (len(a.text) + len(b.text) - config.text_length_threshold) / config.text_length_divisor,
        )
        return base + text_factor

    return separation


class _WalkNode:
    __slots__ = ("node", "parent", "children", "default_ancestor", "ancestor",
                 "prelim", "mod", "change", "shift", "thread", "number", "x")

    def __init__(self, node: Optional[ThoughtNode], number: int):
        self.node = node
        self.parent: Optional["_WalkNode"] = None
        self.children: List["_WalkNode"] = []
        self.default_ancestor: Optional["_WalkNode"] = None
        self.ancestor = self
        self.prelim = 0.0
        self.mod = 0.0
        self.change = 0.0
        self.shift = 0.0
        self.thread: Optional["_WalkNode"] = None
        self.number = number
        self.x = 0.0


def _next_left(v: _WalkNode) -> Optional[_WalkNode]:
    return v.children[0] if v.children else v.thread


def _next_right(v: _WalkNode) -> Optional[_WalkNode]:
    return v.children[-1] if v.children else v.thread


def _move_subtree(wm: _WalkNode, wp: _WalkNode, shift: float):
    change = shift / (wp.number - wm.number)
    wp.change -= change
    wp.shift += shift
    wm.change += change
    wp.prelim += shift
    wp.mod += shift


def _execute_shifts(v: _WalkNode):
    shift = 0.0
    change = 0.0
    for w in reversed(v.children):
        w.prelim += shift
        w.mod += shift
        change += w.change
        shift += w.shift + change


def _next_ancestor(vim: _WalkNode, v: _WalkNode, ancestor: _WalkNode) -> _WalkNode:
    return vim.ancestor if vim.ancestor.parent is v.parent else ancestor


class TidyTreeLayout:
    """Positions every node of a ThoughtTree on a plane of the given width."""

    def __init__(self, tree: ThoughtTree, separation: SeparationFn):
        self.tree = tree
        self.separation = separation

    def _sep(self, a: _WalkNode, b: _WalkNode) -> float:
        return self.separation(a.node, b.node)

    def _wrap(self) -> _WalkNode:
        root = _WalkNode(self.tree.root, 0)
        stack = [root]
        while stack:
            walk_node = stack.pop()
            for number, child in enumerate(self.tree.children(walk_node.node.id)):
                child_walk = _WalkNode(child, number)
                child_walk.parent = walk_node
                walk_node.children.append(child_walk)
                stack.append(child_walk)

        # Synthetic parent so the root can be treated like any other child
        sentinel = _WalkNode(None, 0)
        sentinel.children = [root]
        root.parent = sentinel
        return root

    def _apportion(self, v: _WalkNode, w: Optional[_WalkNode],
                   ancestor: _WalkNode) -> _WalkNode:
        if w is None:
            return ancestor

        vip = vop = v
        vim = w
        vom = vip.parent.children[0]
        sip = vip.mod
        sop = vop.mod
        sim = vim.mod
        som = vom.mod

        vim = _next_right(vim)
        vip = _next_left(vip)
        while vim is not None and vip is not None:
            vom = _next_left(vom)
            vop = _next_right(vop)
            vop.ancestor = v
            shift = vim.prelim + sim - vip.prelim - sip + self._sep(vim, vip)
            if shift > 0:
                _move_subtree(_next_ancestor(vim, v, ancestor), v, shift)
                sip += shift
                sop += shift
            sim += vim.mod
            sip += vip.mod
            som += vom.mod
            sop += vop.mod
            vim = _next_right(vim)
            vip = _next_left(vip)

        if vim is not None and _next_right(vop) is None:
            vop.thread = vim
            vop.mod += sim - sop
        if vip is not None and _next_left(vom) is None:
            vom.thread = vip
            vom.mod += sip - som
            ancestor = v
        return ancestor

    def _first_walk(self, v: _WalkNode):
        siblings = v.parent.children
        w = siblings[v.number - 1] if v.number else None
        if v.children:
            _execute_shifts(v)
            midpoint = (v.children[0].prelim + v.children[-1].prelim) / 2
            if w is not None:
                v.prelim = w.prelim + self._sep(v, w)
                v.mod = v.prelim - midpoint
            else:
                v.prelim = midpoint
        elif w is not None:
            v.prelim = w.prelim + self._sep(v, w)
        v.parent.default_ancestor = self._apportion(
            v, w, v.parent.default_ancestor or siblings[0])

    @staticmethod
    def _second_walk(v: _WalkNode):
        v.x = v.prelim + v.parent.mod
        v.mod += v.parent.mod

    def layout(self, width: float, level_height: float) -> Dict[NodeId, NodePosition]:
        """
        Run both walks and scale x into ``[0, width]``.

        Returns:
            Mapping of node id to its position; ``y = depth * level_height``.
        """
        root = self._wrap()

        # Mirrored preorder, reversed, is a left-to-right postorder
        mirrored: List[_WalkNode] = []
        stack = [root]
        while stack:
            v = stack.pop()
            mirrored.append(v)
            stack.extend(v.children)
        preorder: List[_WalkNode] = []
        stack = [root]
        while stack:
            v = stack.pop()
            preorder.append(v)
            stack.extend(reversed(v.children))

        for v in reversed(mirrored):
            self._first_walk(v)
        root.parent.mod = -root.prelim
        for v in preorder:
            self._second_walk(v)

        left = right = root
        for v in preorder:
            if v.x < left.x:
                left = v
            if v.x > right.x:
                right = v

        s = 1.0 if left is right else self._sep(left, right) / 2
        tx = s - left.x
        kx = width / (right.x + s + tx)

        positions = {}
        for v in preorder:
            depth = self.tree.depth(v.node.id)
            positions[v.node.id] = NodePosition(
                x=(v.x + tx) * kx,
                y=depth * level_height,
                depth=depth,
            )
        return positions
