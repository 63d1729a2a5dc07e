"""Step summaries shown alongside each traversal step."""

from typing import List

from ..tree.model import NodeId, NodeStatus, ThoughtTree
from .commands import ShowStepSummary

DOWNWARD = "downward"
UPWARD = "upward"

TITLE_MAX_LENGTH = 30


def downward_title(tree: ThoughtTree, node_ids: List[NodeId]) -> str:
    """The root level is "Root"; deeper levels are named after the first node's parent."""
    first = node_ids[0]
    parent = tree.parent(first)
    if tree.depth(first) == 0 or parent is None or not parent.text:
        return "Root"
    if len(parent.text) > TITLE_MAX_LENGTH:
        return parent.text[:TITLE_MAX_LENGTH] + "..."
    return parent.text


def upward_title(depth: int) -> str:
    if depth == 0:
        return "Final Summary"
    if depth == 1:
        return "High-Level Synthesis"
    return f"Depth {depth} Integration"


def summarize_step(tree: ThoughtTree, node_ids: List[NodeId], phase: str) -> ShowStepSummary:
    """Build the summary command for a downward or upward step."""
    depth = tree.depth(node_ids[0])
    counts = {status.value: 0 for status in NodeStatus}
    for node_id in node_ids:
        counts[tree[node_id].status.value] += 1
    rejected = sum(1 for node_id in node_ids if tree[node_id].marked_for_deletion)

    title = downward_title(tree, node_ids) if phase == DOWNWARD else upward_title(depth)
    return ShowStepSummary(
        node_ids=tuple(node_ids),
        phase=phase,
        depth=depth,
        title=title,
        status_counts=tuple(counts.items()),
        rejected_count=rejected if phase == DOWNWARD else 0,
    )
