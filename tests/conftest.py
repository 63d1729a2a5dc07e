"""
Shared test fixtures for ThoughtTree tests.

Provides reusable reasoning tree payloads, built trees, layouts and
controllers wired to a recording renderer.
"""

import pytest
from typing import Dict

from thoughttree.config import PlaybackConfig
from thoughttree.layout import compute_layout
from thoughttree.traversal import CommandRecorder, ManualClock, TraversalController
from thoughttree.tree import build_tree


@pytest.fixture
def scenario_payload() -> Dict:
    """root -> {a, b}, a -> {a1}, with a rejected."""
    return {
        "id": "root",
        "text": "Find the shortest path",
        "type": "input",
        "children": [
            {
                "id": "a",
                "text": "Try greedy search",
                "status": "rejected",
                "rejectionReason": "Greedy choice misses shorter detours",
                "children": [
                    {"id": "a1", "text": "Pick nearest neighbour", "status": "productive",
                     "children": []},
                ],
            },
            {"id": "b", "text": "Use Dijkstra", "status": "productive", "children": []},
        ],
    }


@pytest.fixture
def scenario_tree(scenario_payload):
    return build_tree(scenario_payload)


@pytest.fixture
def single_tree():
    """A tree with only an input node."""
    return build_tree({"id": "root", "text": "What is 2 + 2?", "type": "input",
                       "children": []})


@pytest.fixture
def reasoning_payload() -> Dict:
    """A deeper tree with mixed statuses, an output node and long labels."""
    return {
        "id": "q",
        "text": "How should we cache responses for the product catalogue API?",
        "type": "input",
        "children": [
            {
                "id": "t1",
                "text": "Cache whole responses at the CDN edge",
                "status": "productive",
                "children": [
                    {"id": "t1a", "text": "Set Cache-Control max-age per route",
                     "status": "productive", "children": []},
                    {"id": "t1b", "text": "Purge on every catalogue write",
                     "status": "rejected", "rejectionReason": "Too many writes",
                     "children": [
                         {"id": "t1b1", "text": "Batch purges every minute",
                          "status": "productive", "children": []},
                     ]},
                ],
            },
            {
                "id": "t2",
                "text": "Memoize in process",
                "children": [
                    {"id": "t2a", "text": "LRU per worker", "children": []},
                ],
            },
            {
                "id": "t3",
                "text": "Use a shared cache keyed by query and locale",
                "status": "productive",
                "children": [
                    {"id": "out", "text": "Edge cache plus shared cache with TTLs",
                     "type": "output", "children": []},
                ],
            },
        ],
    }


@pytest.fixture
def reasoning_tree(reasoning_payload):
    return build_tree(reasoning_payload)


@pytest.fixture
def recorder():
    return CommandRecorder()


@pytest.fixture
def make_controller(recorder):
    """Factory for controllers over a tree, recording into ``recorder``."""
    def _make(tree, mode=None, clock=None, speed=5):
        layout = compute_layout(tree)
        return TraversalController(
            tree, layout,
            renderer=recorder,
            config=PlaybackConfig(speed=speed),
            clock=clock if clock is not None else ManualClock(),
            mode=mode,
        )
    return _make
