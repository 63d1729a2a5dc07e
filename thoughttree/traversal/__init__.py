"""Traversal planning, the two-phase state machine, and renderer commands."""

from .planner import (
    TraversalMode,
    TraversalPlanner,
    generate_layered_steps,
    generate_sequential_steps,
    generate_upward_steps,
)
from .commands import (
    CenterViewport,
    ClearAll,
    Command,
    CommandRecorder,
    FadeSubtree,
    HighlightLayer,
    MarkDeleted,
    PulseNodes,
    Renderer,
    ShowCompletion,
    ShowStepSummary,
)
from .controller import TraversalController, TraversalPhase, TraversalSnapshot
from .playback import AsyncioClock, ManualClock, PlaybackClock

__all__ = [
    "TraversalMode",
    "TraversalPlanner",
    "generate_layered_steps",
    "generate_sequential_steps",
    "generate_upward_steps",
    "CenterViewport",
    "ClearAll",
    "Command",
    "CommandRecorder",
    "FadeSubtree",
    "HighlightLayer",
    "MarkDeleted",
    "PulseNodes",
    "Renderer",
    "ShowCompletion",
    "ShowStepSummary",
    "TraversalController",
    "TraversalPhase",
    "TraversalSnapshot",
    "AsyncioClock",
    "ManualClock",
    "PlaybackClock",
]
