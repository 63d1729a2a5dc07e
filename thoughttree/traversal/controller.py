"""
Traversal Controller

State machine that steps a reasoning tree through two phases:

1. Downward (exploration): reveal nodes root to leaves. Rejected nodes are
   deleted as they are revealed and their subtrees fade out.
2. Upward (synthesis): re-integrate surviving productive nodes from the
   deepest level back up to the root.

States: IDLE -> DOWNWARD(i) -> UPWARD(j) -> COMPLETE. ``step_index = -1``
means "before the first step" of a phase.

The per-node highlight overlay, and the deleted/faded sets, are recomputed
from (phase, step index) on every transition rather than patched
incrementally, so stepping backward always lands on exactly the state the
forward walk produced. One-shot effects (deletion, pulse, completion) are
only emitted on forward steps.

Every transition is synchronous. Automatic playback just calls
``step_forward()`` from a PlaybackClock tick and stops itself the first
time it returns False.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from ..config import PlaybackConfig, clamp_speed, speed_to_interval_ms
from ..layout.engine import TreeLayout
from ..tree.model import HighlightState, NodeId, ThoughtTree
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
)
from .planner import Step, TraversalMode, TraversalPlanner
from .playback import AsyncioClock, PlaybackClock
from .summary import DOWNWARD, UPWARD, summarize_step

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "Path rejected"

# Emission order for highlight layers; later layers draw on top
LAYER_ORDER = (
    HighlightState.DIMMED,
    HighlightState.VISITED,
    HighlightState.FADED_OUT,
    HighlightState.DELETED,
    HighlightState.CURRENT,
    HighlightState.UPWARD_HIGHLIGHTED,
)


class TraversalPhase(Enum):
    IDLE = "idle"
    DOWNWARD = "downward"
    UPWARD = "upward"
    COMPLETE = "complete"


@dataclass(frozen=True)
class TraversalSnapshot:
    """Comparable capture of everything the controller derives."""
    phase: TraversalPhase
    step_index: int
    highlight: Tuple[Tuple[NodeId, HighlightState], ...]
    deleted: FrozenSet[NodeId]
    faded: FrozenSet[NodeId]


class TraversalController:
    """
    Drives the downward/upward traversal of one tree.

    Owns the highlight overlay exclusively; the tree and layout are only
    read. Commands describing each transition go to ``renderer``.
    """

    def __init__(
        self,
        tree: ThoughtTree,
        layout: TreeLayout,
        renderer: Optional[Renderer] = None,
        config: Optional[PlaybackConfig] = None,
        clock: Optional[PlaybackClock] = None,
        mode: Optional[TraversalMode] = None,
    ):
        """
        Args:
            tree: The tree to traverse
            layout: Positions used for viewport follow
            renderer: Command consumer; defaults to a CommandRecorder
            config: Playback settings (speed, focus scale, traversal mode)
            clock: Tick source for play(); defaults to an AsyncioClock
            mode: Overrides ``config.traversal_mode`` when given
        """
        self.tree = tree
        self.layout = layout
        self.renderer = renderer if renderer is not None else CommandRecorder()
        self.config = config or PlaybackConfig()
        self.clock = clock
        self.speed = clamp_speed(self.config.speed)

        if mode is None:
            mode = TraversalMode(self.config.traversal_mode)
        self.planner = TraversalPlanner(tree, mode)

        self.phase = TraversalPhase.IDLE
        self.step_index = -1
        self._highlight: Dict[NodeId, HighlightState] = {}
        self._deleted: Set[NodeId] = set()
        self._faded: Set[NodeId] = set()
        self._busy = False
        self._clear_overlay()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def downward_steps(self) -> List[Step]:
        return self.planner.downward_steps

    @property
    def upward_steps(self) -> Optional[List[Step]]:
        """Cached upward steps, or None before the upward phase is entered."""
        if not self.planner.has_upward_steps:
            return None
        return self.planner.upward_steps()

    @property
    def is_complete(self) -> bool:
        return self.phase == TraversalPhase.COMPLETE

    @property
    def is_playing(self) -> bool:
        return self.clock is not None and self.clock.active

    @property
    def deleted(self) -> FrozenSet[NodeId]:
        return frozenset(self._deleted)

    @property
    def faded(self) -> FrozenSet[NodeId]:
        return frozenset(self._faded)

    @property
    def current_step(self) -> Step:
        """Node ids of the step currently shown, empty when none is."""
        if self.step_index < 0:
            return []
        if self.phase == TraversalPhase.DOWNWARD:
            return list(self.downward_steps[self.step_index])
        if self.phase in (TraversalPhase.UPWARD, TraversalPhase.COMPLETE):
            return list(self.planner.upward_steps()[self.step_index])
        return []

    def highlight_state(self, node_id: NodeId) -> HighlightState:
        return self._highlight[node_id]

    @property
    def highlight(self) -> Dict[NodeId, HighlightState]:
        return dict(self._highlight)

    def snapshot(self) -> TraversalSnapshot:
        return TraversalSnapshot(
            phase=self.phase,
            step_index=self.step_index,
            highlight=tuple((node_id, self._highlight[node_id])
                            for node_id in self.tree.preorder()),
            deleted=frozenset(self._deleted),
            faded=frozenset(self._faded),
        )

    # ------------------------------------------------------------------
    # State derivation
    # ------------------------------------------------------------------

    def _clear_overlay(self):
        self._highlight = {node_id: HighlightState.NONE for node_id in self.tree.nodes}
        self._deleted = set()
        self._faded = set()

    def _deletion_state(self, last_revealed: int) -> Tuple[Set[NodeId], Set[NodeId]]:
        """Deleted and faded ids once downward steps ``0..last_revealed`` are shown."""
        deleted: Set[NodeId] = set()
        faded: Set[NodeId] = set()
        for step in self.downward_steps[:last_revealed + 1]:
            for node_id in step:
                if self.tree[node_id].marked_for_deletion:
                    deleted.add(node_id)
                    faded.update(self.tree.subtree(node_id, include_root=False))
        return deleted, faded

    def _derive_downward(self, index: int, current_as_visited: bool = False):
        deleted, faded = self._deletion_state(index)
        current = set(self.downward_steps[index]) if not current_as_visited else set()
        revealed = {node_id for step in self.downward_steps[:index + 1] for node_id in step}

        highlight = {}
        for node_id in self.tree.nodes:
            if node_id in current:
                if node_id in deleted:
                    state = HighlightState.DELETED
                elif node_id in faded:
                    state = HighlightState.FADED_OUT
                else:
                    state = HighlightState.CURRENT
            elif node_id in revealed and node_id in deleted:
                state = HighlightState.DELETED
            elif node_id in faded:
                state = HighlightState.FADED_OUT
            elif node_id in revealed:
                # Revealed nodes stay visited; dimmed is only for unrevealed ones.
                state = HighlightState.VISITED
            else:
                state = HighlightState.DIMMED
            highlight[node_id] = state

        self._highlight = highlight
        self._deleted = deleted
        self._faded = faded

    def _derive_upward(self, index: int):
        """Upward overlay; ``index = -1`` is the hand-over point with nothing highlighted."""
        self._derive_downward(len(self.downward_steps) - 1, current_as_visited=True)
        if index < 0:
            return
        bucket = set(self.planner.upward_steps()[index])
        for node_id, state in self._highlight.items():
            if node_id in bucket:
                self._highlight[node_id] = HighlightState.UPWARD_HIGHLIGHTED
            elif state not in (HighlightState.DELETED, HighlightState.FADED_OUT):
                self._highlight[node_id] = HighlightState.DIMMED

    # ------------------------------------------------------------------
    # Command emission
    # ------------------------------------------------------------------

    def _emit(self, command: Command):
        self.renderer.apply(command)

    def _emit_layers(self):
        groups: Dict[HighlightState, List[NodeId]] = {}
        for node_id in self.tree.preorder():
            groups.setdefault(self._highlight[node_id], []).append(node_id)
        for role in LAYER_ORDER:
            if role in groups:
                self._emit(HighlightLayer(node_ids=tuple(groups[role]), role=role))

    def _emit_focus(self, step: Step, phase: str):
        """Viewport follow: center on the step's centroid, independent of history."""
        centroid = self.layout.centroid(step)
        if centroid is None:
            return
        self._emit(CenterViewport(x=centroid[0], y=centroid[1],
                                  scale=self.config.focus_scale))
        self._emit(summarize_step(self.tree, step, phase))

    def _emit_deletions(self, step: Step):
        for node_id in step:
            node = self.tree[node_id]
            if not node.marked_for_deletion:
                continue
            self._emit(MarkDeleted(node_id=node_id,
                                   reason=node.rejection_reason or DEFAULT_REJECTION_REASON))
            self._emit(FadeSubtree(root_id=node_id,
                                   node_ids=tuple(self.tree.subtree(node_id, include_root=False))))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _guarded(self, transition) -> bool:
        if self._busy:
            logger.debug("Ignoring re-entrant traversal call during a transition")
            return False
        self._busy = True
        try:
            return transition()
        finally:
            self._busy = False

    def step_forward(self) -> bool:
        """
        Advance one step.

        Returns:
            True if a step was shown, False once the traversal is complete
        """
        return self._guarded(self._step_forward)

    def _step_forward(self) -> bool:
        if self.phase == TraversalPhase.COMPLETE:
            return False

        if self.phase == TraversalPhase.IDLE:
            self.phase = TraversalPhase.DOWNWARD
            self.step_index = -1

        if self.phase == TraversalPhase.DOWNWARD:
            last = len(self.downward_steps) - 1
            if self.step_index < last:
                return self._advance_downward()
            self._enter_upward()

        return self._advance_upward()

    def _advance_downward(self) -> bool:
        self.step_index += 1
        step = self.downward_steps[self.step_index]
        self._derive_downward(self.step_index)

        logger.debug("Downward step %d: %d node(s)", self.step_index, len(step))
        self._emit_deletions(step)
        self._emit_layers()
        self._emit_focus(step, DOWNWARD)
        return True

    def _enter_upward(self):
        self.phase = TraversalPhase.UPWARD
        self.step_index = -1
        self._derive_upward(-1)
        # Deletion state is final here, so the cached buckets can never go stale
        buckets = self.planner.upward_steps(self._deleted, self._faded)
        logger.debug("Entering upward phase: %d bucket(s)", len(buckets))
        self._emit_layers()

    def _advance_upward(self) -> bool:
        buckets = self.planner.upward_steps(self._deleted, self._faded)
        if self.step_index >= len(buckets) - 1:
            self.phase = TraversalPhase.COMPLETE
            return False

        self.step_index += 1
        step = buckets[self.step_index]
        self._derive_upward(self.step_index)

        logger.debug("Upward step %d: %d node(s)", self.step_index, len(step))
        self._emit_layers()
        self._emit(PulseNodes(node_ids=tuple(step)))
        self._emit_focus(step, UPWARD)

        if self.step_index == len(buckets) - 1:
            self.phase = TraversalPhase.COMPLETE
            logger.info("Traversal complete")
            self._emit(ShowCompletion())
        return True

    def step_backward(self) -> bool:
        """
        Go back one step, re-deriving the overlay for the previous step.

        Returns:
            True if the state changed, False at the first downward step or idle
        """
        self.pause()
        return self._guarded(self._step_backward)

    def _step_backward(self) -> bool:
        if self.phase in (TraversalPhase.UPWARD, TraversalPhase.COMPLETE):
            if self.step_index > 0:
                self.phase = TraversalPhase.UPWARD
                self.step_index -= 1
                self._derive_upward(self.step_index)
                self._emit_layers()
                self._emit_focus(self.planner.upward_steps()[self.step_index], UPWARD)
                return True
            return self._return_to_downward(len(self.downward_steps) - 1)

        if self.phase == TraversalPhase.DOWNWARD and self.step_index > 0:
            return self._return_to_downward(self.step_index - 1)

        return False

    def _return_to_downward(self, index: int) -> bool:
        self.phase = TraversalPhase.DOWNWARD
        self.step_index = index
        self._derive_downward(index)
        self._emit_layers()
        self._emit_focus(self.downward_steps[index], DOWNWARD)
        return True

    def reset(self):
        """Return to IDLE, clearing highlights, deletions and the upward cache."""
        self.pause()
        self.phase = TraversalPhase.IDLE
        self.step_index = -1
        self._clear_overlay()
        self.planner.invalidate_upward()
        logger.debug("Traversal reset")
        self._emit(ClearAll())

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def _tick(self):
        if not self.step_forward():
            self.pause()
            logger.info("Playback finished")

    def play(self, speed: Optional[int] = None):
        """Start stepping forward on the clock; stops itself at the end."""
        if speed is not None:
            self.speed = clamp_speed(speed)
        if self.clock is None:
            self.clock = AsyncioClock()
        interval_s = speed_to_interval_ms(self.speed) / 1000.0
        self.clock.schedule(interval_s, self._tick)
        logger.info("Playback started: speed=%d interval=%.2fs", self.speed, interval_s)

    def pause(self):
        """Stop playback. No tick fires after this returns."""
        if self.clock is not None and self.clock.active:
            self.clock.cancel()
            logger.info("Playback paused")

    def set_speed(self, speed: int):
        """Change speed; a running playback restarts at the new interval."""
        self.speed = clamp_speed(speed)
        if self.is_playing:
            self.pause()
            self.play()
