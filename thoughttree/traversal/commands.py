"""
Renderer Commands

Declarative instructions the traversal controller issues to whatever draws
the tree. Commands are immutable values; computing them has no side effects
and replaying one is idempotent, so a renderer is a pure consumer.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..tree.model import HighlightState, NodeId


@dataclass(frozen=True)
class Command:
    """Base class for renderer commands."""


@dataclass(frozen=True)
class HighlightLayer(Command):
    """Put every listed node in the given highlight role."""
    node_ids: Tuple[NodeId, ...]
    role: HighlightState


@dataclass(frozen=True)
class MarkDeleted(Command):
    """One-shot deletion effect on a rejected node."""
    node_id: NodeId
    reason: str


@dataclass(frozen=True)
class FadeSubtree(Command):
    """Fade out everything below ``root_id`` (listed in ``node_ids``)."""
    root_id: NodeId
    node_ids: Tuple[NodeId, ...] = ()


@dataclass(frozen=True)
class PulseNodes(Command):
    """Transient outline flash on nodes entering synthesis."""
    node_ids: Tuple[NodeId, ...]


@dataclass(frozen=True)
class CenterViewport(Command):
    """Center the view on a plane point at the given zoom."""
    x: float
    y: float
    scale: float


@dataclass(frozen=True)
class ShowStepSummary(Command):
    """Describe the step that was just shown."""
    node_ids: Tuple[NodeId, ...]
    phase: str  # "downward" | "upward"
    depth: int
    title: str = ""
    status_counts: Tuple[Tuple[str, int], ...] = ()
    rejected_count: int = 0

    @property
    def counts(self) -> Dict[str, int]:
        return dict(self.status_counts)


@dataclass(frozen=True)
class ShowCompletion(Command):
    """The final synthesis step (root) has been reached."""


@dataclass(frozen=True)
class ClearAll(Command):
    """Drop all visual state and return to the initial view."""


class Renderer:
    """
    Consumer of traversal commands.

    Subclasses override the ``on_*`` hooks they care about; unhandled
    commands are ignored.
    """

    def apply(self, command: Command):
        handler = getattr(self, _HANDLERS.get(type(command), ""), None)
        if handler is not None:
            handler(command)

    def apply_all(self, commands: List[Command]):
        for command in commands:
            self.apply(command)

    def on_highlight_layer(self, command: HighlightLayer):
        pass

    def on_mark_deleted(self, command: MarkDeleted):
        pass

    def on_fade_subtree(self, command: FadeSubtree):
        pass

    def on_pulse_nodes(self, command: PulseNodes):
        pass

    def on_center_viewport(self, command: CenterViewport):
        pass

    def on_show_step_summary(self, command: ShowStepSummary):
        pass

    def on_show_completion(self, command: ShowCompletion):
        pass

    def on_clear_all(self, command: ClearAll):
        pass


_HANDLERS = {
    HighlightLayer: "on_highlight_layer",
    MarkDeleted: "on_mark_deleted",
    FadeSubtree: "on_fade_subtree",
    PulseNodes: "on_pulse_nodes",
    CenterViewport: "on_center_viewport",
    ShowStepSummary: "on_show_step_summary",
    ShowCompletion: "on_show_completion",
    ClearAll: "on_clear_all",
}


@dataclass
class CommandRecorder(Renderer):
    """Renderer that just keeps every command it receives."""
    commands: List[Command] = field(default_factory=list)

    def apply(self, command: Command):
        self.commands.append(command)

    def of_type(self, command_type) -> List[Command]:
        return [c for c in self.commands if isinstance(c, command_type)]

    def last(self, command_type) -> Optional[Command]:
        matching = self.of_type(command_type)
        return matching[-1] if matching else None

    def clear(self):
        self.commands.clear()
