"""Traversal frame export for reviewing an animation offline.

A Renderer that consumes traversal commands, snapshots the resulting visual
state as frames, and exports them to a self-contained HTML report with
step-by-step playback:
- Node shapes (ellipses for input/output, rounded boxes for thoughts)
- Highlight roles as stroke color and opacity
- Faded links into deleted branches
- Viewport follow, step summaries, deletion notices and completion mark
"""

import json
import logging
from dataclasses import dataclass, field
from html import escape
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from ..layout.engine import TreeLayout, ViewTransform
from ..tree.model import HighlightState, NodeId, NodeKind, ThoughtTree
from ..traversal.commands import (
    CenterViewport,
    ClearAll,
    FadeSubtree,
    HighlightLayer,
    MarkDeleted,
    PulseNodes,
    Renderer,
    ShowCompletion,
    ShowStepSummary,
)
from .colors import get_color_manager

logger = logging.getLogger(__name__)

# Node shape geometry
ELLIPSE_RX = 90
ELLIPSE_RY = 35
RECT_WIDTH = 160
RECT_HEIGHT = 44

FRAMING_LABEL_LIMIT = 35
THOUGHT_LABEL_LIMIT = 25


def truncate_label(text: str, kind: NodeKind) -> str:
    """Shorten a label, preferring to cut at a word boundary."""
    limit = FRAMING_LABEL_LIMIT if kind in (NodeKind.INPUT, NodeKind.OUTPUT) else THOUGHT_LABEL_LIMIT
    if len(text) <= limit:
        return text
    truncated = text[:limit]
    last_space = truncated.rfind(" ")
    if last_space > limit * 0.7:
        return truncated[:last_space] + "..."
    return truncated + "..."


@dataclass
class TraversalFrame:
    """Visual state after one traversal step."""
    index: int
    label: str
    roles: Dict[NodeId, HighlightState] = field(default_factory=dict)
    faded: Set[NodeId] = field(default_factory=set)
    view: Tuple[float, float, float] = (0.0, 0.0, 1.0)  # translate x, y, scale
    summary: Optional[ShowStepSummary] = None
    notices: List[Tuple[NodeId, str]] = field(default_factory=list)
    pulsing: Set[NodeId] = field(default_factory=set)
    completed: bool = False


class TreeFrameRenderer(Renderer):
    """Collects traversal frames and exports them to HTML."""

    def __init__(self, tree: ThoughtTree, layout: TreeLayout,
                 viewport_width: float = 1200.0, viewport_height: float = 800.0):
        self.tree = tree
        self.layout = layout
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.colors = get_color_manager()
        self.frames: List[TraversalFrame] = []
        self._reset_state()

    def _reset_state(self):
        self.roles: Dict[NodeId, HighlightState] = {
            node_id: HighlightState.NONE for node_id in self.tree.nodes
        }
        self.faded: Set[NodeId] = set()
        self.view = self._initial_view(self.layout.initial_view)
        self.summary: Optional[ShowStepSummary] = None
        self.notices: List[Tuple[NodeId, str]] = []
        self.pulsing: Set[NodeId] = set()
        self.completed = False

    @staticmethod
    def _initial_view(view: ViewTransform) -> Tuple[float, float, float]:
        return (view.translate_x, view.translate_y, view.scale)

    # Command handlers

    def on_highlight_layer(self, command: HighlightLayer):
        for node_id in command.node_ids:
            self.roles[node_id] = command.role
            if command.role != HighlightState.FADED_OUT:
                self.faded.discard(node_id)

    def on_mark_deleted(self, command: MarkDeleted):
        self.notices.append((command.node_id, command.reason))

    def on_fade_subtree(self, command: FadeSubtree):
        self.faded.update(command.node_ids)

    def on_pulse_nodes(self, command: PulseNodes):
        self.pulsing.update(command.node_ids)

    def on_center_viewport(self, command: CenterViewport):
        self.view = (
            -command.x * command.scale + self.viewport_width / 2,
            -command.y * command.scale + self.viewport_height / 2,
            command.scale,
        )

    def on_show_step_summary(self, command: ShowStepSummary):
        self.summary = command

    def on_show_completion(self, command: ShowCompletion):
        self.completed = True

    def on_clear_all(self, command: ClearAll):
        self._reset_state()

    # Frames

    def capture_frame(self, label: str) -> TraversalFrame:
        """Snapshot the current visual state; transient effects reset afterwards."""
        frame = TraversalFrame(
            index=len(self.frames),
            label=label,
            roles=dict(self.roles),
            faded=set(self.faded),
            view=self.view,
            summary=self.summary,
            notices=list(self.notices),
            pulsing=set(self.pulsing),
            completed=self.completed,
        )
        self.frames.append(frame)
        self.notices = []
        self.pulsing = set()
        return frame

    def _render_links(self, frame: TraversalFrame, parts: List[str]):
        link_color = self.colors.get_chrome_color("link")
        for node_id in self.tree.preorder():
            x0, y0 = self.layout.position(node_id)
            for child_id in self.tree[node_id].children:
                x1, y1 = self.layout.position(child_id)
                mid_y = (y0 + y1) / 2
                retired = (child_id in frame.faded
                           or frame.roles.get(child_id) == HighlightState.DELETED)
                style = ' opacity="0.2" stroke-dasharray="5,3"' if retired else ""
                parts.append(
                    f'<path d="M{x0:.1f},{y0:.1f} C{x0:.1f},{mid_y:.1f} '
                    f'{x1:.1f},{mid_y:.1f} {x1:.1f},{y1:.1f}" fill="none" '
                    f'stroke="{link_color}" stroke-width="1.5"{style}/>'
                )

    def _render_node(self, frame: TraversalFrame, node_id: NodeId, parts: List[str]):
        node = self.tree[node_id]
        x, y = self.layout.position(node_id)
        role = frame.roles.get(node_id, HighlightState.NONE)
        style = self.colors.get_role_style(role.value)
        fill = self.colors.get_kind_color(node.kind.value)
        stroke = style["stroke"]
        stroke_width = 2
        if node_id in frame.pulsing:
            stroke = self.colors.get_chrome_color("pulse")
        opacity = 0.4 if node_id in frame.faded else style["opacity"]

        parts.append(
            f'<g class="node {role.value} status-{node.status.value}" '
            f'transform="translate({x:.1f},{y:.1f})" opacity="{opacity}">'
        )
        if node.is_framing:
            parts.append(
                f'<ellipse rx="{ELLIPSE_RX}" ry="{ELLIPSE_RY}" fill="{fill}" '
                f'stroke="{stroke}" stroke-width="{stroke_width}"/>'
            )
        else:
            parts.append(
                f'<rect x="{-RECT_WIDTH / 2}" y="{-RECT_HEIGHT / 2}" '
                f'width="{RECT_WIDTH}" height="{RECT_HEIGHT}" rx="6" ry="6" '
                f'fill="{fill}" stroke="{stroke}" stroke-width="{stroke_width}"/>'
            )
        text_color = "#ffffff" if node.is_framing else self.colors.get_chrome_color("text")
        decoration = ' text-decoration="line-through"' if role == HighlightState.DELETED else ""
        parts.append(
            f'<text dy="5" text-anchor="middle" font-family="sans-serif" font-size="12" '
            f'fill="{text_color}"{decoration}>{escape(truncate_label(node.text, node.kind))}</text>'
        )
        parts.append('</g>')

    def render_frame_svg(self, frame: TraversalFrame) -> str:
        """Render a frame as a standalone SVG document."""
        tx, ty, scale = frame.view
        parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" '
            f'width="{self.viewport_width:.0f}" height="{self.viewport_height:.0f}" '
            f'viewBox="0 0 {self.viewport_width:.0f} {self.viewport_height:.0f}">',
            f'<rect width="100%" height="100%" fill="{self.colors.get_chrome_color("background")}"/>',
            f'<g transform="translate({tx:.1f},{ty:.1f}) scale({scale})">',
        ]
        self._render_links(frame, parts)
        for node_id in self.tree.preorder():
            self._render_node(frame, node_id, parts)

        notice_color = self.colors.get_chrome_color("deletion_notice")
        for node_id, reason in frame.notices:
            x, y = self.layout.position(node_id)
            parts.append(
                f'<text x="{x:.1f}" y="{y + RECT_HEIGHT:.1f}" text-anchor="middle" '
                f'font-family="sans-serif" font-size="11" fill="{notice_color}">'
                f'{escape(reason)}</text>'
            )
        parts.append('</g>')

        if frame.completed:
            parts.append(
                f'<text x="{self.viewport_width - 60:.0f}" y="70" font-size="60" '
                f'fill="{self.colors.get_chrome_color("completion")}">&#10003;</text>'
            )
        parts.append('</svg>')
        return '\n'.join(parts)

    def _summary_record(self, summary: Optional[ShowStepSummary]) -> Optional[Dict]:
        """Panel content; text is pre-escaped because the panel is set as markup."""
        if summary is None:
            return None
        return {
            "title": escape(summary.title),
            "phase": summary.phase,
            "depth": summary.depth,
            "counts": summary.counts,
            "rejected": summary.rejected_count,
            "nodes": [escape(self.tree[node_id].text) for node_id in summary.node_ids],
        }

    def export_html_report(
        self,
        filename: str = "traversal.html",
        output_dir: str = "traversal_debug",
        interval_ms: int = 1280,
    ) -> Path:
        """Export an HTML report with all captured frames.

        Args:
            filename: Output filename
            output_dir: Output directory
            interval_ms: Autoplay interval between frames

        Returns:
            Path to generated HTML file
        """
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)
        html_path = output_path / filename

        frames_data = [
            {
                "index": frame.index,
                "label": frame.label,
                "svg": self.render_frame_svg(frame),
                "summary": self._summary_record(frame.summary),
            }
            for frame in self.frames
        ]
        frames_json = json.dumps(frames_data).replace("</", "<\\/")
        title = escape(truncate_label(self.tree.root.text, NodeKind.INPUT))

        html_content = f'''<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Reasoning Traversal: {title}</title>
    <style>
        body {{ font-family: sans-serif; margin: 0; display: flex; }}
        #stage {{ flex: 1; }}
        #panel {{ width: 320px; padding: 16px; border-left: 1px solid #ddd; font-size: 0.85rem; }}
        #controls {{ padding: 8px; display: flex; gap: 8px; align-items: center; }}
        .muted {{ color: #777; }}
    </style>
</head>
<body>
    <div id="stage">
        <div id="controls">
            <button id="prev">&larr; Back</button>
            <button id="play">Play</button>
            <button id="next">Step &rarr;</button>
            <input id="scrubber" type="range" min="0" max="{max(len(frames_data) - 1, 0)}" value="0">
            <span id="label" class="muted"></span>
        </div>
        <div id="frame"></div>
    </div>
    <div id="panel"></div>
    <script>
    const frames = {frames_json};
    let current = 0;
    let timer = null;
    function show(i) {{
        if (!frames.length) return;
        current = Math.max(0, Math.min(frames.length - 1, i));
        const f = frames[current];
        document.getElementById('frame').innerHTML = f.svg;
        document.getElementById('label').textContent = f.label;
        document.getElementById('scrubber').value = current;
        const s = f.summary;
        document.getElementById('panel').innerHTML = s
            ? '<h3>' + s.title + '</h3><p class="muted">' + s.phase + ' &middot; depth ' + s.depth + '</p>'
              + '<ul>' + s.nodes.map(n => '<li>' + n + '</li>').join('') + '</ul>'
            : '';
    }}
    function stop() {{ clearInterval(timer); timer = null; document.getElementById('play').textContent = 'Play'; }}
    document.getElementById('prev').onclick = () => {{ stop(); show(current - 1); }};
    document.getElementById('next').onclick = () => show(current + 1);
    document.getElementById('scrubber').oninput = e => show(parseInt(e.target.value));
    document.getElementById('play').onclick = () => {{
        if (timer) {{ stop(); return; }}
        document.getElementById('play').textContent = 'Pause';
        timer = setInterval(() => {{
            if (current >= frames.length - 1) {{ stop(); return; }}
            show(current + 1);
        }}, {interval_ms});
    }};
    show(0);
    </script>
</body>
</html>
'''
        html_path.write_text(html_content, encoding="utf-8")
        logger.info(f"Exported traversal visualization to {html_path}")
        return html_path
