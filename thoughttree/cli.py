#!/usr/bin/env python3
"""
ThoughtTree CLI

Command-line interface for laying out and replaying reasoning trees.

Usage:
    thoughttree validate <tree.json> [options]
    thoughttree steps <tree.json> [--sequential]
    thoughttree render <tree.json> [-o report.html] [options]
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import clamp_speed, load_config, speed_to_interval_ms
from .layout import compute_layout
from .traversal import TraversalController, TraversalMode, TraversalPlanner
from .tree import MalformedTreeError, ThoughtTree, load_tree_file
from .visualization import TreeFrameRenderer

logger = logging.getLogger(__name__)


def load_tree_from_path(tree_arg: str) -> Optional[ThoughtTree]:
    """
    Load a tree payload, reporting problems on stdout.

    Returns:
        The tree, or None if it could not be loaded
    """
    path = Path(tree_arg)
    if not path.exists():
        print(f"Error: Path not found: {path}")
        return None

    try:
        tree = load_tree_file(path)
    except MalformedTreeError as e:
        print(f"Error: Malformed tree in {path}: {e}")
        return None

    print(f"Loaded tree: {path} ({len(tree)} nodes)")
    return tree


def _format_step(tree: ThoughtTree, step) -> str:
    return ", ".join(f"{node_id}" + (" [rejected]" if tree[node_id].is_rejected else "")
                     for node_id in step)


def cmd_validate(args):
    """Validate a tree payload and print its shape."""
    tree = load_tree_from_path(args.tree)
    if tree is None:
        return 1

    widths = tree.level_widths()
    rejected = sorted(tree.rejected_subtrees(), key=str)
    print(f"  Root: {tree.root_id}")
    print(f"  Depth: {tree.max_depth}")
    print(f"  Levels: {', '.join(str(w) for w in widths)}")
    print(f"  Nodes in rejected branches: {len(rejected)}")

    layout = compute_layout(tree)
    print(f"  Plane: {layout.width:.0f} x {layout.height:.0f}")
    if layout.overlap.shifts_applied:
        print(f"  Overlap fixes: {layout.overlap.shifts_applied} "
              f"(max shift {layout.overlap.max_shift:.1f})")
    return 0


def cmd_steps(args):
    """Print the downward and upward step plan."""
    tree = load_tree_from_path(args.tree)
    if tree is None:
        return 1

    mode = TraversalMode.SEQUENTIAL if args.sequential else TraversalMode.LAYERED
    planner = TraversalPlanner(tree, mode)

    print(f"\nDownward ({mode.value}):")
    for i, step in enumerate(planner.downward_steps):
        print(f"  {i + 1:3d}. {_format_step(tree, step)}")

    print("\nUpward:")
    retired = set()
    for node_id in tree.preorder():
        if tree[node_id].marked_for_deletion:
            retired.update(tree.subtree(node_id))
    for i, step in enumerate(planner.upward_steps(deleted=retired)):
        print(f"  {i + 1:3d}. depth {tree.depth(step[0])}: {_format_step(tree, step)}")
    return 0


def cmd_render(args):
    """Replay the traversal and export an HTML report."""
    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    tree = load_tree_from_path(args.tree)
    if tree is None:
        return 1

    if args.sequential:
        config.playback.traversal_mode = TraversalMode.SEQUENTIAL.value
    if args.speed is not None:
        config.playback.speed = clamp_speed(args.speed)

    layout = compute_layout(tree, config.layout)
    renderer = TreeFrameRenderer(
        tree, layout,
        viewport_width=config.layout.viewport_width,
        viewport_height=config.layout.viewport_height,
    )
    controller = TraversalController(tree, layout, renderer=renderer,
                                     config=config.playback)

    logger.debug("Rendering traversal: mode=%s speed=%d",
                 config.playback.traversal_mode, config.playback.speed)
    renderer.capture_frame("Start")
    while controller.step_forward():
        label = f"{controller.phase.value.title()} step {controller.step_index + 1}"
        renderer.capture_frame(label)

    output = Path(args.output) if args.output else Path(args.tree).with_suffix(".html")
    html_path = renderer.export_html_report(
        filename=output.name,
        output_dir=str(output.parent),
        interval_ms=speed_to_interval_ms(config.playback.speed),
    )
    print(f"Captured {len(renderer.frames)} frames")
    print(f"Report saved to: {html_path}")
    return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="ThoughtTree - Reasoning tree layout and traversal replay",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  thoughttree validate tree.json
  thoughttree steps tree.yaml --sequential
  thoughttree render tree.json -o out/report.html --speed 8
        """,
    )

    parser.add_argument('--version', action='version', version=f'thoughttree {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    validate_parser = subparsers.add_parser('validate', help='Validate a tree payload')
    validate_parser.add_argument('tree', help='Path to JSON or YAML tree payload')
    validate_parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    steps_parser = subparsers.add_parser('steps', help='Print the traversal step plan')
    steps_parser.add_argument('tree', help='Path to JSON or YAML tree payload')
    steps_parser.add_argument('--sequential', action='store_true',
                              help='Depth-first single-node steps instead of layers')
    steps_parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    render_parser = subparsers.add_parser('render', help='Export an HTML traversal report')
    render_parser.add_argument('tree', help='Path to JSON or YAML tree payload')
    render_parser.add_argument('-o', '--output', help='Output HTML path (default: next to the payload)')
    render_parser.add_argument('--sequential', action='store_true',
                               help='Depth-first single-node steps instead of layers')
    render_parser.add_argument('--config', help='YAML config with layout/playback sections')
    render_parser.add_argument('--speed', type=int, help='Playback speed 1-10 (default: 5)')
    render_parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    commands = {
        'validate': cmd_validate,
        'steps': cmd_steps,
        'render': cmd_render,
    }

    return commands[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
