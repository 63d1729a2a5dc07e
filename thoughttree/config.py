"""
Configuration

Layout and playback settings as dataclasses, optionally overridden from a
YAML file with ``layout:`` and ``playback:`` sections. Missing keys keep
their defaults; unknown keys are rejected so typos do not pass silently.
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

MIN_SPEED = 1
MAX_SPEED = 10

TRAVERSAL_MODES = ("layered", "sequential")


@dataclass
class LayoutConfig:
    """Geometry for the layout pass (abstract plane units, ~pixels)."""
    node_width: float = 220.0  # horizontal room reserved per node on the widest level
    level_height: float = 140.0  # fixed row height per depth
    min_distance: float = 180.0  # minimum center-to-center gap on one level

    viewport_width: float = 1200.0
    viewport_height: float = 800.0
    viewport_fraction: float = 0.9  # plane is at least this share of the viewport
    width_padding: float = 1.2  # extra room on the widest level

    # Separation function
    sibling_separation: float = 2.5
    cousin_separation: float = 3.5
    text_length_threshold: int = 30
    text_length_divisor: float = 100.0

    # Initial view
    initial_scale: float = 1.2


@dataclass
class PlaybackConfig:
    """Traversal and playback settings."""
    speed: int = 5  # 1 (slowest) .. 10 (fastest)
    focus_scale: float = 1.5  # zoom used when centering on a step
    traversal_mode: str = "layered"  # "layered" (BFS layers) or "sequential" (DFS)


@dataclass
class ThoughtTreeConfig:
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)


def clamp_speed(speed: Any) -> int:
    """Clamp a speed setting into 1..10, logging when it had to be adjusted."""
    try:
        value = int(speed)
    except (TypeError, ValueError):
        logger.warning("Invalid speed %r, using %d", speed, PlaybackConfig.speed)
        return PlaybackConfig.speed

    clamped = max(MIN_SPEED, min(MAX_SPEED, value))
    if clamped != value:
        logger.warning("Speed %d out of range %d..%d, clamped to %d",
                       value, MIN_SPEED, MAX_SPEED, clamped)
    return clamped


def speed_to_interval_ms(speed: Any) -> int:
    """Playback tick interval: 2000ms at speed 1 down to 380ms at speed 10."""
    return 2000 - (clamp_speed(speed) - 1) * 180


def _apply_section(target, section: Optional[Dict], name: str):
    if not section:
        return
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")

    known = {f.name for f in fields(target)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown keys in config section '{name}': {unknown}")

    for key, value in section.items():
        setattr(target, key, value)


def load_config(path: Optional[Union[str, Path]] = None) -> ThoughtTreeConfig:
    """
    Load configuration, starting from defaults.

    Args:
        path: Optional YAML file. If None, defaults are returned.

    Returns:
        ThoughtTreeConfig with overrides applied
    """
    config = ThoughtTreeConfig()
    if path is None:
        return config

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    unknown = sorted(set(data) - {"layout", "playback"})
    if unknown:
        raise ValueError(f"Unknown config sections: {unknown}")

    _apply_section(config.layout, data.get("layout"), "layout")
    _apply_section(config.playback, data.get("playback"), "playback")

    config.playback.speed = clamp_speed(config.playback.speed)
    if config.playback.traversal_mode not in TRAVERSAL_MODES:
        raise ValueError(
            f"traversal_mode must be one of {TRAVERSAL_MODES}, "
            f"got {config.playback.traversal_mode!r}")

    logger.debug("Loaded config from %s", config_path)
    return config
