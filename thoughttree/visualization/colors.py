"""Visualization color management.

Provides centralized access to tree rendering colors from configuration,
with built-in defaults when the YAML file is missing or unreadable.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "visualization_colors.yaml"


class ColorManager:
    """Manages rendering colors from external configuration.

    Loads colors from visualization_colors.yaml and provides lookups for
    node kinds, node statuses, highlight roles and page chrome.
    """

    _instance: Optional["ColorManager"] = None
    _config: Dict = {}

    def __new__(cls):
        """Singleton pattern to avoid reloading config."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._config_path = DEFAULT_CONFIG_PATH
            cls._instance._load_config()
        return cls._instance

    def _load_config(self):
        """Load color configuration from YAML file."""
        config_path = self._config_path

        try:
            if not config_path.exists():
                logger.warning(
                    f"Visualization colors config not found at {config_path}, "
                    "using defaults"
                )
                self._config = self._get_default_config()
                return

            with open(config_path, "r") as f:
                self._config = yaml.safe_load(f) or {}

            logger.debug(f"Loaded visualization colors from {config_path}")

        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load visualization colors: {e}")
            self._config = self._get_default_config()

    def _get_default_config(self) -> Dict:
        """Get default color configuration as fallback."""
        return {
            "kind_colors": {
                "input": "#4a6fa5",
                "output": "#2e8b57",
                "thought": "#f5f5f5",
            },
            "status_colors": {
                "productive": "#2ecc71",
                "rejected": "#e74c3c",
                "neutral": "#95a5a6",
            },
            "role_styles": {
                "none": {"stroke": "#7f8c8d", "opacity": 1.0},
                "current": {"stroke": "#3498db", "opacity": 1.0},
                "visited": {"stroke": "#2c3e50", "opacity": 0.85},
                "upward-highlighted": {"stroke": "#F0E68C", "opacity": 1.0},
                "dimmed": {"stroke": "#bdc3c7", "opacity": 0.35},
                "deleted": {"stroke": "#e74c3c", "opacity": 0.4},
                "faded-out": {"stroke": "#bdc3c7", "opacity": 0.4},
            },
            "chrome": {
                "background": "#ffffff",
                "link": "#b0b7bf",
                "text": "#222222",
                "pulse": "#F0E68C",
                "completion": "#2ecc71",
                "deletion_notice": "#c0392b",
            },
        }

    def get_kind_color(self, kind: str) -> str:
        """Fill color for a node kind ("input", "output", "thought")."""
        kind_colors = self._config.get("kind_colors", {})
        return kind_colors.get(kind, kind_colors.get("thought", "#f5f5f5"))

    def get_status_color(self, status: str) -> str:
        """Accent color for a node status."""
        return self._config.get("status_colors", {}).get(status, "#95a5a6")

    def get_role_style(self, role: str) -> Dict:
        """Stroke color and opacity for a highlight role.

        Args:
            role: Highlight role value (e.g. "current", "dimmed")

        Returns:
            Dict with "stroke" and "opacity"
        """
        styles = self._config.get("role_styles", {})
        style = styles.get(role) or styles.get("none") or {}
        return {
            "stroke": style.get("stroke", "#7f8c8d"),
            "opacity": float(style.get("opacity", 1.0)),
        }

    def get_chrome_color(self, element: str) -> str:
        """Color for page elements (background, link, text, pulse, ...)."""
        return self._config.get("chrome", {}).get(element, "#cccccc")

    def reload(self, config_path: Optional[Path] = None):
        """Reload configuration, optionally from a different file."""
        if config_path is not None:
            self._config_path = Path(config_path)
        self._load_config()


# Global instance
_color_manager = None


def get_color_manager() -> ColorManager:
    """Get the global ColorManager instance."""
    global _color_manager
    if _color_manager is None:
        _color_manager = ColorManager()
    return _color_manager
