"""Theme presets and color building for the worklog viewer.

Provides three built-in color schemes (default, ocean, forest) and helpers
to merge user overrides, map them onto Textual CSS variables and pick
the Rich styles the log screen draws with.
"""

from __future__ import annotations

PRESETS: dict[str, dict[str, str]] = {
    "default": {
        "bg-color": "#1a1a2e",
        "header-color": "#282840",
        "text-color": "#e0e0e0",
        "selected-color": "#0f3460",
        "error-color": "#e94560",
        "primary": "#0f3460",
        "secondary": "#533483",
        "accent": "#e94560",
        "surface": "#16213e",
    },
    "ocean": {
        "bg-color": "#0a1628",
        "header-color": "#0d2137",
        "text-color": "#c8e6f0",
        "selected-color": "#1a6b8a",
        "error-color": "#ff6b6b",
        "primary": "#1a6b8a",
        "secondary": "#2d9cbc",
        "accent": "#4fd1c5",
        "surface": "#0d2137",
    },
    "forest": {
        "bg-color": "#1a2e1a",
        "header-color": "#1e3a1e",
        "text-color": "#d4e8c8",
        "selected-color": "#2d5a27",
        "error-color": "#e07a5f",
        "primary": "#2d5a27",
        "secondary": "#8b6914",
        "accent": "#d4a017",
        "surface": "#1e3a1e",
    },
}


# Textual design variables fed from each palette key
CSS_VARIABLES: dict[str, str] = {
    "bg-color": "background",
    "surface": "surface",
    "primary": "primary",
    "secondary": "secondary",
    "accent": "accent",
    "text-color": "foreground",
    "error-color": "error",
}


def palette(theme_config: dict) -> dict[str, str]:
    """Colors for ``theme_config``: the named preset with overrides applied.

    Unknown preset names fall back to ``default``. Keys that are not
    palette colors are ignored.
    """
    base = dict(PRESETS.get(theme_config.get("name", "default"), PRESETS["default"]))
    base.update({k: str(v) for k, v in theme_config.items() if k in base})
    return base


def css_variables(theme_config: dict) -> dict[str, str]:
    """Textual CSS variables for the palette."""
    colors = palette(theme_config)
    return {variable: colors[key] for key, variable in CSS_VARIABLES.items()}


def next_theme(current: str) -> str:
    """Name of the preset after ``current``, wrapping around."""
    names = list(PRESETS)
    try:
        idx = names.index(current)
    except ValueError:
        idx = -1
    return names[(idx + 1) % len(names)]


def selected_style(theme_config: dict) -> str:
    """Rich style for the selected row."""
    colors = palette(theme_config)
    return f"bold {colors['text-color']} on {colors['selected-color']}"


def header_style(theme_config: dict) -> str:
    """Rich style for the title bar."""
    colors = palette(theme_config)
    return f"bold bright_white on {colors['header-color']}"


def error_style(theme_config: dict) -> str:
    return f"bold {palette(theme_config)['error-color']}"
