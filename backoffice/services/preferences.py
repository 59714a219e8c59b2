"""User interface preferences and the colour palettes they resolve to."""

from __future__ import annotations

from typing import Dict, Literal

Theme = Literal["light", "dark", "auto"]
PrimaryColor = Literal["orange", "blue", "green", "purple", "red", "pink"]

DEFAULT_PREFERENCES: Dict[str, str] = {
    "theme": "light",
    "primary_color": "orange",
    "layout": "default",
}

# HSL triplets consumed as CSS custom properties by the frontend.
PALETTES: Dict[str, Dict[str, str]] = {
    "orange": {"primary": "24 95% 53%", "primary_hover": "24 95% 60%", "accent": "24 95% 95%"},
    "blue": {"primary": "217 91% 60%", "primary_hover": "217 91% 70%", "accent": "217 91% 95%"},
    "green": {"primary": "142 76% 36%", "primary_hover": "142 76% 46%", "accent": "142 76% 95%"},
    "purple": {"primary": "262 83% 58%", "primary_hover": "262 83% 68%", "accent": "262 83% 95%"},
    "red": {"primary": "0 84% 60%", "primary_hover": "0 84% 70%", "accent": "0 84% 95%"},
    "pink": {"primary": "330 81% 60%", "primary_hover": "330 81% 70%", "accent": "330 81% 95%"},
}


def resolve_palette(color: str | None) -> Dict[str, str]:
    """Return the CSS variables for ``color``, falling back to orange."""

    palette = PALETTES.get((color or "").lower()) or PALETTES[DEFAULT_PREFERENCES["primary_color"]]
    return {
        "--primary": palette["primary"],
        "--primary-hover": palette["primary_hover"],
        "--accent": palette["accent"],
        "--ring": palette["primary"],
    }


__all__ = ["DEFAULT_PREFERENCES", "PALETTES", "PrimaryColor", "Theme", "resolve_palette"]
