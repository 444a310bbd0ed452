"""Colour themes.

A Theme is an immutable value chosen once per session from the loaded
config and handed to whatever renders: the rich console in the terminal, the
index template in the browser.
"""

from dataclasses import dataclass
from typing import Dict, List

from rich.theme import Theme as RichTheme


@dataclass(frozen=True)
class Theme:
    """A named colour palette."""
    id: str
    name: str
    primary: str
    secondary: str
    accent: str
    success: str
    danger: str
    muted: str
    text: str
    highlight: str

    def to_rich_theme(self) -> RichTheme:
        """Style names used throughout the terminal UI."""
        return RichTheme({
            "title": f"bold {self.primary}",
            "subtitle": f"italic {self.secondary}",
            "normal": self.text,
            "muted": self.muted,
            "success": f"bold {self.success}",
            "error": f"bold {self.danger}",
            "highlight": f"bold {self.highlight}",
            "accent": f"bold {self.accent}",
            "border": self.secondary,
            "action.save": self.success,
            "action.revert": self.danger,
            "action.skip": self.muted,
            "action.ignore": self.highlight,
        })

    def css_variables(self) -> Dict[str, str]:
        return {
            "--color-primary": self.primary,
            "--color-secondary": self.secondary,
            "--color-accent": self.accent,
            "--color-success": self.success,
            "--color-danger": self.danger,
            "--color-muted": self.muted,
            "--color-text": self.text,
            "--color-highlight": self.highlight,
        }


DEFAULT_THEME_ID = "coral"

THEMES: Dict[str, Theme] = {
    theme.id: theme
    for theme in [
        Theme("coral", "Coral", primary="#FF6B6B", secondary="#4ECDC4",
              accent="#FFE66D", success="#95E77E", danger="#FF6B6B",
              muted="#6C757D", text="#DFE6E9", highlight="#A29BFE"),
        Theme("ocean", "Ocean", primary="#4FC3F7", secondary="#26A69A",
              accent="#FFD54F", success="#81C784", danger="#E57373",
              muted="#78909C", text="#ECEFF1", highlight="#9575CD"),
        Theme("forest", "Forest", primary="#8BC34A", secondary="#A1887F",
              accent="#FFCA28", success="#66BB6A", danger="#EF5350",
              muted="#7D8471", text="#E8EDDF", highlight="#4DB6AC"),
        Theme("sunset", "Sunset", primary="#FF8A65", secondary="#F06292",
              accent="#FFB74D", success="#AED581", danger="#E53935",
              muted="#8D6E63", text="#FFF3E0", highlight="#BA68C8"),
        Theme("mono", "Monochrome", primary="#FFFFFF", secondary="#BDBDBD",
              accent="#FFFFFF", success="#E0E0E0", danger="#FFFFFF",
              muted="#757575", text="#EEEEEE", highlight="#FFFFFF"),
    ]
}

THEME_IDS: List[str] = list(THEMES)


def get_theme(theme_id: str) -> Theme:
    """Look up a theme, falling back to the default for unknown ids."""
    return THEMES.get(theme_id, THEMES[DEFAULT_THEME_ID])


def next_theme_id(current: str) -> str:
    if current not in THEMES:
        return THEME_IDS[0]
    return THEME_IDS[(THEME_IDS.index(current) + 1) % len(THEME_IDS)]


def previous_theme_id(current: str) -> str:
    if current not in THEMES:
        return THEME_IDS[0]
    return THEME_IDS[(THEME_IDS.index(current) - 1) % len(THEME_IDS)]
