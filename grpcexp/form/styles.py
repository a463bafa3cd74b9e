"""Render primitives and the explicit rendering configuration.

Nodes never draw to the terminal. They return :class:`Line` objects made of
``(style, text)`` spans; the runtime maps each style name to a terminal
attribute from its palette.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence, Tuple

LABEL = "label"
FOCUSED_LABEL = "focused_label"
SELECTED = "selected"
UNSELECTED = "unselected"
BRACKET = "bracket"
TEXT = "text"
PLACEHOLDER = "placeholder"
CURSOR = "cursor"
ERROR = "error"
HEADER = "header"
HINT = "hint"
STATUS = "status"

STYLES = (
    LABEL,
    FOCUSED_LABEL,
    SELECTED,
    UNSELECTED,
    BRACKET,
    TEXT,
    PLACEHOLDER,
    CURSOR,
    ERROR,
    HEADER,
    HINT,
    STATUS,
)

Span = Tuple[str, str]


@dataclass(frozen=True)
class Line:
    """One rendered row; ``focus`` marks rows carrying the focus marker."""

    spans: Tuple[Span, ...] = field(default_factory=tuple)
    focus: bool = False

    @property
    def text(self) -> str:
        return "".join(text for _, text in self.spans)

    def extended(self, spans: Iterable[Span]) -> "Line":
        return Line(self.spans + tuple(spans), self.focus)


@dataclass(frozen=True)
class Theme:
    """Rendering constants threaded through every ``render`` call."""

    indent: str = "  "
    marker: str = "> "
    add_label: str = "[+] Add"
    remove_label: str = "[-] Remove"
    remove_inline: str = "[-]"
    submit_label: str = "[Submit]"
    selector_label: str = "one of"
    list_width_overhead: int = 18
    map_width_overhead: int = 20

    @property
    def indent_width(self) -> int:
        return len(self.indent)

    def pad(self, depth: int) -> str:
        return self.indent * max(0, depth)

    def prefix(self, depth: int, focused: bool) -> str:
        marker = self.marker if focused else " " * len(self.marker)
        return self.pad(depth) + marker

    def label(self, text: str, focused: bool) -> Span:
        return (FOCUSED_LABEL if focused else LABEL, text)

    def label_line(self, depth: int, text: str, focused: bool) -> Line:
        return Line((self.label(self.prefix(depth, focused) + text, focused),), focus=focused)


DEFAULT_THEME = Theme()


def render_text(lines: Sequence[Line]) -> str:
    """Flatten rendered ``lines`` into plain text."""

    return "\n".join(line.text for line in lines)


__all__ = [
    "BRACKET",
    "CURSOR",
    "DEFAULT_THEME",
    "ERROR",
    "FOCUSED_LABEL",
    "HEADER",
    "HINT",
    "LABEL",
    "Line",
    "PLACEHOLDER",
    "SELECTED",
    "STATUS",
    "STYLES",
    "Span",
    "TEXT",
    "Theme",
    "UNSELECTED",
    "render_text",
]
