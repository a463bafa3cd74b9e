"""Terminal-agnostic key events consumed by the form engine."""

from __future__ import annotations

from dataclasses import dataclass

TAB = "tab"
SHIFT_TAB = "shift+tab"
UP = "up"
DOWN = "down"
LEFT = "left"
RIGHT = "right"
ENTER = "enter"
SPACE = " "
ESC = "esc"
BACKSPACE = "backspace"
DELETE = "delete"
HOME = "home"
END = "end"
CTRL_A = "ctrl+a"
CTRL_C = "ctrl+c"
CTRL_E = "ctrl+e"
CTRL_K = "ctrl+k"
CTRL_S = "ctrl+s"
CTRL_U = "ctrl+u"
CTRL_W = "ctrl+w"
RESIZE = "resize"

CYCLE_PREV_KEYS = frozenset({LEFT, "h"})
CYCLE_NEXT_KEYS = frozenset({RIGHT, "l"})
CYCLE_KEYS = CYCLE_PREV_KEYS | CYCLE_NEXT_KEYS
ACTIVATE_KEYS = frozenset({ENTER, SPACE})


@dataclass(frozen=True)
class KeyEvent:
    """A single key press, named the way it is bound.

    Printable characters are named by the character itself (``"a"``,
    ``" "``); everything else uses a lowercase name such as ``"tab"`` or
    ``"ctrl+u"``.
    """

    key: str

    @property
    def is_text(self) -> bool:
        return len(self.key) == 1 and self.key.isprintable()

    def __str__(self) -> str:
        return self.key


__all__ = [
    "ACTIVATE_KEYS",
    "BACKSPACE",
    "CTRL_A",
    "CTRL_C",
    "CTRL_E",
    "CTRL_K",
    "CTRL_S",
    "CTRL_U",
    "CTRL_W",
    "CYCLE_KEYS",
    "CYCLE_NEXT_KEYS",
    "CYCLE_PREV_KEYS",
    "DELETE",
    "DOWN",
    "END",
    "ENTER",
    "ESC",
    "HOME",
    "KeyEvent",
    "LEFT",
    "RESIZE",
    "RIGHT",
    "SHIFT_TAB",
    "SPACE",
    "TAB",
    "UP",
]
