"""Group Node: the fixed, ordered children of a nested message."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

from .keys import KeyEvent
from .styles import DEFAULT_THEME, Line, Theme

if TYPE_CHECKING:
    from .field import Field


class FieldGroup:
    def __init__(self, children: Sequence["Field"]) -> None:
        self.children: List["Field"] = list(children)
        self.focus_index = 0
        self.focused = False
        self.width = 0

    def current(self) -> Optional["Field"]:
        if not self.focused or not 0 <= self.focus_index < len(self.children):
            return None
        return self.children[self.focus_index]

    def value(self) -> Dict[str, Any]:
        from .field import FieldKind

        result: Dict[str, Any] = {}
        for child in self.children:
            if child.kind is FieldKind.ONEOF:
                result.update(child.value())
            else:
                result[child.name] = child.value()
        return result

    def focus(self) -> None:
        self.focused = True
        self.focus_index = 0
        if self.children:
            self.children[0].focus()

    def focus_from_end(self) -> None:
        self.focused = True
        self.focus_index = max(0, len(self.children) - 1)
        if self.children:
            self.children[-1].focus_from_end()

    def blur(self) -> None:
        child = self.current()
        if child is not None:
            child.blur()
        self.focused = False

    def next(self) -> bool:
        child = self.current()
        if child is None:
            return False
        if child.next():
            return True
        if self.focus_index >= len(self.children) - 1:
            return False
        child.blur()
        self.focus_index += 1
        self.children[self.focus_index].focus()
        return True

    def prev(self) -> bool:
        child = self.current()
        if child is None:
            return False
        if child.prev():
            return True
        if self.focus_index == 0:
            return False
        child.blur()
        self.focus_index -= 1
        self.children[self.focus_index].focus_from_end()
        return True

    def accepts_text_input(self) -> bool:
        child = self.current()
        return child is not None and child.accepts_text_input()

    def handle_key(self, event: KeyEvent) -> Tuple[Any, bool]:
        child = self.current()
        if child is None:
            return None, False
        return child.handle_key(event)

    def update(self, event: KeyEvent) -> Any:
        child = self.current()
        if child is None:
            return None
        return child.update(event)

    def set_width(self, width: int, theme: Theme = DEFAULT_THEME) -> None:
        self.width = width
        for child in self.children:
            child.set_width(width - theme.indent_width, theme)

    def render(self, depth: int, theme: Theme = DEFAULT_THEME) -> List[Line]:
        lines: List[Line] = []
        for index, child in enumerate(self.children):
            focused = self.focused and index == self.focus_index
            lines.extend(child.render(focused, depth, theme))
        return lines


__all__ = ["FieldGroup"]
