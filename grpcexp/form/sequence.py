"""List Node: a growable sequence of homogeneous items.

Focus walks ``ADD -> ITEM(0) -> REMOVE(0) -> ITEM(1) -> ...``. Items are
labelled positionally (``[0]``, ``[1]``, ...) and relabelled whenever one is
removed.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Tuple

from ..core.schema import SchemaNode
from . import keys
from .keys import KeyEvent
from .styles import DEFAULT_THEME, Line, Theme

if TYPE_CHECKING:
    from .field import Field

Builder = Callable[[SchemaNode], Optional["Field"]]


class ListFocus(Enum):
    ADD = "add"
    ITEM = "item"
    REMOVE = "remove"


def item_label(index: int) -> str:
    return f"[{index}]"


class FieldList:
    def __init__(self, element: SchemaNode, builder: Builder) -> None:
        self.element = element
        self._build = builder
        self.items: List["Field"] = []
        self.target = ListFocus.ADD
        self.focus_index = 0
        self.focused = False
        self.width = 0
        self._theme = DEFAULT_THEME

    def __len__(self) -> int:
        return len(self.items)

    def labels(self) -> List[str]:
        return [item.name for item in self.items]

    def current(self) -> Optional["Field"]:
        if self.target is ListFocus.ADD or not 0 <= self.focus_index < len(self.items):
            return None
        return self.items[self.focus_index]

    # -- structure ----------------------------------------------------------

    def add_item(self) -> "Field":
        """Append a fresh item built from the element schema; focus stays put."""

        item = self._build(self.element.renamed(item_label(len(self.items))))
        if item is None:
            raise ValueError(f"cannot build list element {self.element.name!r}")
        if self.width > 0:
            item.set_width(self.width - self._theme.list_width_overhead, self._theme)
        self.items.append(item)
        return item

    def remove_item(self, index: int) -> None:
        if not 0 <= index < len(self.items):
            return
        focused_item = self.focused and self.target is ListFocus.ITEM
        removed = self.items.pop(index)
        if focused_item and index == self.focus_index:
            removed.blur()
            self.target = ListFocus.REMOVE
        for position in range(index, len(self.items)):
            self.items[position].name = item_label(position)

        if not self.items:
            self.focus_index = 0
            self.target = ListFocus.ADD
            return
        if self.target is not ListFocus.ADD and index < self.focus_index:
            self.focus_index -= 1
        self.focus_index = min(self.focus_index, len(self.items) - 1)

    def value(self) -> List[Any]:
        return [item.value() for item in self.items]

    # -- focus --------------------------------------------------------------

    def focus(self) -> None:
        self.focused = True
        self.focus_index = 0
        self.target = ListFocus.ADD

    def focus_from_end(self) -> None:
        self.focused = True
        if not self.items:
            self.focus_index = 0
            self.target = ListFocus.ADD
            return
        self.focus_index = len(self.items) - 1
        self.target = ListFocus.REMOVE

    def blur(self) -> None:
        if self.target is ListFocus.ITEM:
            item = self.current()
            if item is not None:
                item.blur()
        self.focused = False

    def next(self) -> bool:
        if not self.focused:
            return False
        if self.target is ListFocus.ADD:
            if not self.items:
                return False
            self.focus_index = 0
            self.target = ListFocus.ITEM
            self.items[0].focus()
            return True
        if self.target is ListFocus.ITEM:
            item = self.current()
            if item is not None and item.next():
                return True
            if item is not None:
                item.blur()
            self.target = ListFocus.REMOVE
            return True
        if self.focus_index < len(self.items) - 1:
            self.focus_index += 1
            self.target = ListFocus.ITEM
            self.items[self.focus_index].focus()
            return True
        return False

    def prev(self) -> bool:
        if not self.focused:
            return False
        if self.target is ListFocus.ADD:
            return False
        if self.target is ListFocus.REMOVE:
            self.target = ListFocus.ITEM
            self.items[self.focus_index].focus_from_end()
            return True
        item = self.current()
        if item is not None and item.prev():
            return True
        if item is not None:
            item.blur()
        if self.focus_index == 0:
            self.target = ListFocus.ADD
        else:
            self.focus_index -= 1
            self.target = ListFocus.REMOVE
        return True

    # -- input --------------------------------------------------------------

    def accepts_text_input(self) -> bool:
        if not self.focused or self.target is not ListFocus.ITEM:
            return False
        item = self.current()
        return item is not None and item.accepts_text_input()

    def handle_key(self, event: KeyEvent) -> Tuple[Any, bool]:
        if not self.focused:
            return None, False
        key = event.key
        if key in keys.ACTIVATE_KEYS:
            if self.target is ListFocus.ADD:
                self.add_item()
                return None, True
            if self.target is ListFocus.REMOVE:
                self.remove_item(self.focus_index)
                return None, True

        if self.target is ListFocus.ITEM:
            item = self.current()
            if item is None:
                return None, False
            effect, consumed = item.handle_key(event)
            if consumed:
                return effect, True
            if key in keys.CYCLE_NEXT_KEYS and not item.accepts_text_input():
                item.blur()
                self.target = ListFocus.REMOVE
                return None, True
            return None, False

        if self.target is ListFocus.REMOVE and key in keys.CYCLE_PREV_KEYS:
            self.target = ListFocus.ITEM
            self.items[self.focus_index].focus_from_end()
            return None, True
        return None, False

    def update(self, event: KeyEvent) -> Any:
        if not self.focused or self.target is not ListFocus.ITEM:
            return None
        item = self.current()
        if item is None:
            return None
        return item.update(event)

    def set_width(self, width: int, theme: Theme = DEFAULT_THEME) -> None:
        self.width = width
        self._theme = theme
        for item in self.items:
            item.set_width(width - theme.list_width_overhead, theme)

    # -- rendering ----------------------------------------------------------

    def render(self, depth: int, theme: Theme = DEFAULT_THEME) -> List[Line]:
        add_focused = self.focused and self.target is ListFocus.ADD
        lines = [theme.label_line(depth, theme.add_label, add_focused)]
        for index, item in enumerate(self.items):
            here = self.focused and index == self.focus_index
            item_focused = here and self.target is ListFocus.ITEM
            remove_focused = here and self.target is ListFocus.REMOVE
            rendered = item.render(item_focused, depth + 1, theme)
            if item.is_composite:
                lines.extend(rendered)
                lines.append(theme.label_line(depth + 2, theme.remove_label, remove_focused))
                continue
            marker = theme.marker if remove_focused else " " * len(theme.marker)
            button = theme.label("  " + marker + theme.remove_inline, remove_focused)
            row = rendered[0]
            lines.append(Line(row.spans + (button,), focus=row.focus or remove_focused))
        return lines


__all__ = ["FieldList", "ListFocus", "item_label"]
