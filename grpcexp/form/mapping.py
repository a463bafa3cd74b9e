"""Map Node: a growable sequence of key/value entries.

Focus walks ``ADD -> KEY(0) -> VALUE(0) -> REMOVE(0) -> KEY(1) -> ...``.
Duplicate keys are allowed while editing; :meth:`FieldMap.value` keeps the
last entry for a repeated key and the render flags the collision.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Set, Tuple

from ..core.schema import SchemaNode
from . import keys
from .keys import KeyEvent
from .styles import DEFAULT_THEME, ERROR, Line, Theme

if TYPE_CHECKING:
    from .field import Field

Builder = Callable[[SchemaNode], Optional["Field"]]

DUPLICATE_NOTICE = "duplicate key, the last entry wins"


class MapFocus(Enum):
    ADD = "add"
    KEY = "key"
    VALUE = "value"
    REMOVE = "remove"


_ORDER = (MapFocus.KEY, MapFocus.VALUE, MapFocus.REMOVE)


@dataclass
class MapEntry:
    key: "Field"
    value: "Field"

    def editor(self, target: MapFocus) -> Optional["Field"]:
        if target is MapFocus.KEY:
            return self.key
        if target is MapFocus.VALUE:
            return self.value
        return None


class FieldMap:
    def __init__(self, key: SchemaNode, value: SchemaNode, builder: Builder) -> None:
        self.key_schema = key.renamed("key")
        self.value_schema = value.renamed("value")
        self._build = builder
        self.entries: List[MapEntry] = []
        self.target = MapFocus.ADD
        self.focus_index = 0
        self.focused = False
        self.width = 0
        self._theme = DEFAULT_THEME

    def __len__(self) -> int:
        return len(self.entries)

    def current(self) -> Optional["Field"]:
        if not 0 <= self.focus_index < len(self.entries):
            return None
        return self.entries[self.focus_index].editor(self.target)

    # -- structure ----------------------------------------------------------

    def add_entry(self) -> MapEntry:
        """Append an entry with fresh key and value editors; focus stays put."""

        key = self._build(self.key_schema)
        value = self._build(self.value_schema)
        if key is None or value is None:
            raise ValueError("cannot build map entry editors")
        if self.width > 0:
            for editor in (key, value):
                editor.set_width(self.width - self._theme.map_width_overhead, self._theme)
        entry = MapEntry(key, value)
        self.entries.append(entry)
        return entry

    def remove_entry(self, index: int) -> None:
        if not 0 <= index < len(self.entries):
            return
        removed = self.entries.pop(index)
        if self.focused and index == self.focus_index and self.target in (MapFocus.KEY, MapFocus.VALUE):
            removed.editor(self.target).blur()
            self.target = MapFocus.REMOVE

        if not self.entries:
            self.focus_index = 0
            self.target = MapFocus.ADD
            return
        if self.target is not MapFocus.ADD and index < self.focus_index:
            self.focus_index -= 1
        self.focus_index = min(self.focus_index, len(self.entries) - 1)

    def entry_key(self, entry: MapEntry) -> str:
        return str(entry.key.value())

    def duplicate_keys(self) -> Set[str]:
        counts = Counter(self.entry_key(entry) for entry in self.entries)
        return {key for key, count in counts.items() if count > 1}

    def value(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for entry in self.entries:
            result[self.entry_key(entry)] = entry.value.value()
        return result

    # -- focus --------------------------------------------------------------

    def focus(self) -> None:
        self.focused = True
        self.focus_index = 0
        self.target = MapFocus.ADD

    def focus_from_end(self) -> None:
        self.focused = True
        if not self.entries:
            self.focus_index = 0
            self.target = MapFocus.ADD
            return
        self.focus_index = len(self.entries) - 1
        self.target = MapFocus.REMOVE

    def blur(self) -> None:
        editor = self.current()
        if editor is not None:
            editor.blur()
        self.focused = False

    def _enter(self, target: MapFocus, from_end: bool = False) -> None:
        self.target = target
        editor = self.current()
        if editor is None:
            return
        if from_end:
            editor.focus_from_end()
        else:
            editor.focus()

    def next(self) -> bool:
        if not self.focused:
            return False
        if self.target is MapFocus.ADD:
            if not self.entries:
                return False
            self.focus_index = 0
            self._enter(MapFocus.KEY)
            return True
        if self.target is MapFocus.REMOVE:
            if self.focus_index >= len(self.entries) - 1:
                return False
            self.focus_index += 1
            self._enter(MapFocus.KEY)
            return True
        editor = self.current()
        if editor is not None and editor.next():
            return True
        if editor is not None:
            editor.blur()
        self._enter(_ORDER[_ORDER.index(self.target) + 1])
        return True

    def prev(self) -> bool:
        if not self.focused:
            return False
        if self.target is MapFocus.ADD:
            return False
        if self.target is MapFocus.REMOVE:
            self._enter(MapFocus.VALUE, from_end=True)
            return True
        editor = self.current()
        if editor is not None and editor.prev():
            return True
        if editor is not None:
            editor.blur()
        if self.target is MapFocus.VALUE:
            self._enter(MapFocus.KEY, from_end=True)
        elif self.focus_index == 0:
            self.target = MapFocus.ADD
        else:
            self.focus_index -= 1
            self.target = MapFocus.REMOVE
        return True

    # -- input --------------------------------------------------------------

    def accepts_text_input(self) -> bool:
        if not self.focused:
            return False
        editor = self.current()
        return editor is not None and editor.accepts_text_input()

    def handle_key(self, event: KeyEvent) -> Tuple[Any, bool]:
        if not self.focused:
            return None, False
        key = event.key
        if key in keys.ACTIVATE_KEYS:
            if self.target is MapFocus.ADD:
                self.add_entry()
                return None, True
            if self.target is MapFocus.REMOVE:
                self.remove_entry(self.focus_index)
                return None, True

        editor = self.current()
        if editor is not None:
            effect, consumed = editor.handle_key(event)
            if consumed:
                return effect, True
            if editor.accepts_text_input():
                return None, False

        if self.target is MapFocus.ADD:
            return None, False
        position = _ORDER.index(self.target)
        if key in keys.CYCLE_NEXT_KEYS and position < len(_ORDER) - 1:
            if editor is not None:
                editor.blur()
            self._enter(_ORDER[position + 1])
            return None, True
        if key in keys.CYCLE_PREV_KEYS and position > 0:
            if editor is not None:
                editor.blur()
            self._enter(_ORDER[position - 1], from_end=True)
            return None, True
        return None, False

    def update(self, event: KeyEvent) -> Any:
        if not self.focused:
            return None
        editor = self.current()
        if editor is None:
            return None
        return editor.update(event)

    def set_width(self, width: int, theme: Theme = DEFAULT_THEME) -> None:
        self.width = width
        self._theme = theme
        for entry in self.entries:
            entry.key.set_width(width - theme.map_width_overhead, theme)
            entry.value.set_width(width - theme.map_width_overhead, theme)

    # -- rendering ----------------------------------------------------------

    def render(self, depth: int, theme: Theme = DEFAULT_THEME) -> List[Line]:
        add_focused = self.focused and self.target is MapFocus.ADD
        lines = [theme.label_line(depth, theme.add_label, add_focused)]
        duplicates = self.duplicate_keys()
        for index, entry in enumerate(self.entries):
            here = self.focused and index == self.focus_index
            lines.append(theme.label_line(depth + 1, f"[{index}]:", here and self.target is not MapFocus.ADD))

            key_lines = entry.key.render(here and self.target is MapFocus.KEY, depth + 2, theme)
            if self.entry_key(entry) in duplicates:
                last = key_lines[-1]
                key_lines[-1] = last.extended([(ERROR, f"  ! {DUPLICATE_NOTICE}")])
            lines.extend(key_lines)
            lines.extend(entry.value.render(here and self.target is MapFocus.VALUE, depth + 2, theme))
            lines.append(theme.label_line(depth + 2, theme.remove_label, here and self.target is MapFocus.REMOVE))
        return lines


__all__ = ["DUPLICATE_NOTICE", "FieldMap", "MapEntry", "MapFocus"]
