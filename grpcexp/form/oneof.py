"""Oneof Node: a selector over prebuilt alternatives.

Every alternative keeps its edits while unselected; only the selected one
contributes to :meth:`FieldOneof.value`.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

from .editors import ChoiceItem, ChoicePicker
from .keys import KeyEvent
from .styles import DEFAULT_THEME, Line, Theme

if TYPE_CHECKING:
    from .field import Field


class OneofFocus(Enum):
    SELECTOR = "selector"
    FIELD = "field"


class FieldOneof:
    def __init__(self, alternatives: Sequence["Field"]) -> None:
        self.alternatives: List["Field"] = list(alternatives)
        self.picker = ChoicePicker(ChoiceItem(alt.name, alt.name) for alt in self.alternatives)
        self.target = OneofFocus.SELECTOR
        self.focused = False

    @property
    def selected_name(self) -> str:
        return self.picker.value()

    def selected(self) -> Optional["Field"]:
        if not self.alternatives:
            return None
        return self.alternatives[self.picker.selected]

    def select(self, name: str) -> bool:
        """Select the alternative called ``name`` while the selector is live."""

        if self.target is OneofFocus.FIELD and self.focused:
            return False
        return self.picker.select(name)

    def value(self) -> Dict[str, Any]:
        chosen = self.selected()
        if chosen is None:
            return {}
        return {chosen.name: chosen.value()}

    # -- focus --------------------------------------------------------------

    def focus(self) -> None:
        self.focused = True
        self.target = OneofFocus.SELECTOR

    def focus_from_end(self) -> None:
        self.focused = True
        chosen = self.selected()
        if chosen is None:
            self.target = OneofFocus.SELECTOR
            return
        self.target = OneofFocus.FIELD
        chosen.focus_from_end()

    def blur(self) -> None:
        if self.target is OneofFocus.FIELD:
            chosen = self.selected()
            if chosen is not None:
                chosen.blur()
        self.focused = False

    def next(self) -> bool:
        if not self.focused:
            return False
        chosen = self.selected()
        if chosen is None:
            return False
        if self.target is OneofFocus.SELECTOR:
            self.target = OneofFocus.FIELD
            chosen.focus()
            return True
        return chosen.next()

    def prev(self) -> bool:
        if not self.focused or self.target is OneofFocus.SELECTOR:
            return False
        chosen = self.selected()
        if chosen is not None:
            if chosen.prev():
                return True
            chosen.blur()
        self.target = OneofFocus.SELECTOR
        return True

    # -- input --------------------------------------------------------------

    def accepts_text_input(self) -> bool:
        if not self.focused or self.target is not OneofFocus.FIELD:
            return False
        chosen = self.selected()
        return chosen is not None and chosen.accepts_text_input()

    def handle_key(self, event: KeyEvent) -> Tuple[Any, bool]:
        if not self.focused:
            return None, False
        if self.target is OneofFocus.SELECTOR:
            return None, self.picker.cycle(event)
        chosen = self.selected()
        if chosen is None:
            return None, False
        return chosen.handle_key(event)

    def update(self, event: KeyEvent) -> Any:
        if not self.focused or self.target is not OneofFocus.FIELD:
            return None
        chosen = self.selected()
        if chosen is None:
            return None
        return chosen.update(event)

    def set_width(self, width: int, theme: Theme = DEFAULT_THEME) -> None:
        for alternative in self.alternatives:
            alternative.set_width(width, theme)

    # -- rendering ----------------------------------------------------------

    def render(self, depth: int, theme: Theme = DEFAULT_THEME) -> List[Line]:
        on_selector = self.focused and self.target is OneofFocus.SELECTOR
        selector = theme.label(theme.prefix(depth, on_selector) + f"{theme.selector_label}: ", on_selector)
        lines = [Line((selector, *self.picker.render()), focus=on_selector)]
        chosen = self.selected()
        if chosen is not None:
            on_field = self.focused and self.target is OneofFocus.FIELD
            lines.extend(chosen.render(on_field, depth, theme))
        return lines


__all__ = ["FieldOneof", "OneofFocus"]
