"""Scalar editors: the single-line text input and the cyclic choice picker."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from google.protobuf.duration_pb2 import Duration
from google.protobuf.timestamp_pb2 import Timestamp

from . import keys
from .keys import KeyEvent
from .styles import BRACKET, CURSOR, PLACEHOLDER, SELECTED, TEXT, UNSELECTED, Span

Validator = Callable[[str], Optional[str]]

_INT_PATTERN = re.compile(r"[+-]?\d+")
_UINT_PATTERN = re.compile(r"\+?\d+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_UINT64_MAX = 2**64 - 1


# ---------------------------------------------------------------------------
# Validators (empty input is always valid and means "absent")
# ---------------------------------------------------------------------------


def validate_int(text: str) -> Optional[str]:
    if text == "":
        return None
    if not _INT_PATTERN.fullmatch(text) or not _INT64_MIN <= int(text) <= _INT64_MAX:
        return "must be a valid integer"
    return None


def validate_uint(text: str) -> Optional[str]:
    if text == "":
        return None
    if not _UINT_PATTERN.fullmatch(text) or int(text) > _UINT64_MAX:
        return "must be a valid positive integer"
    return None


def validate_float(text: str) -> Optional[str]:
    if text == "":
        return None
    if text != text.strip():
        return "must be a valid number"
    try:
        float(text)
    except ValueError:
        return "must be a valid number"
    return None


def validate_duration(text: str) -> Optional[str]:
    if text == "":
        return None
    try:
        Duration().FromJsonString(text)
    except ValueError:
        return "must be a valid duration (e.g., 10s)"
    return None


def validate_timestamp(text: str) -> Optional[str]:
    if text == "":
        return None
    try:
        Timestamp().FromJsonString(text)
    except ValueError:
        return "must be a valid RFC 3339 timestamp (e.g., 2017-01-15T01:30:15.01Z)"
    return None


def validate_hex(text: str) -> Optional[str]:
    if text == "":
        return None
    try:
        bytes.fromhex(text)
    except ValueError:
        return "must be hex encoded bytes (e.g., deadbeef)"
    return None


# ---------------------------------------------------------------------------
# Text input
# ---------------------------------------------------------------------------


class TextInput:
    """Single-line editable string with a cursor and an advisory validator."""

    def __init__(
        self,
        placeholder: str = "",
        char_limit: int = 0,
        validate: Optional[Validator] = None,
    ) -> None:
        self.placeholder = placeholder
        self.char_limit = char_limit
        self.validate = validate
        self.width = 0
        self.focused = False
        self.cursor = 0
        self._value = ""

    @property
    def value(self) -> str:
        return self._value

    def set_value(self, text: str) -> None:
        if self.char_limit > 0:
            text = text[: self.char_limit]
        self._value = text
        self.cursor = len(text)

    def focus(self) -> None:
        self.focused = True

    def blur(self) -> None:
        self.focused = False

    def error(self) -> Optional[str]:
        if self.validate is None:
            return None
        return self.validate(self._value)

    def update(self, event: KeyEvent) -> None:
        """Apply a raw key to the buffer; ignored while blurred."""

        if not self.focused:
            return
        key = event.key
        text = self._value
        if event.is_text:
            self._insert(key)
        elif key == keys.BACKSPACE:
            if self.cursor > 0:
                self._value = text[: self.cursor - 1] + text[self.cursor :]
                self.cursor -= 1
        elif key == keys.DELETE:
            self._value = text[: self.cursor] + text[self.cursor + 1 :]
        elif key == keys.LEFT:
            self.cursor = max(0, self.cursor - 1)
        elif key == keys.RIGHT:
            self.cursor = min(len(text), self.cursor + 1)
        elif key in (keys.HOME, keys.CTRL_A):
            self.cursor = 0
        elif key in (keys.END, keys.CTRL_E):
            self.cursor = len(text)
        elif key == keys.CTRL_U:
            self._value = text[self.cursor :]
            self.cursor = 0
        elif key == keys.CTRL_K:
            self._value = text[: self.cursor]
        elif key == keys.CTRL_W:
            head = text[: self.cursor].rstrip()
            cut = head.rfind(" ") + 1
            self._value = text[:cut] + text[self.cursor :]
            self.cursor = cut

    def _insert(self, chars: str) -> None:
        if self.char_limit > 0:
            room = self.char_limit - len(self._value)
            if room <= 0:
                return
            chars = chars[:room]
        self._value = self._value[: self.cursor] + chars + self._value[self.cursor :]
        self.cursor += len(chars)

    def _window(self) -> Tuple[int, str]:
        text = self._value
        if self.width <= 0 or len(text) < self.width:
            return 0, text
        start = max(0, self.cursor - self.width + 1)
        return start, text[start : start + self.width]

    def render(self) -> List[Span]:
        if not self._value:
            if not self.focused:
                return [(PLACEHOLDER, self.placeholder)] if self.placeholder else []
            if not self.placeholder:
                return [(CURSOR, " ")]
            return [(CURSOR, self.placeholder[0]), (PLACEHOLDER, self.placeholder[1:])]

        start, visible = self._window()
        if not self.focused:
            return [(TEXT, visible)]
        offset = self.cursor - start
        spans: List[Span] = []
        if offset > 0:
            spans.append((TEXT, visible[:offset]))
        spans.append((CURSOR, visible[offset] if offset < len(visible) else " "))
        if offset + 1 < len(visible):
            spans.append((TEXT, visible[offset + 1 :]))
        return spans


# ---------------------------------------------------------------------------
# Choice picker
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChoiceItem:
    label: str
    value: str


class ChoicePicker:
    """Cyclic single selection over a small fixed option list."""

    def __init__(self, items: Iterable[ChoiceItem]) -> None:
        self.items: List[ChoiceItem] = list(items)
        self.selected = 0

    @classmethod
    def boolean(cls) -> "ChoicePicker":
        return cls([ChoiceItem("false", "false"), ChoiceItem("true", "true")])

    @classmethod
    def from_pairs(cls, pairs: Sequence[Tuple[str, str]]) -> "ChoicePicker":
        return cls(ChoiceItem(label, value) for label, value in pairs)

    def next(self) -> None:
        if not self.items:
            return
        self.selected = (self.selected + 1) % len(self.items)

    def prev(self) -> None:
        if not self.items:
            return
        self.selected = (self.selected - 1) % len(self.items)

    def cycle(self, event: KeyEvent) -> bool:
        """Cycle on a left/right style key; return ``True`` when consumed."""

        if event.key in keys.CYCLE_PREV_KEYS:
            self.prev()
            return True
        if event.key in keys.CYCLE_NEXT_KEYS:
            self.next()
            return True
        return False

    def select(self, label: str) -> bool:
        for index, item in enumerate(self.items):
            if item.label == label:
                self.selected = index
                return True
        return False

    def selected_item(self) -> Optional[ChoiceItem]:
        if not self.items or not 0 <= self.selected < len(self.items):
            return None
        return self.items[self.selected]

    def value(self) -> str:
        item = self.selected_item()
        return item.value if item is not None else ""

    def render(self) -> List[Span]:
        if not self.items:
            return [(BRACKET, "[ ]")]
        spans: List[Span] = [(BRACKET, "[ ")]
        for index, item in enumerate(self.items):
            spans.append((SELECTED if index == self.selected else UNSELECTED, item.label))
            if index < len(self.items) - 1:
                spans.append((UNSELECTED, ", "))
        spans.append((BRACKET, " ]"))
        return spans


__all__ = [
    "ChoiceItem",
    "ChoicePicker",
    "TextInput",
    "Validator",
    "validate_duration",
    "validate_float",
    "validate_hex",
    "validate_int",
    "validate_timestamp",
    "validate_uint",
]
