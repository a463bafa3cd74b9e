"""Form Controller: owns the field tree and the invocation lifecycle."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from ..core.schema import SchemaNode
from ..utils import logbook
from . import keys
from .field import build_fields, unsupported_paths
from .group import FieldGroup
from .keys import KeyEvent
from .messages import CallCompleted, CopyToClipboard, InvokeCall, Quit
from .styles import DEFAULT_THEME, ERROR, HEADER, HINT, LABEL, STATUS, TEXT, Line, Theme

DEFAULT_TIMEOUT = 30.0
WIDTH_MARGIN = 10

EDITING_HINT = "↑/↓/tab: navigate • ←/→: options • enter: add/remove • ctrl+s: submit"
RESULT_HINT = "esc: back • y: copy response • q: quit"

Event = Union[KeyEvent, CallCompleted]
Effect = Optional[Any]


class FormState(Enum):
    EDITING = "editing"
    CALLING = "calling"
    RESULT = "result"


def _form_log(action: str, **fields: object) -> None:
    logbook.event("GRPCEXP.Form", action, **fields)


class FormController:
    """Interactive request form for one method."""

    def __init__(
        self,
        method: str,
        schema: SchemaNode,
        *,
        input_type: str = "",
        output_type: str = "",
        theme: Theme = DEFAULT_THEME,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.method = method
        self.schema = schema
        self.input_type = input_type or schema.type_name
        self.output_type = output_type
        self.theme = theme
        self.timeout = timeout

        fields, _ = build_fields(schema.children)
        self.root = FieldGroup(fields)
        self.unsupported = unsupported_paths(schema)

        self.state = FormState.EDITING
        self.on_submit = False
        self.response: Optional[str] = None
        self.error: Optional[str] = None
        self.status = ""
        self.width = 0
        self.height = 0

    # -- lifecycle ------------------------------------------------------------

    def init(self) -> Effect:
        if self.root.children:
            self.root.focus()
        else:
            self.on_submit = True
        _form_log(
            "opened",
            method=self.method,
            fields=len(self.root.children),
            unsupported=self.unsupported,
        )
        return None

    def handle_event(self, event: Event) -> Tuple[FormState, Effect]:
        if isinstance(event, CallCompleted):
            self._complete(event)
            return self.state, None
        if self.state is FormState.CALLING:
            return self.state, None
        if self.state is FormState.RESULT:
            effect = self._handle_result_key(event)
        else:
            effect = self._handle_editing_key(event)
        return self.state, effect

    def _complete(self, message: CallCompleted) -> None:
        if self.state is not FormState.CALLING:
            _form_log("completion_ignored", method=self.method, state=self.state.value)
            return
        self.state = FormState.RESULT
        self.response = message.response
        self.error = message.error
        _form_log("completed", method=self.method, ok=message.ok)

    def _handle_result_key(self, event: KeyEvent) -> Effect:
        if event.key == "y":
            return CopyToClipboard(self.result_text())
        if event.key == "q":
            return Quit()
        return None

    def _handle_editing_key(self, event: KeyEvent) -> Effect:
        key = event.key
        if key in (keys.TAB, keys.DOWN):
            self.next()
            return None
        if key in (keys.SHIFT_TAB, keys.UP):
            self.prev()
            return None
        if key == keys.CTRL_S:
            return self.submit()
        if key in ("j", "k") and not self.accepts_text_input():
            if key == "j":
                self.next()
            else:
                self.prev()
            return None
        if self.on_submit:
            if key == keys.ENTER:
                return self.submit()
            return None

        effect, consumed = self.root.handle_key(event)
        if consumed:
            return effect
        if key == keys.ENTER:
            self.next()
            return None
        return self.root.update(event)

    def submit(self) -> InvokeCall:
        payload = self.request_payload()
        self.state = FormState.CALLING
        _form_log("submitted", method=self.method, timeout=self.timeout)
        return InvokeCall(self.method, payload, self.timeout)

    # -- navigation -----------------------------------------------------------

    def next(self) -> None:
        if self.on_submit:
            if self.root.children:
                self.on_submit = False
                self.root.focus()
            return
        if self.root.next():
            return
        self.root.blur()
        self.on_submit = True

    def prev(self) -> None:
        if self.on_submit:
            if self.root.children:
                self.on_submit = False
                self.root.focus_from_end()
            return
        if self.root.prev():
            return
        self.root.blur()
        self.on_submit = True

    def accepts_text_input(self) -> bool:
        return not self.on_submit and self.root.accepts_text_input()

    # -- values ---------------------------------------------------------------

    def request_payload(self) -> Dict[str, Any]:
        return self.root.value()

    def result_text(self) -> str:
        if self.error is not None:
            return self.error
        return self.response or ""

    def set_status(self, text: str) -> None:
        self.status = text

    # -- rendering ------------------------------------------------------------

    def set_size(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.root.set_width(width - WIDTH_MARGIN, self.theme)

    def header(self) -> str:
        return f"{self.method}({self.input_type}) -> {self.output_type}"

    def render(self) -> List[Line]:
        theme = self.theme
        lines = [Line(((HEADER, self.header()),)), Line()]

        if self.state is FormState.CALLING:
            lines.append(Line(((LABEL, "Calling..."),)))
            return lines

        if self.state is FormState.RESULT:
            if self.error is not None:
                lines.append(Line(((HEADER, "Error"),)))
                lines.append(Line())
                lines.extend(Line(((ERROR, row),)) for row in self.error.splitlines())
            else:
                lines.append(Line(((HEADER, "Response"),)))
                lines.append(Line())
                lines.extend(Line(((TEXT, row),)) for row in (self.response or "").splitlines())
            lines.append(Line())
            lines.append(Line(((HINT, RESULT_HINT),)))
            if self.status:
                lines.append(Line(((STATUS, self.status),)))
            return lines

        if not self.root.children:
            lines.append(Line(((LABEL, "No input fields."),)))
        lines.extend(self.root.render(0, theme))
        if self.unsupported:
            lines.append(Line(((LABEL, f"(unsupported: {', '.join(self.unsupported)})"),)))
        lines.append(Line())
        lines.append(theme.label_line(0, theme.submit_label, self.on_submit))
        lines.append(Line())
        lines.append(Line(((HINT, EDITING_HINT),)))
        return lines


__all__ = ["DEFAULT_TIMEOUT", "FormController", "FormState", "RESULT_HINT"]
