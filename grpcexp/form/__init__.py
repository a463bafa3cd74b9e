"""Schema-driven form engine."""

from .controller import FormController, FormState
from .editors import ChoiceItem, ChoicePicker, TextInput
from .field import Field, FieldKind, FormInvariantError, build_field, build_fields
from .group import FieldGroup
from .keys import KeyEvent
from .mapping import FieldMap, MapFocus
from .messages import CallCompleted, CopyToClipboard, InvokeCall, Quit
from .oneof import FieldOneof, OneofFocus
from .sequence import FieldList, ListFocus
from .styles import DEFAULT_THEME, Line, Theme, render_text

__all__ = [
    "CallCompleted",
    "ChoiceItem",
    "ChoicePicker",
    "CopyToClipboard",
    "DEFAULT_THEME",
    "Field",
    "FieldGroup",
    "FieldKind",
    "FieldList",
    "FieldMap",
    "FieldOneof",
    "FormController",
    "FormInvariantError",
    "FormState",
    "InvokeCall",
    "KeyEvent",
    "Line",
    "ListFocus",
    "MapFocus",
    "OneofFocus",
    "Quit",
    "TextInput",
    "Theme",
    "build_field",
    "build_fields",
    "render_text",
]
