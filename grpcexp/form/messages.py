"""Messages delivered into the form and effects returned out of it.

The form never performs I/O. It returns an effect for the runtime to carry
out, and the runtime reports back with a :class:`CallCompleted` message.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class CallCompleted:
    """Outcome of an invocation: exactly one of ``response``/``error`` is set."""

    response: Optional[str] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.response is None) == (self.error is None):
            raise ValueError("CallCompleted needs exactly one of response or error")

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class InvokeCall:
    method: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timeout: float = 30.0


@dataclass(frozen=True)
class CopyToClipboard:
    text: str


@dataclass(frozen=True)
class Quit:
    pass


__all__ = ["CallCompleted", "CopyToClipboard", "InvokeCall", "Quit"]
