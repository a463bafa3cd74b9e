"""System clipboard access for copying call results."""

from __future__ import annotations

import logging

import pyperclip

log = logging.getLogger(__name__)


def copy_text(text: str) -> bool:
    """Place ``text`` on the system clipboard.

    Returns ``False`` when no clipboard mechanism is available on the host
    (for example a headless session without ``xclip``/``wl-copy``).
    """

    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as exc:
        log.warning("Clipboard unavailable: %s", exc)
        return False
    return True
