"""Utility helpers exposed by grpcexp."""

from .clipboard import copy_text
from .logbook import event, log_file, state_dir

__all__ = [
    "copy_text",
    "event",
    "log_file",
    "state_dir",
]
