"""Tests for the structured event log."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import pyperclip
import pytest

from grpcexp.utils import clipboard, logbook, state_dir


def _records() -> list:
    return [json.loads(line) for line in logbook.log_file().read_text(encoding="utf-8").splitlines()]


def test_state_dir_honours_override(tmp_path: Path) -> None:
    assert state_dir() == tmp_path.resolve()
    assert logbook.log_file() == tmp_path.resolve() / "logs" / "grpcexp.log"


def test_state_dir_defaults_to_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("GRPCEXP_STATE_DIR")
    monkeypatch.setenv("HOME", str(tmp_path))
    assert state_dir() == Path(os.environ["HOME"]) / ".grpcexp"


def test_event_writes_json_lines() -> None:
    record = logbook.event("GRPCEXP.Form", "submitted", method="demo.Svc.Call", timeout=5.0)
    logbook.event("GRPCEXP.Tui", "quit")

    lines = _records()
    assert len(lines) == 2
    first, second = lines
    assert first == record
    assert first["channel"] == "GRPCEXP.Form"
    assert first["method"] == "demo.Svc.Call"
    assert first["message"] == "[GRPCEXP.Form] submitted method=demo.Svc.Call timeout=5.0"
    assert first["timestamp"].endswith("Z")
    assert second["message"] == "[GRPCEXP.Tui] quit"


def test_event_serializes_nested_values() -> None:
    logbook.event("GRPCEXP.Form", "opened", unsupported=("a", "b"), extra={"path": Path("x")})
    (record,) = _records()
    assert record["unsupported"] == ["a", "b"]
    assert record["extra"] == {"path": "x"}


class _Collector(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_log_file_is_opened_next_to_other_handlers() -> None:
    logger = logging.getLogger(logbook.LOGGER_NAME)
    collector = _Collector()
    logger.addHandler(collector)
    try:
        logbook.event("GRPCEXP.Tui", "start")
        assert logbook.log_file().exists()
        assert len(_records()) == 1
        assert len(collector.records) == 1

        logbook.reset()
        assert collector in logger.handlers
        logbook.event("GRPCEXP.Tui", "quit")
        assert len(_records()) == 2
    finally:
        logger.removeHandler(collector)


def test_reset_reopens_log_in_new_state_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    logbook.event("GRPCEXP.Tui", "start")
    other = tmp_path / "other"
    monkeypatch.setenv("GRPCEXP_STATE_DIR", str(other))
    logbook.reset()
    logbook.event("GRPCEXP.Tui", "start")
    assert (other / "logs" / "grpcexp.log").exists()
    assert len(_records()) == 1


def test_copy_text(monkeypatch: pytest.MonkeyPatch) -> None:
    copied = []
    monkeypatch.setattr(pyperclip, "copy", copied.append)
    assert clipboard.copy_text("{}") is True
    assert copied == ["{}"]


def test_copy_text_without_clipboard(monkeypatch: pytest.MonkeyPatch) -> None:
    def unavailable(text: str) -> None:
        raise pyperclip.PyperclipException("no clipboard")

    monkeypatch.setattr(pyperclip, "copy", unavailable)
    assert clipboard.copy_text("{}") is False
