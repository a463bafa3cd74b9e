"""Curses runtime for the grpcexp explorer.

Screens flow services -> methods -> form. Every tree mutation happens on the
curses thread; calls run on a single background worker and report back
through a queue that the loop drains before drawing each frame.
"""

from __future__ import annotations

import curses
import queue
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .core.client import ClientError, GrpcClient, InvocationError, MethodInfo
from .form import keys
from .form.controller import DEFAULT_TIMEOUT, FormController
from .form.keys import KeyEvent
from .form.messages import CallCompleted, CopyToClipboard, InvokeCall, Quit
from .form.styles import (
    BRACKET,
    CURSOR,
    DEFAULT_THEME,
    ERROR,
    FOCUSED_LABEL,
    HEADER,
    HINT,
    LABEL,
    PLACEHOLDER,
    SELECTED,
    STATUS,
    TEXT,
    UNSELECTED,
    Line,
    Theme,
)
from .utils import copy_text, logbook

MIN_HEIGHT = 10
MIN_WIDTH = 50
POLL_INTERVAL_MS = 100
# calls abandoned with esc run on until their deadline
CALL_WORKERS = 4

LIST_HINT = "↑/↓: select • type to filter • enter: open • esc: back • ctrl+c: quit"

_CTRL_NAMES = {
    "\x01": keys.CTRL_A,
    "\x03": keys.CTRL_C,
    "\x05": keys.CTRL_E,
    "\x0b": keys.CTRL_K,
    "\x13": keys.CTRL_S,
    "\x15": keys.CTRL_U,
    "\x17": keys.CTRL_W,
    "\t": keys.TAB,
    "\n": keys.ENTER,
    "\r": keys.ENTER,
    "\x1b": keys.ESC,
    "\x7f": keys.BACKSPACE,
    "\x08": keys.BACKSPACE,
}

_CURSES_NAMES = {
    curses.KEY_UP: keys.UP,
    curses.KEY_DOWN: keys.DOWN,
    curses.KEY_LEFT: keys.LEFT,
    curses.KEY_RIGHT: keys.RIGHT,
    curses.KEY_HOME: keys.HOME,
    curses.KEY_END: keys.END,
    curses.KEY_DC: keys.DELETE,
    curses.KEY_BACKSPACE: keys.BACKSPACE,
    curses.KEY_ENTER: keys.ENTER,
    curses.KEY_RESIZE: keys.RESIZE,
    getattr(curses, "KEY_BTAB", 353): keys.SHIFT_TAB,
}


class Screen(Enum):
    SERVICES = "services"
    METHODS = "methods"
    FORM = "form"


def _tui_log(action: str, **fields: object) -> None:
    """Emit a structured runtime log entry with ``action`` and ``fields``."""

    logbook.event("GRPCEXP.Tui", action, **fields)


def _key_from_curses(value: Union[int, str]) -> Optional[KeyEvent]:
    """Translate a ``get_wch`` result into a :class:`KeyEvent`."""

    if isinstance(value, str):
        if value in _CTRL_NAMES:
            return KeyEvent(_CTRL_NAMES[value])
        if len(value) == 1 and value.isprintable():
            return KeyEvent(value)
        return None
    name = _CURSES_NAMES.get(value)
    if name is not None:
        return KeyEvent(name)
    return None


def _safe_addstr(win: "curses._CursesWindow", y: int, x: int, text: str, attr: int = 0) -> None:
    """Safely add ``text`` at ``(y, x)`` without raising ``curses.error``."""

    max_y, max_x = win.getmaxyx()
    if y < 0 or x < 0 or y >= max_y or x >= max_x:
        return
    available = max_x - x
    if available <= 0:
        return
    snippet = text[:available]
    try:
        win.addstr(y, x, snippet, attr)
    except curses.error:
        # Some terminals are strict about drawing on the bottom-right cell.
        pass


def _render_resize_hint(stdscr: "curses._CursesWindow", palette: Dict[str, int]) -> None:
    """Render a hint asking the operator to enlarge their terminal."""

    height, width = stdscr.getmaxyx()
    stdscr.erase()
    message = f"grpcexp needs at least {MIN_WIDTH}x{MIN_HEIGHT} to render."
    hint = "Resize your terminal or press ctrl+c to exit."
    row = max(0, height // 2 - 1)
    _safe_addstr(stdscr, row, max(0, (width - len(message)) // 2), message, palette[HEADER])
    _safe_addstr(stdscr, row + 2, max(0, (width - len(hint)) // 2), hint, palette[HINT])
    stdscr.refresh()


def _visible_window(lines: Sequence[Line], height: int) -> Tuple[int, int]:
    """Return the ``[start, end)`` slice keeping the deepest focus row on screen."""

    if height <= 0:
        return 0, 0
    if len(lines) <= height:
        return 0, len(lines)
    focus_rows = [row for row, line in enumerate(lines) if line.focus]
    anchor = focus_rows[-1] if focus_rows else 0
    start = min(max(0, anchor - height // 2), len(lines) - height)
    return start, start + height


def draw_lines(
    stdscr: "curses._CursesWindow",
    lines: Sequence[Line],
    palette: Dict[str, int],
) -> None:
    """Draw rendered ``lines`` onto ``stdscr`` using ``palette`` attributes."""

    height, width = stdscr.getmaxyx()
    stdscr.erase()
    start, end = _visible_window(lines, height)
    for row, line in enumerate(lines[start:end]):
        column = 0
        for style, text in line.spans:
            if column >= width:
                break
            _safe_addstr(stdscr, row, column, text, palette.get(style, 0))
            column += len(text)
    stdscr.refresh()


def default_palette() -> Dict[str, int]:
    """Monochrome attributes keyed by style name."""

    return {
        LABEL: curses.A_DIM,
        FOCUSED_LABEL: curses.A_BOLD,
        SELECTED: curses.A_BOLD,
        UNSELECTED: curses.A_DIM,
        BRACKET: curses.A_DIM,
        TEXT: curses.A_NORMAL,
        PLACEHOLDER: curses.A_DIM,
        CURSOR: curses.A_REVERSE,
        ERROR: curses.A_BOLD,
        HEADER: curses.A_BOLD,
        HINT: curses.A_DIM,
        STATUS: curses.A_BOLD,
    }


def _color_palette(palette: Dict[str, int]) -> Dict[str, int]:
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(1, curses.COLOR_MAGENTA, -1)
    curses.init_pair(2, curses.COLOR_WHITE, -1)
    curses.init_pair(3, curses.COLOR_RED, -1)
    curses.init_pair(4, curses.COLOR_GREEN, -1)
    curses.init_pair(5, curses.COLOR_CYAN, -1)
    palette[FOCUSED_LABEL] = curses.color_pair(1) | curses.A_BOLD
    palette[SELECTED] = curses.color_pair(1) | curses.A_BOLD
    palette[TEXT] = curses.color_pair(2)
    palette[ERROR] = curses.color_pair(3) | curses.A_BOLD
    palette[STATUS] = curses.color_pair(4) | curses.A_BOLD
    palette[HEADER] = curses.color_pair(5) | curses.A_BOLD
    return palette


# ---------------------------------------------------------------------------
# List screen
# ---------------------------------------------------------------------------


class ListScreen:
    """Filterable single-selection list used for services and methods."""

    def __init__(self, title: str, items: Sequence[str], details: Optional[Sequence[str]] = None) -> None:
        self.title = title
        self.items = list(items)
        self.details = list(details) if details is not None else [""] * len(self.items)
        self.filter = ""
        self.selected = 0
        self.status = ""

    def visible(self) -> List[int]:
        needle = self.filter.lower()
        return [index for index, item in enumerate(self.items) if needle in item.lower()]

    def current(self) -> Optional[str]:
        matches = self.visible()
        if not matches:
            return None
        return self.items[matches[min(self.selected, len(matches) - 1)]]

    def handle_key(self, event: KeyEvent) -> Optional[str]:
        """Apply ``event``; return the chosen item when ``enter`` picks one."""

        key = event.key
        count = len(self.visible())
        if key == keys.ENTER:
            return self.current()
        if key in (keys.DOWN, keys.TAB):
            if count:
                self.selected = (self.selected + 1) % count
        elif key in (keys.UP, keys.SHIFT_TAB):
            if count:
                self.selected = (self.selected - 1) % count
        elif key == keys.BACKSPACE:
            self.filter = self.filter[:-1]
            self.selected = 0
        elif key == keys.CTRL_U:
            self.filter = ""
            self.selected = 0
        elif event.is_text:
            self.filter += key
            self.selected = 0
        return None

    def render(self, theme: Theme = DEFAULT_THEME) -> List[Line]:
        lines = [Line(((HEADER, self.title),)), Line()]
        if self.filter:
            lines.append(Line(((LABEL, "filter: "), (TEXT, self.filter))))
            lines.append(Line())
        matches = self.visible()
        if not matches:
            lines.append(Line(((LABEL, "No items." if not self.items else "No matches."),)))
        for position, index in enumerate(matches):
            focused = position == min(self.selected, len(matches) - 1)
            line = theme.label_line(0, self.items[index], focused)
            if self.details[index]:
                line = line.extended([(HINT, f"  {self.details[index]}")])
            lines.append(line)
        lines.append(Line())
        if self.status:
            lines.append(Line(((ERROR, self.status),)))
        lines.append(Line(((HINT, LIST_HINT),)))
        return lines


# ---------------------------------------------------------------------------
# Runtime
# ---------------------------------------------------------------------------


@dataclass
class Explorer:
    """Screen flow and effect execution, independent of curses."""

    client: GrpcClient
    timeout: float = DEFAULT_TIMEOUT
    theme: Theme = DEFAULT_THEME
    screen: Screen = Screen.SERVICES
    services: Optional[ListScreen] = None
    methods: Optional[ListScreen] = None
    form: Optional[FormController] = None
    running: bool = True
    width: int = 80
    height: int = 24
    inbox: "queue.Queue[Tuple[FormController, CallCompleted]]" = field(default_factory=queue.Queue)
    _method_infos: Dict[str, MethodInfo] = field(default_factory=dict)
    _executor: Optional[ThreadPoolExecutor] = None

    def start(self) -> None:
        names = self.client.list_services()
        self.services = ListScreen("Services", names)
        self.screen = Screen.SERVICES
        _tui_log("start", services=len(names))

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    def set_size(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        if self.form is not None:
            self.form.set_size(width, height)

    # -- input ----------------------------------------------------------------

    def handle_key(self, event: KeyEvent) -> None:
        if event.key == keys.CTRL_C:
            _tui_log("quit", screen=self.screen.value)
            self.running = False
            return
        if event.key == keys.ESC:
            self.back()
            return
        if self.screen is Screen.SERVICES and self.services is not None:
            choice = self.services.handle_key(event)
            if choice is not None:
                self.open_service(choice)
        elif self.screen is Screen.METHODS and self.methods is not None:
            choice = self.methods.handle_key(event)
            if choice is not None:
                self.open_method(choice)
        elif self.screen is Screen.FORM and self.form is not None:
            _, effect = self.form.handle_event(event)
            self.run_effect(effect)

    def back(self) -> None:
        _tui_log("back", screen=self.screen.value)
        if self.screen is Screen.FORM:
            self.form = None
            self.screen = Screen.METHODS
        elif self.screen is Screen.METHODS:
            self.methods = None
            self.screen = Screen.SERVICES
        else:
            self.running = False

    def open_service(self, service: str) -> None:
        try:
            infos = self.client.list_methods(service)
        except ClientError as exc:
            _tui_log("list_methods_failed", service=service, error=str(exc))
            if self.services is not None:
                self.services.status = f"error listing methods: {exc}"
            return
        self._method_infos = {info.full_name: info for info in infos}
        self.methods = ListScreen(
            f"Methods of {service}",
            [info.full_name for info in infos],
            [f"({info.input_type}) -> {info.output_type}" for info in infos],
        )
        self.screen = Screen.METHODS
        _tui_log("open_service", service=service, methods=len(infos))

    def open_method(self, method: str) -> None:
        try:
            schema = self.client.resolve_input_schema(method)
        except ClientError as exc:
            _tui_log("resolve_failed", method=method, error=str(exc))
            if self.methods is not None:
                self.methods.status = f"error resolving {method}: {exc}"
            return
        info = self._method_infos.get(method)
        self.form = FormController(
            method,
            schema,
            input_type=info.input_type if info else schema.type_name,
            output_type=info.output_type if info else "",
            theme=self.theme,
            timeout=self.timeout,
        )
        self.form.set_size(self.width, self.height)
        self.run_effect(self.form.init())
        self.screen = Screen.FORM
        _tui_log("open_method", method=method)

    # -- effects --------------------------------------------------------------

    def run_effect(self, effect: Any) -> None:
        if effect is None:
            return
        if isinstance(effect, InvokeCall):
            self._submit(effect)
        elif isinstance(effect, CopyToClipboard):
            copied = copy_text(effect.text)
            _tui_log("copy", ok=copied)
            if self.form is not None:
                self.form.set_status("Copied to clipboard." if copied else "Clipboard unavailable.")
        elif isinstance(effect, Quit):
            _tui_log("quit", screen=self.screen.value)
            self.running = False

    def _submit(self, call: InvokeCall) -> None:
        form = self.form
        if form is None:
            return
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=CALL_WORKERS, thread_name_prefix="grpcexp-call")
        _tui_log("invoke", method=call.method, timeout=call.timeout)
        self._executor.submit(self._invoke, form, call)

    def _invoke(self, form: FormController, call: InvokeCall) -> None:
        try:
            response = self.client.invoke(call.method, call.payload, call.timeout)
        except InvocationError as exc:
            message = CallCompleted(error=str(exc))
        except Exception as exc:  # pragma: no cover - surfaced as the call result
            message = CallCompleted(error=f"unexpected error: {exc}")
        else:
            message = CallCompleted(response=response)
        self.inbox.put((form, message))

    def drain(self) -> None:
        """Deliver finished calls to the form that issued them."""

        while True:
            try:
                form, message = self.inbox.get_nowait()
            except queue.Empty:
                return
            if form is not self.form:
                _tui_log("stale_result", method=form.method)
                continue
            form.handle_event(message)

    # -- rendering ------------------------------------------------------------

    def render(self) -> List[Line]:
        if self.screen is Screen.FORM and self.form is not None:
            return self.form.render()
        if self.screen is Screen.METHODS and self.methods is not None:
            return self.methods.render(self.theme)
        if self.services is not None:
            return self.services.render(self.theme)
        return [Line(((LABEL, "No services found."),))]


def run_loop(stdscr: "curses._CursesWindow", explorer: Explorer, palette: Dict[str, int]) -> None:
    """Poll keys, drain results and redraw until the explorer stops."""

    height, width = stdscr.getmaxyx()
    explorer.set_size(width, height)
    while explorer.running:
        explorer.drain()
        height, width = stdscr.getmaxyx()
        if height < MIN_HEIGHT or width < MIN_WIDTH:
            _render_resize_hint(stdscr, palette)
        else:
            draw_lines(stdscr, explorer.render(), palette)
        try:
            value = stdscr.get_wch()
        except curses.error:
            continue
        event = _key_from_curses(value)
        if event is None:
            continue
        if event.key == keys.RESIZE:
            height, width = stdscr.getmaxyx()
            explorer.set_size(width, height)
            continue
        explorer.handle_key(event)


def launch_tui(client: GrpcClient, *, timeout: float = DEFAULT_TIMEOUT) -> None:
    """Launch the curses explorer against ``client``."""

    explorer = Explorer(client=client, timeout=timeout)
    explorer.start()

    def main(stdscr: "curses._CursesWindow") -> None:
        try:
            curses.curs_set(0)
        except curses.error:
            pass
        try:
            curses.set_escdelay(25)
        except (AttributeError, curses.error):
            pass
        stdscr.keypad(True)
        stdscr.timeout(POLL_INTERVAL_MS)

        palette = default_palette()
        if curses.has_colors():
            palette = _color_palette(palette)
        run_loop(stdscr, explorer, palette)

    try:
        curses.wrapper(main)
    finally:
        explorer.shutdown()


__all__ = [
    "Explorer",
    "ListScreen",
    "Screen",
    "default_palette",
    "draw_lines",
    "launch_tui",
    "run_loop",
]
