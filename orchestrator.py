# ~/Apps/tablescope/orchestrator.py
import curses
import time

import structlog

from errors import TableError
from filter_expr import describe
from grid_pane import GridPane
from navigation import NavigationController
from screen_layout import ScreenLayout
from search import FindOptions
from status_bar import render_status

logger = structlog.get_logger(__name__)


class FindPrompt:
    """One-line pattern entry; Enter submits, Esc cancels."""

    def __init__(self, on_submit):
        self.on_submit = on_submit
        self.active = False
        self.buffer = ""
        self.cursor = 0

    def start(self, initial=""):
        self.active = True
        self.buffer = initial
        self.cursor = len(initial)

    def handle_key(self, ch):
        if not self.active:
            return
        if ch in (10, 13, curses.KEY_ENTER):
            pattern = self.buffer
            self.active = False
            self.on_submit(pattern)
            return
        if ch == 27:
            self.active = False
            return
        if ch in (curses.KEY_BACKSPACE, 127, 8):
            if self.cursor > 0:
                self.buffer = self.buffer[: self.cursor - 1] + self.buffer[self.cursor :]
                self.cursor -= 1
            return
        if ch == curses.KEY_LEFT:
            self.cursor = max(0, self.cursor - 1)
            return
        if ch == curses.KEY_RIGHT:
            self.cursor = min(len(self.buffer), self.cursor + 1)
            return
        if isinstance(ch, int) and 32 <= ch < 127:
            self.buffer = self.buffer[: self.cursor] + chr(ch) + self.buffer[self.cursor :]
            self.cursor += 1

    def draw(self, win):
        _, w = win.getmaxyx()
        text = "/" + self.buffer
        try:
            win.addnstr(0, 0, text.ljust(w), max(0, w - 1))
            win.move(0, min(w - 1, 1 + self.cursor))
        except curses.error:
            pass


class Orchestrator:
    def __init__(self, stdscr, app_state, config):
        self.stdscr = stdscr
        self.stdscr.keypad(True)
        self.stdscr.timeout(100)

        self.state = app_state
        self.config = config
        self.style_sets = config.get("STYLE_SETS", [])
        self.layout = ScreenLayout(stdscr)
        self.grids = {}
        self._activate(app_state.active_name)
        self.find_prompt = FindPrompt(self._submit_find)
        self.last_pattern = ""

        self.status_msg = ""
        self.status_msg_until = 0

    def _activate(self, name):
        # each dataset keeps its own selection and scroll
        if name not in self.grids:
            self.grids[name] = GridPane(self.state.datasets[name], theme=self.config.get("THEME"))
        self.grid = self.grids[name]
        self.nav = NavigationController(self.grid)

    def _set_status(self, msg, seconds=3):
        self.status_msg = msg
        self.status_msg_until = time.time() + seconds

    def _run_op(self, op, *args):
        """Run an engine operation, reporting TableError in the status line."""
        try:
            return op(*args)
        except TableError as exc:
            logger.warning("operation_failed", op=getattr(op, "__name__", str(op)), error=str(exc))
            self._set_status(str(exc), seconds=5)
            return None

    # ---------------- actions ----------------

    def _submit_find(self, pattern):
        if not pattern:
            return
        self.last_pattern = pattern
        self._find(backward=False)

    def _find(self, backward):
        if not self.last_pattern:
            self._set_status("No previous search")
            return
        options = FindOptions(backward=backward, wrap_around=True)
        try:
            hit = self.grid.find_next(self.last_pattern, options)
        except TableError as exc:
            self._set_status(str(exc), seconds=5)
            return
        if hit is None:
            self._set_status(f"Pattern not found: {self.last_pattern}")

    def _find_all(self):
        if not self.last_pattern:
            self._set_status("No previous search")
            return
        try:
            results = self.grid.find_all_matches(
                self.last_pattern, context_chars=self.config.get("FIND_CONTEXT_CHARS", 20)
            )
        except TableError as exc:
            self._set_status(str(exc), seconds=5)
            return
        if not results:
            self._set_status(f"Pattern not found: {self.last_pattern}")
            return
        first = results[0]
        self._set_status(
            f"{len(results)} matches; first R{first.row + 1} {first.column}: {first.context}",
            seconds=6,
        )

    def _reset(self):
        self.grid.dataset.reset()
        self._run_op(self.grid.data_changed)
        self._set_status("View reset")

    # ---------------- UI ----------------

    def _status_context(self):
        ds = self.grid.dataset
        df = self.grid.df
        return {
            "status_msg": self.status_msg,
            "status_until": self.status_msg_until,
            "name": ds.metadata.name,
            "source_path": ds.metadata.source_path,
            "shape": (len(df), self.grid.visible_column_count()),
            "row": self.grid.selection.row,
            "col": self.grid.selection.col,
            "column": self.grid.selected_column_name(),
            "last_sort": ds.last_sort,
            "filter": describe(ds.filter) if ds.filter is not None else None,
        }

    def redraw(self):
        try:
            curses.curs_set(1 if self.find_prompt.active else 0)
        except curses.error:
            pass

        self.grid.draw(self.layout.table_win, self.style_sets)

        sw = self.layout.status_win
        sw.erase()
        _, w = sw.getmaxyx()
        try:
            sw.addnstr(0, 0, render_status(self._status_context(), w), max(0, w - 1))
        except curses.error:
            pass
        sw.noutrefresh()

        pw = self.layout.prompt_win
        pw.erase()
        if self.find_prompt.active:
            self.find_prompt.draw(pw)
        pw.noutrefresh()
        curses.doupdate()

    def run(self):
        self.stdscr.clear()
        self.stdscr.refresh()
        if self._run_op(self.grid.dataset.materialize) is None:
            logger.error("initial_materialize_failed", dataset=self.grid.dataset.metadata.name)
        self._safe_redraw()

        while True:
            ch = self.stdscr.getch()

            if ch in (3,):  # Ctrl+C
                break

            if ch == curses.KEY_RESIZE:
                self.layout = ScreenLayout(self.stdscr)
                self._safe_redraw()
                continue

            if self.find_prompt.active:
                self.find_prompt.handle_key(ch)
                self._safe_redraw()
                continue

            if ch == -1:
                continue

            if ch == ord("q"):
                break
            elif ch == ord("/"):
                self.find_prompt.start()
            elif ch == ord("n"):
                self._find(backward=False)
            elif ch == ord("N"):
                self._find(backward=True)
            elif ch == ord("a"):
                self._find_all()
            elif ch == ord("s"):
                self._run_op(self.grid.toggle_sort_selected)
            elif ch == ord("r"):
                self._reset()
            elif ch == ord("\t"):
                name = self.state.switch(1)
                if name is not None:
                    self._activate(name)
            else:
                self._run_op(self.nav.handle_key, ch)

            self._safe_redraw()

    def _safe_redraw(self):
        try:
            self.redraw()
        except TableError as exc:
            # a plan that cannot be collected leaves nothing to draw
            self.layout.table_win.erase()
            self.layout.table_win.noutrefresh()
            self._set_status(str(exc), seconds=10)
            sw = self.layout.status_win
            sw.erase()
            _, w = sw.getmaxyx()
            try:
                sw.addnstr(0, 0, f" {exc}".ljust(w), max(0, w - 1))
            except curses.error:
                pass
            sw.noutrefresh()
            curses.doupdate()
