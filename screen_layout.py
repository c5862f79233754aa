import curses

STATUS_ROWS = 1
PROMPT_ROWS = 1


class ScreenLayout:
    """Table area on top, then one status line and one find-prompt line."""

    def __init__(self, stdscr):
        self.stdscr = stdscr
        self.H, self.W = stdscr.getmaxyx()
        self.table_h = max(1, self.H - STATUS_ROWS - PROMPT_ROWS)

        self.table_win = self._window(self.table_h, 0)
        self.status_win = self._window(STATUS_ROWS, self.table_h)
        # the prompt keeps the cursor while a pattern is typed
        self.prompt_win = self._window(PROMPT_ROWS, self.table_h + STATUS_ROWS, leave_cursor=False)

    def _window(self, height, top, leave_cursor=True):
        win = curses.newwin(height, self.W, top, 0)
        if leave_cursor:
            win.leaveok(True)
        return win
