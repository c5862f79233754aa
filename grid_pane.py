# ~/Apps/tablescope/grid_pane.py
import curses
from dataclasses import dataclass, field
from typing import Optional

import pandas as pd
import structlog

from cell_coercion import display_text, json_value
from column_widths import ColumnProjection, ColumnWindow, all_column_widths, desired_width, resolve_window
from managed_dataset import ManagedDataset
from search import MODE_LITERAL, FindOptions, count_matches, find_all_matches, find_next
from style_rules import MatchedStyle, StyleConfig, evaluate_row_rules, resolve_cell_style

logger = structlog.get_logger(__name__)

# header line plus top and bottom border
CHROME_ROWS = 3
# left and right border
CHROME_COLS = 2


@dataclass
class TableSelection:
    row: int = 0
    col: int = 0


@dataclass
class TableScroll:
    y: int = 0
    x: int = 0


@dataclass
class RenderedCell:
    text: str
    width: int
    style: MatchedStyle


@dataclass
class RenderedRow:
    index: int
    cells: list = field(default_factory=list)
    selected: bool = False


@dataclass
class RenderedGrid:
    columns: list
    headers: list
    rows: list
    window: ColumnWindow
    row_start: int
    row_end: int
    scrollbar: Optional[tuple] = None


def scrollbar_thumb(total_rows: int, visible_rows: int, offset: int):
    """(thumb_start, thumb_len) within a track of ``visible_rows`` cells, or None."""
    if visible_rows <= 0 or total_rows <= visible_rows:
        return None
    thumb_len = max(1, visible_rows * visible_rows // total_rows)
    travel = visible_rows - thumb_len
    max_offset = total_rows - visible_rows
    thumb_start = min(travel, offset * travel // max_offset) if max_offset else 0
    return thumb_start, thumb_len


def _fit(text: str, width: int) -> str:
    return text[:width].ljust(width)


class GridPane:
    FALLBACK_HEIGHT = 24
    FALLBACK_WIDTH = 120

    def __init__(self, dataset: ManagedDataset, theme: StyleConfig = None):
        self.dataset = dataset
        self.theme = theme or StyleConfig()
        self.selection = TableSelection()
        self.scroll = TableScroll()
        self.highlight_mode = "cell"
        # last drawn area; the fallback is used until the first draw
        self.area_height = self.FALLBACK_HEIGHT
        self.area_width = self.FALLBACK_WIDTH
        self._palette = None

    # ---------- dataset views ----------
    @property
    def df(self) -> pd.DataFrame:
        return self.dataset.materialize()

    def projection(self) -> ColumnProjection:
        return ColumnProjection.build(self.df.columns, self.dataset.column_width_config)

    def visible_columns(self) -> list:
        return list(self.projection().names)

    def row_count(self) -> int:
        return len(self.df)

    def visible_column_count(self) -> int:
        return len(self.projection())

    def set_area(self, height: int, width: int):
        self.area_height = max(0, int(height))
        self.area_width = max(0, int(width))

    def visible_row_count(self) -> int:
        return max(1, self.area_height - CHROME_ROWS)

    def width_budget(self) -> int:
        return max(0, self.area_width - CHROME_COLS)

    def row_window(self):
        start = self.scroll.y
        return start, min(self.row_count(), start + self.visible_row_count())

    def column_window(self, projection: ColumnProjection = None) -> ColumnWindow:
        projection = projection or self.projection()
        row_start, row_end = self.row_window()
        return resolve_window(
            self.df,
            projection.names,
            self.dataset.column_width_config,
            self.width_budget(),
            row_start,
            row_end,
            self.scroll.x,
        )

    # ---------- selection / scroll ----------
    def clamp_selection(self):
        rows = self.row_count()
        cols = self.visible_column_count()
        self.selection.row = min(max(self.selection.row, 0), max(0, rows - 1))
        self.selection.col = min(max(self.selection.col, 0), max(0, cols - 1))

    def scroll_to_selection(self):
        """Adjust scroll so the selected cell lies inside the drawn window."""
        rows = self.row_count()
        visible_rows = self.visible_row_count()
        if rows == 0:
            self.scroll.y = 0
        elif self.selection.row < self.scroll.y:
            self.scroll.y = self.selection.row
        elif self.selection.row >= self.scroll.y + visible_rows:
            self.scroll.y = self.selection.row - visible_rows + 1

        projection = self.projection()
        if len(projection) == 0:
            self.scroll.x = 0
            return
        self.scroll.x = min(max(self.scroll.x, 0), len(projection) - 1)
        col = self.selection.col
        window = self.column_window(projection)
        if col < window.col_start or col >= window.col_end:
            self.scroll.x = col
        elif col == window.col_end - 1:
            row_start, row_end = self.row_window()
            want = desired_width(
                self.df,
                projection.names[col],
                self.dataset.column_width_config,
                row_start,
                row_end,
            )
            if want > window.width_of(col):
                self.scroll.x = col

    def _after_move(self):
        self.clamp_selection()
        self.scroll_to_selection()

    def select_cell(self, row: int, col: int):
        self.selection.row = row
        self.selection.col = col
        self._after_move()

    # ---------- navigation ----------
    def move_up(self):
        self.selection.row -= 1
        self._after_move()

    def move_down(self):
        self.selection.row = min(self.selection.row + 1, max(0, self.row_count() - 1))
        self._after_move()

    def move_left(self):
        self.selection.col -= 1
        self._after_move()

    def move_right(self):
        self.selection.col = min(self.selection.col + 1, max(0, self.visible_column_count() - 1))
        self._after_move()

    def page_up(self):
        self.selection.row -= self.visible_row_count()
        self._after_move()

    def page_down(self):
        self.selection.row += self.visible_row_count()
        self._after_move()

    def column_page_size(self) -> int:
        """Columns per horizontal page: however many fit at the current scroll."""
        window = self.column_window()
        return max(1, window.col_end - window.col_start)

    def page_left(self):
        self.selection.col -= self.column_page_size()
        self._after_move()

    def page_right(self):
        self.selection.col += self.column_page_size()
        self._after_move()

    def go_home(self):
        self.selection.row = 0
        self._after_move()

    def go_end(self):
        self.selection.row = max(0, self.row_count() - 1)
        self._after_move()

    def first_column(self):
        self.selection.col = 0
        self._after_move()

    def last_column(self):
        self.selection.col = max(0, self.visible_column_count() - 1)
        self._after_move()

    # ---------- outward queries ----------
    def selected_column_name(self):
        names = self.visible_columns()
        if not names:
            return None
        return names[min(self.selection.col, len(names) - 1)]

    def _selected_value(self):
        name = self.selected_column_name()
        if name is None or self.row_count() == 0:
            return None
        self.clamp_selection()
        return self.df[name].iat[self.selection.row]

    def selected_cell_value(self) -> str:
        return display_text(self._selected_value())

    def selected_cell_json_value(self):
        return json_value(self._selected_value())

    def sort_indicator(self, column) -> str:
        return self.dataset.sort_indicator(column)

    def all_column_widths(self, sample_rows: int = 100) -> dict:
        return all_column_widths(self.df, self.dataset.column_width_config, sample_rows)

    def toggle_sort_selected(self):
        name = self.selected_column_name()
        if name is not None:
            self.dataset.toggle_sort(name)
            self._after_move()

    def data_changed(self):
        """Re-clamp after the snapshot or the column config was replaced."""
        self._after_move()

    # ---------- search ----------
    def find_next(self, pattern: str, options: FindOptions = None, mode: str = MODE_LITERAL):
        """Move the selection to the next match; returns (row, col) or None."""
        options = options or FindOptions()
        self.clamp_selection()
        hit = find_next(
            self.df,
            self.visible_columns(),
            pattern,
            options,
            mode,
            start=(self.selection.row, self.selection.col),
        )
        if hit is not None:
            self.select_cell(*hit)
        logger.debug("find_next", pattern=pattern, mode=mode, hit=hit)
        return hit

    def count_matches(self, pattern: str, options: FindOptions = None, mode: str = MODE_LITERAL):
        return count_matches(self.df, self.visible_columns(), pattern, options or FindOptions(), mode)

    def find_all_matches(
        self, pattern: str, options: FindOptions = None, mode: str = MODE_LITERAL, context_chars=20
    ):
        return find_all_matches(
            self.df, self.visible_columns(), pattern, options or FindOptions(), mode, context_chars
        )

    # ---------- frame ----------
    def build_frame(self, style_sets=()) -> RenderedGrid:
        """Compute what the current area shows; only the visible window is read."""
        self._after_move()
        projection = self.projection()
        window = self.column_window(projection)
        names = list(projection.names[window.col_start : window.col_end])
        positions = list(projection.schema_index[window.col_start : window.col_end])
        row_start, row_end = self.row_window()

        headers = [
            RenderedCell(_fit(self.sort_indicator(n) + str(n), w), w, self.theme.header)
            for n, w in zip(names, window.widths)
        ]

        rows = []
        block = self.df.iloc[row_start:row_end, positions]
        for offset, values in enumerate(block.itertuples(index=False, name=None)):
            r = row_start + offset
            texts = [display_text(v) for v in values]
            styling = evaluate_row_rules(style_sets, dict(zip(map(str, names), texts)), names)
            row_selected = r == self.selection.row
            cells = []
            for j, (text, width) in enumerate(zip(texts, window.widths)):
                col = window.col_start + j
                style = resolve_cell_style(
                    self.theme,
                    styling,
                    r,
                    j,
                    is_selected_cell=(
                        self.highlight_mode == "cell"
                        and row_selected
                        and col == self.selection.col
                    ),
                    highlight_row=self.highlight_mode == "row" and row_selected,
                )
                cells.append(RenderedCell(_fit(text, width), width, style))
            rows.append(RenderedRow(r, cells, row_selected))

        return RenderedGrid(
            columns=names,
            headers=headers,
            rows=rows,
            window=window,
            row_start=row_start,
            row_end=row_end,
            scrollbar=scrollbar_thumb(self.row_count(), self.visible_row_count(), self.scroll.y),
        )

    # ---------- rendering ----------
    def draw(self, win, style_sets=()):
        h, w = win.getmaxyx()
        self.set_area(h, w)
        frame = self.build_frame(style_sets)
        if self._palette is None:
            self._palette = CursesPalette()
        attr_of = self._palette.attr

        win.erase()
        try:
            win.attrset(attr_of(self.theme.border))
            win.border()
            win.attrset(0)
        except curses.error:
            pass

        x = 1
        for cell in frame.headers:
            win.addnstr(1, x, cell.text, cell.width, attr_of(cell.style))
            x += cell.width

        for i, row in enumerate(frame.rows):
            y = 2 + i
            if y >= h - 1:
                break
            x = 1
            for cell in row.cells:
                win.addnstr(y, x, cell.text, cell.width, attr_of(cell.style))
                x += cell.width

        if frame.scrollbar is not None and w > 0:
            start, length = frame.scrollbar
            # ACS_* constants only exist once curses is initialised
            thumb = getattr(curses, "ACS_CKBOARD", ord("#"))
            for i in range(length):
                y = 2 + start + i
                if y >= h - 1:
                    break
                try:
                    win.addch(y, w - 1, thumb, attr_of(self.theme.border))
                except curses.error:
                    pass

        win.noutrefresh()


class CursesPalette:
    """Maps MatchedStyle values onto curses attributes, allocating pairs lazily."""

    _BASE = {
        "Black": curses.COLOR_BLACK,
        "Red": curses.COLOR_RED,
        "Green": curses.COLOR_GREEN,
        "Yellow": curses.COLOR_YELLOW,
        "Blue": curses.COLOR_BLUE,
        "Magenta": curses.COLOR_MAGENTA,
        "Cyan": curses.COLOR_CYAN,
        "White": curses.COLOR_WHITE,
        "Gray": curses.COLOR_WHITE,
        "DarkGray": curses.COLOR_BLACK,
    }
    _MODIFIERS = {
        "Bold": curses.A_BOLD,
        "Dim": curses.A_DIM,
        "Italic": getattr(curses, "A_ITALIC", 0),
        "Underlined": curses.A_UNDERLINE,
        "SlowBlink": curses.A_BLINK,
        "RapidBlink": curses.A_BLINK,
        "Reversed": curses.A_REVERSE,
        "Hidden": curses.A_INVIS,
        "CrossedOut": 0,
    }

    def __init__(self):
        self.pairs = {}
        self.enabled = True
        try:
            curses.start_color()
            curses.use_default_colors()
        except curses.error:
            self.enabled = False

    def color_number(self, name) -> int:
        if name is None or name == "Reset":
            return -1
        colors = getattr(curses, "COLORS", 8)
        if name.startswith("indexed("):
            n = int(name[len("indexed(") : -1])
            return n if n < colors else -1
        if name.startswith("Light"):
            base = self._BASE[name[len("Light") :]]
            return base + 8 if colors >= 16 else base
        if name == "DarkGray" and colors >= 16:
            return 8
        return self._BASE[name]

    def pair_for(self, fg, bg) -> int:
        key = (fg, bg)
        if key == (None, None) or not self.enabled:
            return 0
        if key not in self.pairs:
            number = len(self.pairs) + 1
            try:
                curses.init_pair(number, self.color_number(fg), self.color_number(bg))
            except curses.error:
                number = 0
            self.pairs[key] = number
        return self.pairs[key]

    def attr(self, style: MatchedStyle) -> int:
        attr = curses.color_pair(self.pair_for(style.fg, style.bg))
        for m in style.modifiers:
            attr |= self._MODIFIERS[m]
        return attr
