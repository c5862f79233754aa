import re
from dataclasses import dataclass

import pandas as pd
import structlog

from cell_coercion import display_series
from errors import RegexCompileError

logger = structlog.get_logger(__name__)

MODE_LITERAL = "literal"
MODE_REGEX = "regex"
SEARCH_MODES = (MODE_LITERAL, MODE_REGEX)

DEFAULT_CONTEXT_CHARS = 20
ELLIPSIS = "..."


@dataclass
class FindOptions:
    match_case: bool = False
    whole_word: bool = False
    backward: bool = False
    wrap_around: bool = True


@dataclass(frozen=True)
class FindAllResult:
    row: int
    column: str
    context: str


def _check_mode(mode):
    if mode not in SEARCH_MODES:
        raise ValueError(f"Unknown search mode '{mode}'")


def compile_pattern(pattern: str, match_case: bool):
    source = pattern if match_case else f"(?i:{pattern})"
    try:
        return re.compile(source)
    except re.error as exc:
        raise RegexCompileError(pattern, exc) from exc


def build_matcher(pattern: str, options: FindOptions, mode: str = MODE_LITERAL):
    """Return ``text -> bool`` for ``pattern``; raises RegexCompileError."""
    _check_mode(mode)
    if mode == MODE_REGEX:
        regex = compile_pattern(pattern, options.match_case)
        if options.whole_word:
            return lambda text: regex.fullmatch(text) is not None
        return lambda text: regex.search(text) is not None

    needle = pattern if options.match_case else pattern.lower()

    def literal(text):
        hay = text if options.match_case else text.lower()
        if options.whole_word:
            return hay == needle
        return needle in hay

    return literal


class _ColumnText:
    """Display text of the searched columns, read one column at a time."""

    def __init__(self, df: pd.DataFrame, columns):
        self.df = df
        self.columns = list(columns)
        self._cache = {}

    def cell(self, row: int, col: int) -> str:
        texts = self._cache.get(col)
        if texts is None:
            texts = display_series(self.df[self.columns[col]])
            self._cache[col] = texts
        return texts[row]


def _traversal(start_row, start_col, rows, cols, backward, wrap_around):
    total = rows * cols
    start_row = min(max(start_row, 0), rows - 1)
    start_col = min(max(start_col, 0), cols - 1)
    start = start_row * cols + start_col
    step = -1 if backward else 1
    for k in range(1, total):
        idx = start + step * k
        if not 0 <= idx < total:
            if not wrap_around:
                return
            idx %= total
        yield divmod(idx, cols)


def find_next(
    df: pd.DataFrame,
    columns,
    pattern: str,
    options: FindOptions,
    mode: str = MODE_LITERAL,
    start=(0, 0),
):
    """Return the (row, col) of the next matching cell after ``start``, or None.

    Cells are visited in row-major order (reverse order when backward); the
    start cell itself is never a candidate.
    """
    columns = list(columns)
    rows = len(df)
    if not pattern or rows == 0 or not columns:
        return None
    matcher = build_matcher(pattern, options, mode)
    text = _ColumnText(df, columns)
    for row, col in _traversal(
        start[0], start[1], rows, len(columns), options.backward, options.wrap_around
    ):
        if matcher(text.cell(row, col)):
            return row, col
    return None


def _iter_matches(df, columns, matcher):
    # every cell once, row-major
    texts = [display_series(df[name]) for name in columns]
    for row in range(len(df)):
        for col_idx, name in enumerate(columns):
            cell = texts[col_idx][row]
            if matcher(cell):
                yield row, col_idx, name, cell


def count_matches(
    df: pd.DataFrame, columns, pattern: str, options: FindOptions, mode: str = MODE_LITERAL
) -> int:
    columns = list(columns)
    if not pattern or len(df) == 0 or not columns:
        return 0
    matcher = build_matcher(pattern, options, mode)
    return sum(1 for _ in _iter_matches(df, columns, matcher))


def _match_span(text, pattern, options, mode):
    if mode == MODE_REGEX:
        try:
            regex = compile_pattern(pattern, options.match_case)
        except RegexCompileError:
            return None
        m = regex.search(text)
        return (m.start(), m.end()) if m else None
    hay = text if options.match_case else text.lower()
    needle = pattern if options.match_case else pattern.lower()
    pos = hay.find(needle)
    if pos < 0:
        return None
    return pos, pos + len(needle)


def generate_context(
    text: str,
    pattern: str,
    context_chars: int,
    options: FindOptions,
    mode: str = MODE_LITERAL,
) -> str:
    """Substring around the first match in ``text``, with ``...`` marking cuts.

    Falls back to the whole cell when the match cannot be located again.
    """
    span = _match_span(text, pattern, options, mode)
    if span is None:
        return text
    start = max(0, span[0] - context_chars)
    end = min(len(text), span[1] + context_chars)
    context = text[start:end]
    if start > 0:
        context = ELLIPSIS + context
    if end < len(text):
        context += ELLIPSIS
    return context


def find_all_matches(
    df: pd.DataFrame,
    columns,
    pattern: str,
    options: FindOptions,
    mode: str = MODE_LITERAL,
    context_chars: int = DEFAULT_CONTEXT_CHARS,
) -> list[FindAllResult]:
    columns = list(columns)
    if not pattern or len(df) == 0 or not columns:
        return []
    matcher = build_matcher(pattern, options, mode)
    results = [
        FindAllResult(row, name, generate_context(cell, pattern, context_chars, options, mode))
        for row, _, name, cell in _iter_matches(df, columns, matcher)
    ]
    logger.debug("find_all", pattern=pattern, mode=mode, matches=len(results))
    return results
