from dataclasses import dataclass, field

import pandas as pd

from cell_coercion import display_text

MIN_COL_WIDTH = 4
MAX_COL_WIDTH = 255
# width for columns without a manual width when auto-expand is off
DEFAULT_COL_WIDTH = 12


def _check_width(name, width) -> int:
    width = int(width)
    if not MIN_COL_WIDTH <= width <= MAX_COL_WIDTH:
        raise ValueError(
            f"Width for '{name}' must be between {MIN_COL_WIDTH} and {MAX_COL_WIDTH}, got {width}"
        )
    return width


@dataclass
class ColumnWidthConfig:
    auto_expand: bool = True
    manual_widths: dict = field(default_factory=dict)
    hidden_columns: dict = field(default_factory=dict)

    def __post_init__(self):
        self.manual_widths = {
            str(name): _check_width(name, w) for name, w in self.manual_widths.items()
        }
        self.hidden_columns = {str(k): bool(v) for k, v in self.hidden_columns.items()}

    def is_hidden(self, column) -> bool:
        return self.hidden_columns.get(str(column), False)

    def manual_width(self, column):
        return self.manual_widths.get(str(column))

    def to_dict(self) -> dict:
        return {
            "auto_expand": self.auto_expand,
            "manual_widths": dict(self.manual_widths),
            "hidden_columns": dict(self.hidden_columns),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ColumnWidthConfig":
        data = data or {}
        return cls(
            auto_expand=bool(data.get("auto_expand", True)),
            manual_widths=dict(data.get("manual_widths") or {}),
            hidden_columns=dict(data.get("hidden_columns") or {}),
        )

    def __str__(self):
        text = f"Auto-expand: {'Yes' if self.auto_expand else 'No'}"
        if self.manual_widths:
            text += f", Manual widths: {len(self.manual_widths)}"
        hidden = sum(1 for v in self.hidden_columns.values() if v)
        if hidden:
            text += f", Hidden: {hidden}"
        return text


@dataclass(frozen=True)
class ColumnProjection:
    """Visible columns in display order, plus where each sits in the schema.

    Built once per frame so key handling and drawing agree on what
    ``selection.col`` refers to.
    """

    names: tuple
    schema_index: tuple

    def __len__(self):
        return len(self.names)

    @classmethod
    def build(cls, columns, config: ColumnWidthConfig) -> "ColumnProjection":
        names = []
        positions = []
        for idx, name in enumerate(columns):
            if config.is_hidden(name):
                continue
            names.append(name)
            positions.append(idx)
        return cls(tuple(names), tuple(positions))


@dataclass(frozen=True)
class ColumnWindow:
    col_start: int
    col_end: int
    widths: tuple

    @property
    def total_width(self) -> int:
        return sum(self.widths)

    def width_of(self, col: int):
        if self.col_start <= col < self.col_end:
            return self.widths[col - self.col_start]
        return None


def visible_columns(columns, config: ColumnWidthConfig) -> list:
    return [c for c in columns if not config.is_hidden(c)]


def content_width(series: pd.Series, row_start: int, row_end: int) -> int:
    longest = MIN_COL_WIDTH
    for value in series.iloc[row_start:row_end].tolist():
        longest = max(longest, len(display_text(value)))
    return max(MIN_COL_WIDTH, min(MAX_COL_WIDTH, longest))


def desired_width(
    df: pd.DataFrame, column, config: ColumnWidthConfig, row_start: int, row_end: int
) -> int:
    """Width a column asks for before the remaining budget is applied."""
    manual = config.manual_width(column)
    if manual is not None:
        return manual
    if not config.auto_expand:
        return DEFAULT_COL_WIDTH
    return content_width(df[column], row_start, row_end)


def resolve_window(
    df: pd.DataFrame,
    columns,
    config: ColumnWidthConfig,
    budget: int,
    row_start: int,
    row_end: int,
    col_start: int,
) -> ColumnWindow:
    """Greedily fit columns from ``col_start`` into ``budget`` characters.

    A column is included only if at least MIN_COL_WIDTH characters remain for
    it; the last included column may be narrower than it asked for.
    """
    widths = []
    used = 0
    col_end = col_start
    while col_end < len(columns):
        want = desired_width(df, columns[col_end], config, row_start, row_end)
        remaining = budget - used
        if remaining <= 0:
            break
        actual = min(want, remaining)
        if actual < MIN_COL_WIDTH:
            break
        widths.append(actual)
        used += actual
        col_end += 1
    return ColumnWindow(col_start, col_end, tuple(widths))


def all_column_widths(df: pd.DataFrame, config: ColumnWidthConfig, sample_rows: int = 100) -> dict:
    row_end = min(len(df), sample_rows)
    return {
        name: desired_width(df, name, config, 0, row_end) for name in df.columns
    }
