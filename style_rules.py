import re
from dataclasses import dataclass, field
from fnmatch import fnmatchcase

import structlog

from errors import FilterError
from filter_expr import evaluate_row, expr_from_dict, expr_to_dict

logger = structlog.get_logger(__name__)

COLORS = (
    "Reset",
    "Black",
    "Red",
    "Green",
    "Yellow",
    "Blue",
    "Magenta",
    "Cyan",
    "White",
    "Gray",
    "DarkGray",
    "LightRed",
    "LightGreen",
    "LightYellow",
    "LightBlue",
    "LightMagenta",
    "LightCyan",
)
MODIFIERS = (
    "Bold",
    "Dim",
    "Italic",
    "Underlined",
    "SlowBlink",
    "RapidBlink",
    "Reversed",
    "Hidden",
    "CrossedOut",
)
_INDEXED = re.compile(r"^indexed\((\d{1,3})\)$")

SCOPE_ROW = "row"
SCOPE_CELL = "cell"


def _check_color(color):
    if color is None or color in COLORS:
        return color
    m = _INDEXED.match(str(color))
    if m and int(m.group(1)) <= 255:
        return color
    raise ValueError(f"Unknown color: {color}")


@dataclass(frozen=True)
class MatchedStyle:
    fg: str = None
    bg: str = None
    modifiers: tuple = ()

    def __post_init__(self):
        _check_color(self.fg)
        _check_color(self.bg)
        mods = tuple(self.modifiers or ())
        for m in mods:
            if m not in MODIFIERS:
                raise ValueError(f"Unknown modifier: {m}")
        object.__setattr__(self, "modifiers", mods)

    def over(self, base: "MatchedStyle") -> "MatchedStyle":
        """Layer this style on ``base``: unset colours show through."""
        mods = tuple(dict.fromkeys(base.modifiers + self.modifiers))
        return MatchedStyle(self.fg or base.fg, self.bg or base.bg, mods)

    def to_dict(self) -> dict:
        data = {}
        if self.fg:
            data["fg"] = self.fg
        if self.bg:
            data["bg"] = self.bg
        if self.modifiers:
            data["modifiers"] = list(self.modifiers)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "MatchedStyle":
        data = data or {}
        return cls(data.get("fg"), data.get("bg"), tuple(data.get("modifiers") or ()))


@dataclass
class StyleRule:
    match_expr: object
    style: MatchedStyle
    scope: str = SCOPE_CELL
    column_scope: list = None

    def __post_init__(self):
        if self.scope not in (SCOPE_ROW, SCOPE_CELL):
            raise ValueError(f"Unknown style scope '{self.scope}'")

    def to_dict(self) -> dict:
        data = {
            "match_expr": expr_to_dict(self.match_expr),
            "style": self.style.to_dict(),
            "scope": self.scope,
        }
        if self.column_scope:
            data["column_scope"] = list(self.column_scope)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "StyleRule":
        return cls(
            match_expr=expr_from_dict(data["match_expr"]),
            style=MatchedStyle.from_dict(data.get("style")),
            scope=str(data.get("scope", SCOPE_CELL)).lower(),
            column_scope=list(data["column_scope"]) if data.get("column_scope") else None,
        )


@dataclass
class StyleSet:
    name: str
    description: str = ""
    rules: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "rules": [r.to_dict() for r in self.rules],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StyleSet":
        return cls(
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            rules=[StyleRule.from_dict(r) for r in data.get("rules", [])],
        )


@dataclass
class StyleConfig:
    header: MatchedStyle = MatchedStyle(fg="Yellow", modifiers=("Bold",))
    cell: MatchedStyle = MatchedStyle(fg="White")
    border: MatchedStyle = MatchedStyle(fg="Gray")
    row_even: MatchedStyle = MatchedStyle()
    row_odd: MatchedStyle = MatchedStyle()
    selected_cell: MatchedStyle = MatchedStyle(
        fg="Black", bg="Yellow", modifiers=("Bold", "Underlined")
    )
    selected_row: MatchedStyle = MatchedStyle(modifiers=("Reversed",))

    SLOTS = (
        "header",
        "cell",
        "border",
        "row_even",
        "row_odd",
        "selected_cell",
        "selected_row",
    )

    @classmethod
    def from_dict(cls, data: dict) -> "StyleConfig":
        theme = cls()
        for slot, value in (data or {}).items():
            if slot not in cls.SLOTS:
                raise ValueError(f"Unknown theme slot '{slot}'")
            setattr(theme, slot, MatchedStyle.from_dict(value))
        return theme

    def default_for_row(self, row: int) -> MatchedStyle:
        return self.cell.over(self.row_even if row % 2 == 0 else self.row_odd)


def matches_column(column, patterns) -> bool:
    return any(fnmatchcase(str(column), p) for p in patterns or ())


@dataclass
class RowStyling:
    row_style: MatchedStyle
    cell_styles: list


def evaluate_row_rules(style_sets, row_data: dict, columns) -> RowStyling:
    """Run every rule of every style set against one row.

    ``row_data`` maps each visible column to its display text and ``columns``
    lists the columns drawn for this row, in order.
    """
    row_style = None
    cell_styles = [None] * len(columns)
    for style_set in style_sets or ():
        for rule in style_set.rules:
            if rule.column_scope:
                scoped = {
                    k: v for k, v in row_data.items() if matches_column(k, rule.column_scope)
                }
            else:
                scoped = row_data
            try:
                matched = evaluate_row(rule.match_expr, scoped)
            except (FilterError, ValueError, TypeError) as exc:
                logger.debug("style_rule_skipped", style_set=style_set.name, error=str(exc))
                continue
            if not matched:
                continue
            if rule.scope == SCOPE_ROW:
                row_style = rule.style
                continue
            for j, column in enumerate(columns):
                if not rule.column_scope or matches_column(column, rule.column_scope):
                    cell_styles[j] = rule.style
    return RowStyling(row_style, cell_styles)


def resolve_cell_style(
    theme: StyleConfig,
    styling: RowStyling,
    row: int,
    position: int,
    is_selected_cell: bool,
    highlight_row: bool = False,
) -> MatchedStyle:
    if is_selected_cell:
        return theme.selected_cell
    if highlight_row:
        return theme.selected_row
    if styling.cell_styles[position] is not None:
        return styling.cell_styles[position]
    if styling.row_style is not None:
        return styling.row_style
    return theme.default_for_row(row)
