import operator
import re
from dataclasses import dataclass, field
from typing import ClassVar

import pandas as pd

from cell_coercion import display_series
from errors import ColumnNotFound, FilterError

COMPARE_OPS = {
    "eq": operator.eq,
    "ne": operator.ne,
    "lt": operator.lt,
    "gt": operator.gt,
    "lte": operator.le,
    "gte": operator.ge,
}
_OP_SYMBOLS = {"eq": "==", "ne": "!=", "lt": "<", "gt": ">", "lte": "<=", "gte": ">="}


# ---------- conditions ----------


@dataclass
class Contains:
    kind: ClassVar[str] = "contains"
    value: str
    case_sensitive: bool = False


@dataclass
class Regex:
    kind: ClassVar[str] = "regex"
    pattern: str
    case_sensitive: bool = False


@dataclass
class Equals:
    kind: ClassVar[str] = "equals"
    value: str
    case_sensitive: bool = False


@dataclass
class GreaterThan:
    kind: ClassVar[str] = "gt"
    value: str


@dataclass
class LessThan:
    kind: ClassVar[str] = "lt"
    value: str


@dataclass
class GreaterThanOrEqual:
    kind: ClassVar[str] = "gte"
    value: str


@dataclass
class LessThanOrEqual:
    kind: ClassVar[str] = "lte"
    value: str


@dataclass
class IsEmpty:
    kind: ClassVar[str] = "is_empty"


@dataclass
class IsNotEmpty:
    kind: ClassVar[str] = "is_not_empty"


@dataclass
class IsNull:
    kind: ClassVar[str] = "is_null"


@dataclass
class NotNull:
    kind: ClassVar[str] = "not_null"


@dataclass
class Between:
    kind: ClassVar[str] = "between"
    min: str
    max: str
    inclusive: bool = True


@dataclass
class InList:
    kind: ClassVar[str] = "in_list"
    values: list = field(default_factory=list)
    case_sensitive: bool = False


@dataclass
class NotCondition:
    kind: ClassVar[str] = "not"
    inner: object


@dataclass
class CompareColumns:
    kind: ClassVar[str] = "compare_columns"
    other_column: str
    op: str = "eq"


@dataclass
class StringLength:
    kind: ClassVar[str] = "string_length"
    op: str
    length: int


_ORDERED = {
    GreaterThan: "gt",
    LessThan: "lt",
    GreaterThanOrEqual: "gte",
    LessThanOrEqual: "lte",
}

CONDITION_TYPES = {
    cls.kind: cls
    for cls in (
        Contains,
        Regex,
        Equals,
        GreaterThan,
        LessThan,
        GreaterThanOrEqual,
        LessThanOrEqual,
        IsEmpty,
        IsNotEmpty,
        IsNull,
        NotNull,
        Between,
        InList,
        NotCondition,
        CompareColumns,
        StringLength,
    )
}


# ---------- tree ----------


@dataclass
class ColumnFilter:
    column: str
    condition: object


@dataclass
class And:
    children: list = field(default_factory=list)


@dataclass
class Or:
    children: list = field(default_factory=list)


@dataclass
class Not:
    child: object


# ---------- helpers ----------


def _op(name: str):
    if name not in COMPARE_OPS:
        raise FilterError(f"Unknown comparison operator '{name}'")
    return COMPARE_OPS[name]


def _parse_number(text):
    try:
        return float(str(text).strip())
    except (TypeError, ValueError):
        return None


def _compile(pattern: str, case_sensitive: bool):
    try:
        return re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)
    except re.error as exc:
        raise FilterError(f"Invalid regex pattern '{pattern}': {exc}") from exc


def _as_bool(mask) -> pd.Series:
    return mask.fillna(False).astype(bool)


def _column(df: pd.DataFrame, name: str) -> pd.Series:
    if name not in df.columns:
        raise ColumnNotFound(name)
    return df[name]


def _text(series: pd.Series) -> pd.Series:
    return pd.Series(display_series(series), index=series.index, dtype=object)


def _is_numeric(series: pd.Series) -> bool:
    return pd.api.types.is_numeric_dtype(series.dtype) and not pd.api.types.is_bool_dtype(
        series.dtype
    )


def _native_literal(series: pd.Series, literal):
    """Convert a literal to the column's native comparison type, or None for text."""
    if _is_numeric(series):
        number = _parse_number(literal)
        if number is None:
            raise FilterError(
                f"Cannot compare numeric column '{series.name}' with '{literal}'"
            )
        return number
    if pd.api.types.is_datetime64_any_dtype(series.dtype):
        try:
            stamp = pd.Timestamp(literal)
        except (TypeError, ValueError) as exc:
            raise FilterError(
                f"Cannot compare datetime column '{series.name}' with '{literal}'"
            ) from exc
        if series.dt.tz is not None and stamp.tzinfo is None:
            stamp = stamp.tz_localize(series.dt.tz)
        return stamp
    return None


def _ordered_mask(series: pd.Series, literal, op_name: str) -> pd.Series:
    fn = _op(op_name)
    native = _native_literal(series, literal)
    if native is not None:
        return _as_bool(fn(series, native))
    return _as_bool(fn(_text(series), str(literal)) & series.notna())


# ---------- mask evaluation ----------


def _condition_mask(cond, series: pd.Series, df: pd.DataFrame) -> pd.Series:
    if isinstance(cond, Contains):
        text = _text(series)
        if cond.case_sensitive:
            return _as_bool(text.str.contains(cond.value, regex=False))
        return _as_bool(text.str.lower().str.contains(cond.value.lower(), regex=False))

    if isinstance(cond, Regex):
        rx = _compile(cond.pattern, cond.case_sensitive)
        return _as_bool(_text(series).map(lambda s: rx.search(s) is not None))

    if isinstance(cond, Equals):
        if cond.case_sensitive:
            native = None
            if _is_numeric(series):
                native = _parse_number(cond.value)
            if native is not None:
                return _as_bool(series == native)
            return _as_bool(_text(series) == cond.value)
        return _as_bool(_text(series).str.lower() == cond.value.lower())

    if type(cond) in _ORDERED:
        return _ordered_mask(series, cond.value, _ORDERED[type(cond)])

    if isinstance(cond, IsEmpty):
        return _as_bool(_text(series) == "")
    if isinstance(cond, IsNotEmpty):
        return _as_bool(_text(series) != "")
    if isinstance(cond, IsNull):
        return _as_bool(series.isna())
    if isinstance(cond, NotNull):
        return _as_bool(series.notna())

    if isinstance(cond, Between):
        low_op, high_op = ("gte", "lte") if cond.inclusive else ("gt", "lt")
        return _ordered_mask(series, cond.min, low_op) & _ordered_mask(
            series, cond.max, high_op
        )

    if isinstance(cond, InList):
        if _is_numeric(series):
            numbers = [n for n in (_parse_number(v) for v in cond.values) if n is not None]
            return _as_bool(series.isin(numbers))
        text = _text(series)
        if cond.case_sensitive:
            return _as_bool(text.isin([str(v) for v in cond.values]))
        return _as_bool(text.str.lower().isin([str(v).lower() for v in cond.values]))

    if isinstance(cond, NotCondition):
        return ~_condition_mask(cond.inner, series, df)

    if isinstance(cond, CompareColumns):
        fn = _op(cond.op)
        other = _column(df, cond.other_column)
        if _is_numeric(series) and _is_numeric(other):
            return _as_bool(fn(series, other))
        return _as_bool(fn(_text(series), _text(other)))

    if isinstance(cond, StringLength):
        fn = _op(cond.op)
        return _as_bool(fn(_text(series).str.len(), int(cond.length)))

    raise FilterError(f"Unsupported condition {cond!r}")


def evaluate_mask(expr, df: pd.DataFrame) -> pd.Series:
    """Evaluate a predicate tree against a table, one boolean per row."""
    if isinstance(expr, ColumnFilter):
        series = _column(df, expr.column)
        return _condition_mask(expr.condition, series, df)
    if isinstance(expr, And):
        mask = pd.Series(True, index=df.index)
        for child in expr.children:
            mask &= evaluate_mask(child, df)
        return mask
    if isinstance(expr, Or):
        mask = pd.Series(False, index=df.index)
        for child in expr.children:
            mask |= evaluate_mask(child, df)
        return mask
    if isinstance(expr, Not):
        return ~evaluate_mask(expr.child, df)
    raise FilterError(f"Unsupported filter expression {expr!r}")


# ---------- row evaluation ----------


def _compare_text(cell: str, literal: str, op_name: str) -> bool:
    fn = _op(op_name)
    left = _parse_number(cell)
    right = _parse_number(literal)
    if left is not None and right is not None:
        return fn(left, right)
    return fn(cell, str(literal))


def _condition_row(cond, cell: str, row: dict) -> bool:
    if isinstance(cond, Contains):
        if cond.case_sensitive:
            return cond.value in cell
        return cond.value.lower() in cell.lower()

    if isinstance(cond, Regex):
        return _compile(cond.pattern, cond.case_sensitive).search(cell) is not None

    if isinstance(cond, Equals):
        if cond.case_sensitive:
            return cell == cond.value
        return cell.lower() == cond.value.lower()

    if type(cond) in _ORDERED:
        return _compare_text(cell, cond.value, _ORDERED[type(cond)])

    if isinstance(cond, IsEmpty):
        return cell == ""
    if isinstance(cond, IsNotEmpty):
        return cell != ""
    if isinstance(cond, IsNull):
        return cell in ("", "null", "NULL")
    if isinstance(cond, NotNull):
        return cell not in ("", "null", "NULL")

    if isinstance(cond, Between):
        low_op, high_op = ("gte", "lte") if cond.inclusive else ("gt", "lt")
        return _compare_text(cell, cond.min, low_op) and _compare_text(
            cell, cond.max, high_op
        )

    if isinstance(cond, InList):
        if cond.case_sensitive:
            return any(str(v) == cell for v in cond.values)
        lowered = cell.lower()
        return any(str(v).lower() == lowered for v in cond.values)

    if isinstance(cond, NotCondition):
        return not _condition_row(cond.inner, cell, row)

    if isinstance(cond, CompareColumns):
        return _compare_text(cell, row.get(cond.other_column, ""), cond.op)

    if isinstance(cond, StringLength):
        return _op(cond.op)(len(cell), int(cond.length))

    raise FilterError(f"Unsupported condition {cond!r}")


def evaluate_row(expr, row: dict) -> bool:
    """Evaluate a predicate tree against one ``{column: text}`` row.

    Columns missing from ``row`` read as the empty string.
    """
    if isinstance(expr, ColumnFilter):
        return _condition_row(expr.condition, row.get(expr.column, ""), row)
    if isinstance(expr, And):
        return all(evaluate_row(child, row) for child in expr.children)
    if isinstance(expr, Or):
        return any(evaluate_row(child, row) for child in expr.children)
    if isinstance(expr, Not):
        return not evaluate_row(expr.child, row)
    raise FilterError(f"Unsupported filter expression {expr!r}")


# ---------- serialization ----------


def condition_to_dict(cond) -> dict:
    data = {"kind": cond.kind}
    if isinstance(cond, NotCondition):
        data["inner"] = condition_to_dict(cond.inner)
        return data
    data.update(vars(cond))
    if isinstance(cond, InList):
        data["values"] = list(cond.values)
    return data


def condition_from_dict(data: dict):
    if not isinstance(data, dict):
        raise ValueError(f"Condition must be an object, got {data!r}")
    kind = data.get("kind")
    cls = CONDITION_TYPES.get(kind)
    if cls is None:
        raise ValueError(f"Unknown condition kind '{kind}'")
    if cls is NotCondition:
        return NotCondition(condition_from_dict(data.get("inner")))
    fields = {k: v for k, v in data.items() if k != "kind"}
    return cls(**fields)


def expr_to_dict(expr) -> dict:
    if isinstance(expr, ColumnFilter):
        return {
            "type": "condition",
            "column": expr.column,
            "condition": condition_to_dict(expr.condition),
        }
    if isinstance(expr, And):
        return {"type": "and", "children": [expr_to_dict(c) for c in expr.children]}
    if isinstance(expr, Or):
        return {"type": "or", "children": [expr_to_dict(c) for c in expr.children]}
    if isinstance(expr, Not):
        return {"type": "not", "child": expr_to_dict(expr.child)}
    raise ValueError(f"Unsupported filter expression {expr!r}")


def expr_from_dict(data: dict):
    if not isinstance(data, dict):
        raise ValueError(f"Filter expression must be an object, got {data!r}")
    kind = data.get("type")
    if kind == "condition":
        return ColumnFilter(str(data["column"]), condition_from_dict(data["condition"]))
    if kind == "and":
        return And([expr_from_dict(c) for c in data.get("children", [])])
    if kind == "or":
        return Or([expr_from_dict(c) for c in data.get("children", [])])
    if kind == "not":
        return Not(expr_from_dict(data["child"]))
    raise ValueError(f"Unknown filter expression type '{kind}'")


# ---------- display ----------


def _describe_condition(column: str, cond) -> str:
    if isinstance(cond, (Contains, Equals)):
        verb = "contains" if isinstance(cond, Contains) else "=="
        case = "" if cond.case_sensitive else " (ci)"
        return f"{column} {verb} '{cond.value}'{case}"
    if isinstance(cond, Regex):
        return f"{column} ~ /{cond.pattern}/"
    if type(cond) in _ORDERED:
        return f"{column} {_OP_SYMBOLS[_ORDERED[type(cond)]]} {cond.value}"
    if isinstance(cond, IsEmpty):
        return f"{column} is empty"
    if isinstance(cond, IsNotEmpty):
        return f"{column} is not empty"
    if isinstance(cond, IsNull):
        return f"{column} is null"
    if isinstance(cond, NotNull):
        return f"{column} is not null"
    if isinstance(cond, Between):
        brackets = "[]" if cond.inclusive else "()"
        return f"{column} in {brackets[0]}{cond.min}, {cond.max}{brackets[1]}"
    if isinstance(cond, InList):
        return f"{column} in {list(cond.values)}"
    if isinstance(cond, NotCondition):
        return f"NOT ({_describe_condition(column, cond.inner)})"
    if isinstance(cond, CompareColumns):
        return f"{column} {_OP_SYMBOLS.get(cond.op, cond.op)} {cond.other_column}"
    if isinstance(cond, StringLength):
        return f"len({column}) {_OP_SYMBOLS.get(cond.op, cond.op)} {cond.length}"
    return f"{column} {cond!r}"


def describe(expr) -> str:
    if isinstance(expr, ColumnFilter):
        return _describe_condition(expr.column, expr.condition)
    if isinstance(expr, (And, Or)):
        joiner = " AND " if isinstance(expr, And) else " OR "
        return "(" + joiner.join(describe(c) for c in expr.children) + ")"
    if isinstance(expr, Not):
        return f"NOT {describe(expr.child)}"
    return repr(expr)
