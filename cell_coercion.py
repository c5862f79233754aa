import datetime as dt
import decimal

import numpy as np
import pandas as pd

_TRUE_WORDS = {"1", "true", "t", "yes", "y", "on"}
_FALSE_WORDS = {"0", "false", "f", "no", "n", "off"}

CAST_TARGETS = ("int", "float", "str", "bool", "datetime", "date", "category")
_CAST_ALIASES = {
    "int": "int",
    "int64": "int",
    "integer": "int",
    "float": "float",
    "float64": "float",
    "double": "float",
    "str": "str",
    "string": "str",
    "text": "str",
    "bool": "bool",
    "boolean": "bool",
    "datetime": "datetime",
    "timestamp": "datetime",
    "date": "date",
    "category": "category",
    "categorical": "category",
    "enum": "category",
}


def is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple, dict, set, np.ndarray)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def display_text(value) -> str:
    """Render a cell value the way the grid, search and style rules see it."""
    if is_missing(value):
        return ""
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple, np.ndarray)):
        return "[" + ", ".join(display_text(v) for v in value) + "]"
    if isinstance(value, dict):
        inner = ", ".join(f"{k}: {display_text(v)}" for k, v in value.items())
        return "{" + inner + "}"
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    return str(value)


def display_series(series: pd.Series) -> list[str]:
    return [display_text(v) for v in series.tolist()]


def json_value(value):
    """Structured counterpart of display_text: plain JSON-compatible types."""
    if is_missing(value):
        return None
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value
    if isinstance(value, (pd.Timestamp, dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, (pd.Timedelta, dt.timedelta, decimal.Decimal)):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, (list, tuple, np.ndarray)):
        return [json_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): json_value(v) for k, v in value.items()}
    return str(value)


def normalize_cast_target(target: str) -> str:
    key = str(target or "").strip().lower()
    if key not in _CAST_ALIASES:
        raise ValueError(
            f"Unsupported cast target '{target}' (use one of: {', '.join(CAST_TARGETS)})"
        )
    return _CAST_ALIASES[key]


def _parse_bool(value):
    if is_missing(value):
        return pd.NA
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, float, np.number)):
        return bool(value)
    lowered = str(value).strip().lower()
    if lowered == "":
        return pd.NA
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    raise ValueError(f"Cannot coerce '{value}' to boolean")


def cast_series(series: pd.Series, target: str) -> pd.Series:
    """Convert every value of `series`; raises ValueError/TypeError on failure."""
    kind = normalize_cast_target(target)
    dtype = series.dtype

    if kind == "int":
        if pd.api.types.is_integer_dtype(dtype):
            return series.astype("Int64")
        numeric = pd.to_numeric(series, errors="raise")
        return numeric.astype("Int64")

    if kind == "float":
        return pd.to_numeric(series, errors="raise").astype("float64")

    if kind == "str":
        return series.map(lambda v: pd.NA if is_missing(v) else display_text(v)).astype(
            "string"
        )

    if kind == "bool":
        if pd.api.types.is_bool_dtype(dtype):
            return series.astype("boolean")
        return series.map(_parse_bool).astype("boolean")

    if kind == "datetime":
        if pd.api.types.is_datetime64_any_dtype(dtype):
            return series
        return pd.to_datetime(series, errors="raise")

    if kind == "date":
        stamps = series if pd.api.types.is_datetime64_any_dtype(dtype) else pd.to_datetime(
            series, errors="raise"
        )
        return stamps.dt.date

    return series.astype("category")
