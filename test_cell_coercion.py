import datetime as dt
import decimal

import numpy as np
import pandas as pd
import pytest

from cell_coercion import cast_series, display_text, is_missing, json_value, normalize_cast_target


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, ""),
        (np.nan, ""),
        (pd.NA, ""),
        (pd.NaT, ""),
        ("text", "text"),
        (np.int64(5), "5"),
        (1.5, "1.5"),
        (True, "True"),
        ([1, None], "[1, ]"),
        ({"a": 1}, "{a: 1}"),
        (b"\x01\xff", "01ff"),
    ],
)
def test_display_text(value, expected):
    assert display_text(value) == expected


def test_is_missing_does_not_treat_containers_as_missing():
    assert is_missing(None)
    assert not is_missing([])
    assert not is_missing(np.array([np.nan]))
    assert not is_missing("")


@pytest.mark.parametrize(
    "value, expected",
    [
        (np.int64(5), 5),
        (np.float64(2.5), 2.5),
        (np.nan, None),
        (pd.Timestamp("2024-01-02"), "2024-01-02T00:00:00"),
        (dt.date(2024, 1, 2), "2024-01-02"),
        (decimal.Decimal("1.10"), "1.10"),
        ([np.int64(1), None], [1, None]),
        ({1: "a"}, {"1": "a"}),
    ],
)
def test_json_value(value, expected):
    assert json_value(value) == expected


def test_json_value_unwraps_numpy_scalars():
    assert type(json_value(np.int64(5))) is int
    assert type(json_value(np.bool_(True))) is bool


def test_normalize_cast_target():
    assert normalize_cast_target(" Integer ") == "int"
    assert normalize_cast_target("timestamp") == "datetime"
    with pytest.raises(ValueError):
        normalize_cast_target("blob")


def test_cast_to_int_keeps_nulls():
    out = cast_series(pd.Series(["1", "2", None]), "int")
    assert str(out.dtype) == "Int64"
    assert out.iloc[0] == 1
    assert out.isna().tolist() == [False, False, True]


def test_cast_to_int_rejects_fractions_and_words():
    with pytest.raises((TypeError, ValueError)):
        cast_series(pd.Series(["1.5"]), "int")
    with pytest.raises(ValueError):
        cast_series(pd.Series(["one"]), "int")


def test_cast_to_bool():
    out = cast_series(pd.Series(["yes", "no", None, "1"]), "bool")
    assert str(out.dtype) == "boolean"
    assert bool(out.iloc[0]) is True
    assert bool(out.iloc[1]) is False
    assert out.isna().tolist() == [False, False, True, False]
    with pytest.raises(ValueError):
        cast_series(pd.Series(["maybe"]), "bool")


def test_cast_to_str_and_category():
    text = cast_series(pd.Series([1, None], dtype=object), "str")
    assert str(text.dtype) == "string"
    assert text.iloc[0] == "1"
    assert text.isna().tolist() == [False, True]
    assert str(cast_series(pd.Series(["a", "b", "a"]), "category").dtype) == "category"


def test_cast_to_date():
    out = cast_series(pd.Series(["2024-01-02", "2024-03-04"]), "date")
    assert out.tolist() == [dt.date(2024, 1, 2), dt.date(2024, 3, 4)]
