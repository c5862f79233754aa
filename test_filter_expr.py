import pandas as pd
import pytest

from errors import ColumnNotFound, FilterError
from filter_expr import (
    And,
    Between,
    ColumnFilter,
    CompareColumns,
    Contains,
    Equals,
    GreaterThan,
    GreaterThanOrEqual,
    InList,
    IsEmpty,
    IsNotEmpty,
    IsNull,
    LessThan,
    Not,
    NotCondition,
    NotNull,
    Or,
    Regex,
    StringLength,
    describe,
    evaluate_mask,
    evaluate_row,
    expr_from_dict,
    expr_to_dict,
)


@pytest.fixture
def df():
    return pd.DataFrame(
        {
            "name": ["alice", "Bob", None, "dave"],
            "age": [30, 25, None, 41],
            "limit": [20, 30, 10, 41],
        }
    )


def _rows(expr, df):
    return evaluate_mask(expr, df).tolist()


@pytest.mark.parametrize(
    "expr, expected",
    [
        (ColumnFilter("name", Contains("b")), [False, True, False, False]),
        (ColumnFilter("name", Contains("B", case_sensitive=True)), [False, True, False, False]),
        (ColumnFilter("name", Contains("A", case_sensitive=True)), [False, False, False, False]),
        (ColumnFilter("name", Regex("^[ab]")), [True, True, False, False]),
        (ColumnFilter("name", Equals("BOB")), [False, True, False, False]),
        (ColumnFilter("age", GreaterThan("26")), [True, False, False, True]),
        (ColumnFilter("age", LessThan("30")), [False, True, False, False]),
        (ColumnFilter("age", GreaterThanOrEqual("30")), [True, False, False, True]),
        (ColumnFilter("age", Between("25", "30")), [True, True, False, False]),
        (ColumnFilter("age", Between("25", "30", inclusive=False)), [False, False, False, False]),
        (ColumnFilter("name", IsEmpty()), [False, False, True, False]),
        (ColumnFilter("name", IsNotEmpty()), [True, True, False, True]),
        (ColumnFilter("age", IsNull()), [False, False, True, False]),
        (ColumnFilter("age", NotNull()), [True, True, False, True]),
        (ColumnFilter("name", InList(["ALICE", "dave"])), [True, False, False, True]),
        (ColumnFilter("age", InList(["25", "41", "x"])), [False, True, False, True]),
        (ColumnFilter("name", NotCondition(Contains("a"))), [False, True, True, False]),
        (ColumnFilter("age", CompareColumns("limit", "gt")), [True, False, False, False]),
        (ColumnFilter("name", StringLength("gte", 5)), [True, False, False, False]),
    ],
)
def test_mask_conditions(df, expr, expected):
    assert _rows(expr, df) == expected


def test_logical_composition(df):
    adult = ColumnFilter("age", GreaterThan("26"))
    has_a = ColumnFilter("name", Contains("a"))
    assert _rows(And([adult, has_a]), df) == [True, False, False, True]
    assert _rows(Or([Not(adult), has_a]), df) == [True, True, True, True]
    assert _rows(And([]), df) == [True] * 4
    assert _rows(Or([]), df) == [False] * 4


def test_mask_errors(df):
    with pytest.raises(ColumnNotFound):
        evaluate_mask(ColumnFilter("height", IsNull()), df)
    with pytest.raises(FilterError):
        evaluate_mask(ColumnFilter("age", GreaterThan("old")), df)
    with pytest.raises(FilterError):
        evaluate_mask(ColumnFilter("name", Regex("(")), df)


def test_mask_on_datetime_column():
    frame = pd.DataFrame({"when": pd.to_datetime(["2024-01-01", "2024-06-01"])})
    assert _rows(ColumnFilter("when", GreaterThan("2024-03-01")), frame) == [False, True]


@pytest.mark.parametrize(
    "expr, row, expected",
    [
        (ColumnFilter("age", GreaterThan("9")), {"age": "10"}, True),
        (ColumnFilter("age", GreaterThan("9")), {"age": "abc"}, True),
        (ColumnFilter("age", LessThan("9")), {"age": "10"}, False),
        (ColumnFilter("name", Contains("LI")), {"name": "alice"}, True),
        (ColumnFilter("name", Equals("x")), {}, False),
        (ColumnFilter("name", IsEmpty()), {}, True),
        (ColumnFilter("a", CompareColumns("b", "lt")), {"a": "2", "b": "10"}, True),
        (ColumnFilter("a", InList(["x", "Y"])), {"a": "y"}, True),
        (Not(ColumnFilter("a", IsNull())), {"a": "null"}, False),
    ],
)
def test_row_evaluation(expr, row, expected):
    assert evaluate_row(expr, row) is expected


def test_row_bad_regex_raises():
    with pytest.raises(FilterError):
        evaluate_row(ColumnFilter("a", Regex("[")), {"a": "x"})


def test_serialized_tree_evaluates_the_same(df):
    expr = And(
        [
            ColumnFilter("age", Between("20", "35")),
            Not(ColumnFilter("name", InList(["bob"], case_sensitive=True))),
            Or([ColumnFilter("name", NotCondition(IsEmpty())), ColumnFilter("limit", IsNull())]),
        ]
    )
    restored = expr_from_dict(expr_to_dict(expr))
    assert restored == expr
    assert _rows(restored, df) == _rows(expr, df)


def test_from_dict_rejects_unknown_kinds():
    with pytest.raises(ValueError):
        expr_from_dict({"type": "xor", "children": []})
    with pytest.raises(ValueError):
        expr_from_dict({"type": "condition", "column": "a", "condition": {"kind": "fuzzy"}})


def test_describe():
    expr = And([ColumnFilter("age", GreaterThan("26")), Not(ColumnFilter("name", IsNull()))])
    assert describe(expr) == "(age > 26 AND NOT name is null)"
