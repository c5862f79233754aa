import unittest

import pytest

from filter_expr import ColumnFilter, Contains, Equals, GreaterThan, Regex
from style_rules import (
    SCOPE_CELL,
    SCOPE_ROW,
    MatchedStyle,
    RowStyling,
    StyleConfig,
    StyleRule,
    StyleSet,
    evaluate_row_rules,
    matches_column,
    resolve_cell_style,
)

RED = MatchedStyle(fg="Red")
BLUE = MatchedStyle(fg="Blue")
GREEN_ROW = MatchedStyle(bg="Green")

COLUMNS = ["name", "age", "age_months"]
ROW = {"name": "bob", "age": "25", "age_months": "300"}


def _set(*rules, name="rules"):
    return StyleSet(name=name, rules=list(rules))


class EvaluateRowRulesTests(unittest.TestCase):
    def test_no_rules(self):
        styling = evaluate_row_rules([], ROW, COLUMNS)
        self.assertIsNone(styling.row_style)
        self.assertEqual(styling.cell_styles, [None, None, None])

    def test_cell_rule_without_scope_touches_every_cell(self):
        rule = StyleRule(ColumnFilter("name", Equals("bob")), RED)
        styling = evaluate_row_rules([_set(rule)], ROW, COLUMNS)
        self.assertEqual(styling.cell_styles, [RED, RED, RED])
        self.assertIsNone(styling.row_style)

    def test_column_scope_glob(self):
        rule = StyleRule(ColumnFilter("age", GreaterThan("18")), RED, column_scope=["age*"])
        styling = evaluate_row_rules([_set(rule)], ROW, COLUMNS)
        self.assertEqual(styling.cell_styles, [None, RED, RED])

    def test_column_scope_hides_other_columns_from_the_match(self):
        # "name" is outside the scope, so the expression sees it as empty
        rule = StyleRule(ColumnFilter("name", Equals("bob")), RED, column_scope=["age"])
        styling = evaluate_row_rules([_set(rule)], ROW, COLUMNS)
        self.assertEqual(styling.cell_styles, [None, None, None])

    def test_last_match_wins_across_sets(self):
        first = StyleRule(ColumnFilter("name", Contains("b")), RED)
        second = StyleRule(ColumnFilter("age", Equals("25")), BLUE, column_scope=["age"])
        styling = evaluate_row_rules([_set(first), _set(second)], ROW, COLUMNS)
        self.assertEqual(styling.cell_styles, [RED, BLUE, RED])

    def test_row_scope(self):
        rule = StyleRule(ColumnFilter("age", Equals("25")), GREEN_ROW, scope=SCOPE_ROW)
        later = StyleRule(ColumnFilter("age", Equals("99")), RED, scope=SCOPE_ROW)
        styling = evaluate_row_rules([_set(rule, later)], ROW, COLUMNS)
        self.assertEqual(styling.row_style, GREEN_ROW)
        self.assertEqual(styling.cell_styles, [None, None, None])

    def test_failing_rule_is_skipped(self):
        broken = StyleRule(ColumnFilter("name", Regex("(")), BLUE)
        ok = StyleRule(ColumnFilter("name", Equals("bob")), RED, column_scope=["name"])
        styling = evaluate_row_rules([_set(broken, ok)], ROW, COLUMNS)
        self.assertEqual(styling.cell_styles, [RED, None, None])


class ResolveCellStyleTests(unittest.TestCase):
    def setUp(self):
        self.theme = StyleConfig(row_even=MatchedStyle(bg="Black"), row_odd=MatchedStyle(bg="Blue"))
        self.styling = RowStyling(GREEN_ROW, [RED, None])

    def test_precedence(self):
        t = self.theme
        self.assertEqual(resolve_cell_style(t, self.styling, 0, 0, True), t.selected_cell)
        self.assertEqual(
            resolve_cell_style(t, self.styling, 0, 0, False, highlight_row=True), t.selected_row
        )
        self.assertEqual(resolve_cell_style(t, self.styling, 0, 0, False), RED)
        self.assertEqual(resolve_cell_style(t, self.styling, 0, 1, False), GREEN_ROW)

    def test_default_alternates_even_odd(self):
        plain = RowStyling(None, [None])
        even = resolve_cell_style(self.theme, plain, 2, 0, False)
        odd = resolve_cell_style(self.theme, plain, 3, 0, False)
        self.assertEqual(even, MatchedStyle(fg="White", bg="Black"))
        self.assertEqual(odd, MatchedStyle(fg="White", bg="Blue"))


@pytest.mark.parametrize(
    "column, patterns, expected",
    [
        ("age", ["age"], True),
        ("age_months", ["age*"], True),
        ("Age", ["age*"], False),
        ("name", ["n?me", "x"], True),
        ("name", [], False),
    ],
)
def test_matches_column(column, patterns, expected):
    assert matches_column(column, patterns) is expected


def test_matched_style_validation():
    assert MatchedStyle(fg="indexed(200)").fg == "indexed(200)"
    with pytest.raises(ValueError):
        MatchedStyle(fg="Mauve")
    with pytest.raises(ValueError):
        MatchedStyle(fg="indexed(300)")
    with pytest.raises(ValueError):
        MatchedStyle(modifiers=("Sparkly",))


def test_over_layers_unset_fields():
    top = MatchedStyle(fg="Red", modifiers=("Bold",))
    base = MatchedStyle(fg="White", bg="Black", modifiers=("Dim", "Bold"))
    assert top.over(base) == MatchedStyle(fg="Red", bg="Black", modifiers=("Dim", "Bold"))


def test_theme_from_dict():
    theme = StyleConfig.from_dict({"header": {"fg": "Cyan", "modifiers": ["Italic"]}})
    assert theme.header == MatchedStyle(fg="Cyan", modifiers=("Italic",))
    assert theme.cell == StyleConfig().cell
    with pytest.raises(ValueError):
        StyleConfig.from_dict({"footer": {}})


def test_style_set_from_dict():
    data = {
        "name": "alerts",
        "description": "flag adults",
        "rules": [
            {
                "match_expr": {
                    "type": "condition",
                    "column": "age",
                    "condition": {"kind": "gt", "value": "18"},
                },
                "style": {"fg": "Red"},
                "scope": "Row",
            }
        ],
    }
    style_set = StyleSet.from_dict(data)
    assert style_set.rules[0].scope == SCOPE_ROW
    assert style_set.rules[0].match_expr == ColumnFilter("age", GreaterThan("18"))
    assert StyleSet.from_dict(style_set.to_dict()) == style_set
    assert style_set.rules[0].style == RED
    assert StyleRule(ColumnFilter("a", Equals("x")), RED).scope == SCOPE_CELL
