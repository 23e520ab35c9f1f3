"""
Unit tests for per-table field coercion.
"""

import pytest

from queue_drain.coordinator import CoercionTable, as_int, default_coercions
from queue_drain.errors import CoercionError, StorageError


@pytest.mark.parametrize(
    "value,expected",
    [("42", 42), (" 7 ", 7), (3, 3), (True, 1), (2.0, 2), (b"5", 5), (None, None)],
)
def test_as_int(value, expected):
    assert as_int(value) == expected


@pytest.mark.parametrize("value", ["yes", "4.5", 4.5, [1]])
def test_as_int_rejects(value):
    with pytest.raises((TypeError, ValueError)):
        as_int(value)


def test_default_signup_rule_applies_to_every_table():
    table = default_coercions()
    out = table.apply("contributions", {"signup": "42", "name": "x"})
    assert out == {"signup": 42, "name": "x"}
    assert table.apply("anything", {"signup": "0"})["signup"] == 0


def test_apply_returns_copy_and_ignores_missing_fields():
    data = {"amount": "10"}
    out = default_coercions().apply("t", data)
    assert out == {"amount": "10"}
    assert out is not data


def test_table_rules_override_wildcard():
    table = CoercionTable({"*": {"signup": as_int}, "legacy": {"signup": str}})
    assert table.apply("legacy", {"signup": 1}) == {"signup": "1"}
    assert table.apply("modern", {"signup": "1"}) == {"signup": 1}
    assert set(table.rules_for("legacy")) == {"signup"}


def test_bad_value_raises_coercion_error():
    with pytest.raises(CoercionError) as ei:
        default_coercions().apply("t", {"signup": "maybe"})
    assert ei.value.field == "signup"
    assert ei.value.value == "maybe"
    assert isinstance(ei.value, StorageError)


def test_empty_table_is_noop():
    assert CoercionTable().apply("t", {"signup": "1"}) == {"signup": "1"}
