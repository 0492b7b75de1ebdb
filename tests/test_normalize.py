import pytest

from codearena.grading.models import NormalizationMode
from codearena.grading.normalize import canonical_json, deep_equal, normalize_value


def test_canonical_json_sorts_keys_and_collapses_integral_floats() -> None:
    assert canonical_json({"b": 2.0, "a": [1.5, 3.0]}) == '{"a":[1.5,3],"b":2}'
    assert canonical_json(True) == "true"
    assert canonical_json(None) == "null"


def test_deep_equal_treats_two_and_two_point_zero_alike() -> None:
    assert deep_equal(2, 2.0)
    assert deep_equal({"x": [1, 2]}, {"x": [1.0, 2.0]})
    assert not deep_equal(True, 1)
    assert not deep_equal([1, 2], [2, 1])


def test_none_mode_is_identity() -> None:
    value = [3, 1, 2]
    assert normalize_value(value, NormalizationMode.NONE) is value
    assert normalize_value(value, None) is value


def test_sort_mode_sorts_flat_lists() -> None:
    assert normalize_value([3, 1, 2], "sort") == [1, 2, 3]
    assert normalize_value(["b", "a"], NormalizationMode.SORT) == ["a", "b"]


def test_sort_mode_falls_back_to_canonical_order_for_mixed_items() -> None:
    assert normalize_value([[2], 1, "a"], "sort") == sorted([[2], 1, "a"], key=canonical_json)


def test_sort_nested_sorts_inner_then_outer() -> None:
    grouped = [["eat", "tea", "ate"], ["tan", "nat"], ["bat"]]
    assert normalize_value(grouped, "sort-nested") == [["ate", "eat", "tea"], ["bat"], ["nat", "tan"]]


def test_non_lists_pass_through() -> None:
    for mode in NormalizationMode:
        assert normalize_value(42, mode) == 42
        assert normalize_value({"k": [2, 1]}, mode) == {"k": [2, 1]}


@pytest.mark.parametrize(
    "value",
    [
        [5, 3, 9, 1],
        [["b", "a"], ["d", "c"], []],
        [[3, 1], 2, "x", None],
        [],
    ],
)
@pytest.mark.parametrize("mode", list(NormalizationMode))
def test_normalization_is_idempotent(value: list, mode: NormalizationMode) -> None:
    once = normalize_value(value, mode)
    assert normalize_value(once, mode) == once


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ValueError):
        normalize_value([1], "shuffle")
