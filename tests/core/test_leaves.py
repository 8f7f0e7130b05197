#!filepath: tests/core/test_leaves.py
import pytest

from sctree.core.events import TraversalStatus
from sctree.core.leaves import final_values, format_products, iter_leaves, matches_target
from sctree.core.record import distinct, duplicates, evolve, map_equal


def test_final_values(sample_functions, root):
    values = final_values(sample_functions, [root])

    assert [v["display"] for v in values] == [
        "a12a3a", "a12a3b", "a12a3c", "a12b3a", "a12b3b", "a12b3c",
    ]


def test_final_values_many_seeds(sample_functions):
    values = final_values(sample_functions, [{"display": "x"}, {"display": "y"}])

    assert len(values) == 12


def test_no_op_is_not_collapsed(noop, root):
    assert final_values([noop], [root]) == [root]
    assert final_values([noop, noop], [root]) == [root]


def test_final_values_are_distinct(root):
    def same_twice(x):
        return [evolve(x, display="z"), evolve(x, display="z")]

    assert final_values([same_twice], [root]) == [{"display": "z"}]


def test_zero_outputs(root):
    assert final_values([lambda x: []], [root]) == []


def test_iter_leaves_is_lazy(make_appender, root):
    calls = []

    def tail(x):
        calls.append(x["display"])
        return [x]

    leaves = iter_leaves([make_appender("a", "b", name="fork"), tail], [root])
    assert calls == []

    next(leaves)
    assert calls == ["aa"]


# ============================================================
# matches_target
# ============================================================
def test_matches_target_short_circuits(make_appender, root):
    calls = []

    def tail(x):
        calls.append(x["display"])
        return [x]

    functions = [make_appender("1", "2", "3", name="fork"), tail]

    assert matches_target(functions, root, {"display": "a1"})
    # the first candidate matched; the other branches were never evaluated
    assert calls == ["a1"]


def test_matches_target_stops_before_expensive_branch(root):
    def first_then_boom(x):
        yield evolve(x, display="hit")
        raise AssertionError("evaluated past the first match")

    assert matches_target([first_then_boom], root, {"display": "hit"})


def test_matches_target_false(sample_functions, root):
    assert not matches_target(sample_functions, root, {"display": "a12"})


def test_matches_target_on_several_fields(make_appender):
    source = {"display": "a", "gloss": "water"}
    functions = [make_appender("1", "2", name="fork")]

    assert matches_target(functions, source, {"display": "a2", "gloss": "water"}, ["display", "gloss"])
    assert not matches_target(functions, source, {"display": "a2", "gloss": "fire"}, ["display", "gloss"])


def test_matches_target_vacuous_when_fields_missing(make_appender, root):
    # both sides lack "phonemic": vacuously equal
    assert matches_target([make_appender("1", name="fn1")], root, {"display": "zzz"}, ["phonemic"])


def test_matches_target_progress_per_leaf(sample_functions, root, sink):
    matches_target(sample_functions, root, {"display": "nothing"}, sink=sink)

    assert len(sink.payloads(TraversalStatus.PROGRESS)) == 6


def test_matches_target_propagates_errors(root):
    def broken(x):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        matches_target([broken], root, {"display": "a"})


# ============================================================
# products
# ============================================================
def test_format_products(sample_functions, root):
    lines = format_products(sample_functions, root)

    assert lines == ["a → a12a3a, a12a3b, a12a3c, a12b3a, a12b3b, a12b3c"]


def test_format_products_many(make_appender):
    lines = format_products([make_appender("!", name="bang")], [{"display": "x"}, {"display": "y"}])

    assert lines == ["x → x!", "y → y!"]


# ============================================================
# record helpers
# ============================================================
def test_map_equal():
    assert map_equal({"display": "a", "x": 1}, {"display": "a", "x": 2}, ["display"])
    assert not map_equal({"display": "a"}, {"display": "b"}, ["display"])
    assert not map_equal({"display": "a"}, {}, ["display"])
    assert map_equal({}, {}, ["display"])


def test_evolve_does_not_mutate(root):
    out = evolve(root, display="b")

    assert out == {"display": "b"}
    assert root == {"display": "a"}


def test_duplicates():
    assert sorted(duplicates([1, 2, 2, 3, 3, 3, None, None])) == [2, 3]
    assert duplicates([1, 2, 2, 3, 3, 3], n=3) == [3]


def test_distinct_with_unhashable_values():
    records = [{"display": "a", "tags": [1]}, {"display": "a", "tags": [1]}, {"display": "b"}]

    assert list(distinct(records)) == [{"display": "a", "tags": [1]}, {"display": "b"}]
