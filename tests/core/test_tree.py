#!filepath: tests/core/test_tree.py
import functools

import pytest

from sctree.core.record import evolve
from sctree.core.traversal import count_tree
from sctree.core.tree import Tree, TreeNode, function_name, grow_tree
from sctree.utils.text import expand_variants


def shape(node: TreeNode):
    """把一份 root view 完全展开成可比较的嵌套 tuple（只用于小树）"""
    return (
        node.id,
        node.label,
        node.producing_function,
        tuple(shape(c) for c in node.children),
    )


def walk(node: TreeNode):
    yield node
    for child in node.children:
        yield from walk(child)


def test_branching_example_counts(sample_functions, root):
    result = count_tree(grow_tree(sample_functions, root))

    assert result.completed
    assert result.counts.nodes == 4
    assert result.counts.leaves == 6


@pytest.mark.parametrize("factors", [[2], [2, 3], [3, 1, 2], [2, 2, 2, 2, 2]])
def test_branching_product_law(make_appender, root, factors):
    functions = [
        make_appender(*(f"{i}{chr(97 + j)}" for j in range(b)), name=f"f{i}")
        for i, b in enumerate(factors)
    ]

    counts = count_tree(grow_tree(functions, root)).counts

    expected_leaves = 1
    expected_nodes = 0
    for b in factors:
        expected_nodes += expected_leaves
        expected_leaves *= b

    # factor 1 that adds a suffix still changes the value, so it is a real level
    assert counts.leaves == expected_leaves
    assert counts.nodes == expected_nodes


def test_root_view(sample_functions, root):
    tree = grow_tree(sample_functions, root)

    node = tree()

    assert node.id == 0
    assert node.label == "a"
    assert node.value == root
    assert node.producing_function == "fn1"
    assert not node.is_leaf

    children = list(node.children)
    assert [c.label for c in children] == ["a1"]
    assert children[0].producing_function == "fn2"


def test_leaves_have_no_producing_function(sample_functions, root):
    leaves = [n for n in walk(grow_tree(sample_functions, root)()) if n.is_leaf]

    assert len(leaves) == 6
    assert all(n.producing_function is None for n in leaves)
    assert {n.label for n in leaves} == {
        "a12a3a", "a12a3b", "a12a3c", "a12b3a", "a12b3b", "a12b3c",
    }


def test_no_op_functions_collapse(make_appender, noop, root):
    functions = [
        noop,
        make_appender("2a", "2b", name="fn2"),
        noop,
        make_appender("3a", "3b", "3c", name="fn3"),
        noop,
    ]
    tree = grow_tree(functions, root)

    counts = count_tree(tree).counts
    assert counts.nodes == 3
    assert counts.leaves == 6

    names = {n.producing_function for n in walk(tree())}
    assert "noop" not in names
    assert names == {"fn2", "fn3", None}


def test_no_op_only_for_some_branches(make_appender, root):
    def lengthen_b(x):
        # 只对以 b 结尾的值起作用
        if x["display"].endswith("b"):
            return [evolve(x, display=x["display"] + ":")]
        return [x]

    functions = [make_appender("a", "b", name="fork"), lengthen_b]
    node = grow_tree(functions, root)()

    children = list(node.children)
    assert children[0].label == "aa"
    assert children[0].is_leaf
    assert children[1].label == "ab"
    assert children[1].producing_function == "lengthen_b"
    assert [c.label for c in children[1].children] == ["ab:"]


def test_zero_outputs_is_a_dead_branch(make_appender, root):
    def drop(x):
        return []

    counts = count_tree(grow_tree([make_appender("1", name="fn1"), drop], root)).counts

    assert counts.nodes == 2
    assert counts.leaves == 0


def test_empty_function_list_gives_single_leaf(root):
    node = grow_tree([], root)()

    assert node.is_leaf
    assert node.id == 0
    assert list(node.children) == []
    assert count_tree(grow_tree([], root)).counts.leaves == 1


def test_idempotent_rebuild(sample_functions, root):
    tree = grow_tree(sample_functions, root)

    assert shape(tree()) == shape(tree())


def test_ids_unique_and_start_at_root(sample_functions, root):
    ids = [n.id for n in walk(grow_tree(sample_functions, root)())]

    assert ids[0] == 0
    assert len(ids) == len(set(ids)) == 10


def test_builder_is_lazy(make_appender, root):
    calls = {"fn1": 0, "fn2": 0}

    def fn1(x):
        calls["fn1"] += 1
        return [evolve(x, display=x["display"] + "1")]

    def fn2(x):
        calls["fn2"] += 1
        return [evolve(x, display=x["display"] + "2a"), evolve(x, display=x["display"] + "2b")]

    tree = grow_tree([fn1, fn2], root)
    assert calls == {"fn1": 0, "fn2": 0}

    tree()
    assert calls == {"fn1": 1, "fn2": 0}


def test_no_cache_between_traversals(root):
    calls = []

    def fork(x):
        calls.append(x["display"])
        return [evolve(x, display=x["display"] + "a"), evolve(x, display=x["display"] + "b")]

    tree = grow_tree([fork], root)
    count_tree(tree)
    count_tree(tree)

    assert calls == ["a", "a"]


def test_expansion_explosion():
    alternatives = {"a": ["a", "ā"], "e": ["e", "ē"]}

    def lengthen(x):
        return [evolve(x, display=v) for v in expand_variants(x["display"], alternatives)]

    tree = grow_tree([lengthen], {"display": "babeba"})
    leaves = [n.label for n in walk(tree()) if n.is_leaf]

    assert len(leaves) == 8
    assert set(leaves) == {
        "babeba", "babebā", "babēba", "babēbā",
        "bābeba", "bābebā", "bābēba", "bābēbā",
    }
    assert count_tree(tree).counts.nodes == 1


def test_function_error_propagates(root):
    def broken(x):
        raise ValueError("bad rule")

    with pytest.raises(ValueError, match="bad rule"):
        count_tree(grow_tree([broken], root))


def test_missing_display_is_key_error():
    with pytest.raises(KeyError):
        grow_tree([], {"link": 1})()


def test_tree_metadata(sample_functions, root):
    tree = grow_tree(sample_functions, root)

    assert isinstance(tree, Tree)
    assert tree.fn_count == 3
    assert tree.label == "a"
    assert repr(tree) == "<Tree from 'a' through 3 functions>"


def test_function_name_variants(make_appender):
    class Rule:
        name = "rule-object"

        def __call__(self, x):
            return [x]

    fn = make_appender("x", name="suffix_x")

    assert function_name(fn) == "suffix_x"
    assert function_name(functools.partial(fn)) == "suffix_x"
    assert function_name(Rule()) == "rule-object"
