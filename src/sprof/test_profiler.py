import pytest
from pydantic import ValidationError

from sprof.config import MAX_DEPTH_LIMIT
from sprof.profiler import Sample, StaticProfiler, is_elided
from sprof.types import CallGraph, CallGraphEdge, CallGraphNode, Func


def make_graph(sizes: dict, calls: list[tuple[str, str]], root: str = "root") -> CallGraph:
    """Build a graph of main.<name> functions from {name: body_size} and (caller, callee) pairs."""
    nodes = [
        CallGraphNode(func=Func(pkg_path="main", name=name), body_size=size)
        for name, size in sizes.items()
    ]
    edges = [CallGraphEdge(caller_id=f"main.{a}", callee_id=f"main.{b}") for a, b in calls]
    return CallGraph(nodes=nodes, edges=edges, root_id=f"main.{root}")


def names(sample: Sample) -> list[str]:
    return [f.name for f in sample.frames]


def test_recursive_chain_example():
    graph = make_graph(
        {"root": 0, "A": 40, "B": 0},
        [("root", "A"), ("A", "A"), ("A", "B")],
    )
    samples = StaticProfiler(graph).run()

    assert [(names(s), s.count) for s in samples] == [
        (["root", "A"], 20),
        (["root", "A", "B"], 1),
    ]


def test_lone_root_is_a_leaf():
    graph = make_graph({"root": 0}, [])
    samples = StaticProfiler(graph).run()
    assert [(names(s), s.count) for s in samples] == [(["root"], 1)]


def test_unavailable_body_size_counts_as_zero():
    graph = make_graph({"root": None, "ext": None}, [("root", "ext")])
    samples = StaticProfiler(graph).run()
    assert [(names(s), s.count) for s in samples] == [(["root", "ext"], 1)]


def test_leaf_bonus_adds_to_self_weight():
    graph = make_graph({"root": 0, "leaf": 10}, [("root", "leaf")])
    samples = StaticProfiler(graph).run()
    assert [(names(s), s.count) for s in samples] == [(["root", "leaf"], 10 // 2 + 1)]


def test_self_weight_is_amortized_over_depth():
    # chain root -> n1 -> ... -> n5 -> end, every function 100 bytes
    chain = ["root", "n1", "n2", "n3", "n4", "n5"]
    sizes = {name: 100 for name in chain}
    sizes["end"] = 0
    calls = list(zip(chain, chain[1:] + ["end"]))
    samples = StaticProfiler(make_graph(sizes, calls)).run()

    counts = {s.frames[-1].name: s.count for s in samples}
    assert counts == {"root": 100, "n1": 50, "n2": 33, "n3": 25, "n4": 20, "n5": 16, "end": 1}


def test_non_leaf_without_size_is_not_emitted():
    graph = make_graph({"root": 0, "mid": 0, "leaf": 0}, [("root", "mid"), ("mid", "leaf")])
    samples = StaticProfiler(graph).run()
    assert [names(s) for s in samples] == [["root", "mid", "leaf"]]


def test_depth_ceiling():
    chain = [f"n{i}" for i in range(12)]
    graph = make_graph({name: 100 for name in chain}, list(zip(chain, chain[1:])), root="n0")
    samples = StaticProfiler(graph).run()

    assert max(len(s.frames) for s in samples) == 8
    assert len(samples) == 8
    # the function at the ceiling is still weighed
    assert samples[-1].frames[-1].name == "n7"
    assert samples[-1].count == 100 // 8


def test_configurable_depth():
    graph = make_graph({"root": 10, "a": 10}, [("root", "a")])
    samples = StaticProfiler(graph, max_depth=1).run()
    assert [(names(s), s.count) for s in samples] == [(["root"], 10)]


def test_init_is_elided():
    graph = CallGraph(
        nodes=[
            CallGraphNode(func=Func(pkg_path="main", name="root"), body_size=0),
            CallGraphNode(func=Func(pkg_path="main", name="init"), body_size=500),
            CallGraphNode(func=Func(pkg_path="main", receiver="T", name="init"), body_size=0),
        ],
        edges=[
            CallGraphEdge(caller_id="main.root", callee_id="main.init"),
            CallGraphEdge(caller_id="main.root", callee_id="main.(T).init"),
        ],
        root_id="main.root",
    )
    samples = StaticProfiler(graph).run()
    assert [[str(f) for f in s.frames] for s in samples] == [["main.root", "main.(T).init"]]


def test_is_elided():
    assert is_elided(Func(pkg_path="fmt", name="init"))
    assert is_elided(Func(name="init"))
    assert not is_elided(Func(pkg_path="fmt", receiver="*pp", name="init"))
    assert not is_elided(Func(pkg_path="fmt", name="init$1"))


def test_diamond_reports_every_path():
    graph = make_graph(
        {"root": 0, "a": 0, "b": 0, "c": 0},
        [("root", "a"), ("root", "b"), ("a", "c"), ("b", "c")],
    )
    samples = StaticProfiler(graph).run()
    assert [names(s) for s in samples] == [["root", "a", "c"], ["root", "b", "c"]]


def test_dense_cyclic_graph_terminates_without_revisits():
    nodes = [f"n{i}" for i in range(6)]
    calls = [(a, b) for a in nodes for b in nodes]
    graph = make_graph({name: 64 for name in nodes}, calls, root="n0")
    samples = StaticProfiler(graph).run()

    # every simple path of up to 6 distinct functions starting at n0
    assert len(samples) == 1 + 5 + 5 * 4 + 5 * 4 * 3 + 5 * 4 * 3 * 2 + 5 * 4 * 3 * 2 * 1
    for s in samples:
        assert len(s.frames) <= 8
        assert len(set(s.frames)) == len(s.frames)
        assert s.count > 0


def test_explicit_root():
    graph = make_graph({"root": 0, "other": 7}, [("root", "other")])
    samples = StaticProfiler(graph).run(graph.node("main.other"))
    assert [(names(s), s.count) for s in samples] == [(["other"], 8)]


def test_run_resets_samples():
    graph = make_graph({"root": 0}, [])
    profiler = StaticProfiler(graph)
    assert len(profiler.run()) == 1
    assert len(profiler.run()) == 1


def test_sample_requires_positive_count():
    with pytest.raises(ValidationError):
        Sample(frames=(Func(name="f"),), count=0)


def test_deepest_allowed_walk_on_long_chain():
    chain = [f"n{i}" for i in range(100)]
    graph = make_graph({name: 1000 for name in chain}, list(zip(chain, chain[1:])), root="n0")
    samples = StaticProfiler(graph, max_depth=MAX_DEPTH_LIMIT).run()
    assert len(samples) == MAX_DEPTH_LIMIT
    assert max(len(s.frames) for s in samples) == MAX_DEPTH_LIMIT


def test_max_depth_out_of_range():
    graph = make_graph({"root": 0}, [])
    with pytest.raises(ValueError, match="max_depth"):
        StaticProfiler(graph, max_depth=MAX_DEPTH_LIMIT + 1)
    with pytest.raises(ValueError, match="max_depth"):
        StaticProfiler(graph, max_depth=0)
