from __future__ import annotations

import pytest


@pytest.mark.basic
def test_build_adjacency_is_dense_and_tolerant() -> None:
    from flowmapper.records import build_adjacency, targets_for

    adj = build_adjacency({"id": "A", "wires": [["B", "C"], [], None, ["", 4, "D"]]})
    assert adj == {0: ["B", "C"], 1: [], 2: [], 3: ["D"]}
    assert targets_for(adj, 1) == []
    assert targets_for(adj, 9) == []

    assert build_adjacency({"id": "A"}) == {}
    assert build_adjacency({"id": "A", "wires": "B"}) == {}
    assert build_adjacency(None) == {}


@pytest.mark.basic
def test_synthesize_wires_fills_gaps_with_empty_ports() -> None:
    from flowmapper.records import synthesize_wires
    from flowmapper.visual import VisualEdge

    edges = [
        VisualEdge(id="e1", source_id="A", source_port=2, target_id="C"),
        VisualEdge(id="e2", source_id="A", source_port=0, target_id="B"),
        VisualEdge(id="e3", source_id="X", source_port=5, target_id="B"),
    ]
    assert synthesize_wires("A", edges) == [["B"], [], ["C"]]
    assert synthesize_wires("Z", edges) == []


@pytest.mark.basic
def test_synthesize_wires_keeps_edge_order_and_repeated_targets() -> None:
    from flowmapper.records import synthesize_wires
    from flowmapper.visual import VisualEdge

    edges = [
        VisualEdge(id="1", source_id="A", source_port=0, target_id="C"),
        VisualEdge(id="2", source_id="A", source_port=0, target_id="B"),
        VisualEdge(id="3", source_id="A", source_port=0, target_id="C"),
        VisualEdge(id="4", source_id="A", source_port=0, target_id="A"),
    ]
    # Self-loops and repeated targets are kept.
    assert synthesize_wires("A", edges) == [["C", "B", "C", "A"]]


@pytest.mark.basic
def test_merge_wires_appends_valid_prior_targets_and_keeps_prior_ports() -> None:
    from flowmapper.records import merge_wires

    merged = merge_wires([["B"]], [["cfg", "gone"], [], ["B", "other"]], {"cfg", "other"})
    assert merged == [["B", "cfg"], [], ["other"]]

    assert merge_wires([["B", "C"]], [["B", "C"], []], set()) == [["B", "C"], []]
    assert merge_wires([], None, {"x"}) == []


@pytest.mark.basic
def test_pad_wires() -> None:
    from flowmapper.records import pad_wires

    assert pad_wires([["a"]], 3) == [["a"], [], []]
    assert pad_wires([["a"], []], 1) == [["a"], []]
