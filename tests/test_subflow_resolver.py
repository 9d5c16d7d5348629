from __future__ import annotations

import pytest


def _template(**overrides) -> dict:
    rec = {
        "id": "sf",
        "type": "subflow",
        "name": "Enrich",
        "in": [{"x": 40, "y": 80, "wires": [{"id": "n1"}]}],
        "out": [
            {"x": 400, "y": 80, "wires": [{"id": "n2", "port": 0}]},
            {"x": 400, "y": 160, "wires": [{"id": "n2", "port": 1}]},
        ],
        "flow": [
            {"id": "n1", "type": "change", "x": 100, "y": 80, "wires": [["n2"]]},
            {"id": "n2", "type": "switch", "x": 250, "y": 80, "wires": [[], []]},
        ],
    }
    rec.update(overrides)
    return rec


@pytest.mark.basic
def test_collect_templates_reads_body_and_counts_ports() -> None:
    from flowmapper.mapping import collect_templates, input_count, output_count, resolve_template

    templates = collect_templates([{"id": "t1", "type": "tab"}, _template()])
    tpl = templates["sf"]
    assert [r["id"] for r in tpl.internal_records] == ["n1", "n2"]
    assert all("z" not in r for r in tpl.internal_records)
    assert input_count(tpl) == 1
    assert output_count(tpl) == 2
    assert len(tpl.port_map.outputs[1].internal_wires) == 1
    assert tpl.port_map.outputs[1].extra == {"x": 400, "y": 160}

    instance = {"id": "i1", "type": "subflow:sf", "z": "t1"}
    assert resolve_template(instance, templates) is tpl
    assert resolve_template({"id": "i2", "type": "subflow:nope"}, templates) is None
    assert input_count(None) == 0


@pytest.mark.basic
def test_collect_templates_falls_back_to_scoped_records() -> None:
    from flowmapper.mapping import collect_templates, output_count

    records = [
        {"id": "sf", "type": "subflow", "outputs": 3},
        {"id": "n1", "type": "change", "z": "sf", "x": 1, "y": 2, "wires": [[]]},
        {"id": "gg", "type": "group", "z": "sf"},
        {"id": "n9", "type": "change", "z": "t1", "x": 1, "y": 2},
    ]
    tpl = collect_templates(records)["sf"]
    assert tpl.internal_records == [{"id": "n1", "type": "change", "x": 1, "y": 2, "wires": [[]]}]
    assert output_count(tpl) == 3


@pytest.mark.basic
def test_port_counters_assign_sequentially_and_clamp() -> None:
    from flowmapper.mapping import PortCounters

    three = PortCounters()
    assert [three.assign("T", 3) for _ in range(3)] == [0, 1, 2]

    two = PortCounters()
    assert [two.assign("T", 2) for _ in range(3)] == [0, 1, 1]
    assert two.assign("other", 2) == 0

    # Fresh counters share nothing.
    assert PortCounters().assign("T", 2) == 0


@pytest.mark.basic
def test_validate_port_map_drops_missing_and_malformed_bindings(caplog) -> None:
    from flowmapper.mapping import validate_port_map

    rec = _template(
        **{
            "in": [{"x": 1, "y": 2, "wires": [{"id": "n1", "port": 0}, {"id": "gone"}, None, {"id": ""}]}],
            "out": [{"x": 3, "y": 4, "wires": [{"id": "n2", "port": 1}, {"port": 0}]}, "junk"],
        }
    )
    with caplog.at_level("WARNING", logger="flowmapper"):
        cleaned, dropped = validate_port_map(rec, {"n1", "n2"})

    assert cleaned["in"] == [{"x": 1, "y": 2, "wires": [{"id": "n1"}]}]
    assert cleaned["out"] == [{"x": 3, "y": 4, "wires": [{"id": "n2", "port": 1}]}]
    assert dropped == 5
    assert "Dropped port binding" in caplog.text
    # Input record is untouched.
    assert len(rec["in"][0]["wires"]) == 4


@pytest.mark.basic
def test_build_template_body_emits_both_representations() -> None:
    from flowmapper.mapping import build_template_body

    internal = [
        {"id": "n1", "type": "change", "z": "sf", "x": 100, "y": 80, "wires": [["n2"]]},
        {"id": "n2", "type": "switch", "wires": [[], []]},
    ]
    body = build_template_body(_template(), internal)

    assert body.template["type"] == "subflow"
    assert [r["id"] for r in body.template["flow"]] == ["n1", "n2"]
    assert all("z" not in r for r in body.template["flow"])

    assert [r["z"] for r in body.scoped_copies] == ["sf", "sf"]
    assert (body.scoped_copies[1]["x"], body.scoped_copies[1]["y"]) == (0, 0)
    assert body.scoped_copies[0]["wires"] == [["n2"]]
    assert body.dropped_bindings == 0
