"""Shared flows documents for transform tests."""

from __future__ import annotations

import copy

import pytest


@pytest.fixture
def simple_document() -> list:
    return [
        {"id": "t1", "type": "tab", "label": "Main", "disabled": False, "info": ""},
        {"id": "A", "type": "inject", "z": "t1", "x": 100, "y": 100, "name": "tick", "props": [{"p": "payload"}], "wires": [["B", "C"], []]},
        {"id": "B", "type": "debug", "z": "t1", "x": 300, "y": 80, "wires": []},
        {"id": "C", "type": "debug", "z": "t1", "x": 300, "y": 140, "complete": "payload", "wires": []},
    ]


@pytest.fixture
def template_document() -> list:
    """Tab with one instance of a two-input-port template plus a group inside the template."""
    return copy.deepcopy(
        [
            {"id": "t1", "type": "tab", "label": "Main"},
            {"id": "t2", "type": "tab", "label": "Other"},
            {
                "id": "sf",
                "type": "subflow",
                "name": "Enrich",
                "in": [{"x": 40, "y": 80, "wires": [{"id": "n1"}]}, {"x": 40, "y": 160, "wires": [{"id": "n2"}]}],
                "out": [{"x": 400, "y": 80, "wires": [{"id": "n2", "port": 0}]}],
                "flow": [
                    {"id": "n1", "type": "change", "g": "gsf", "x": 100, "y": 80, "wires": [["n2"]]},
                    {"id": "n2", "type": "function", "g": "gsf", "x": 250, "y": 80, "func": "return msg;", "wires": [[]]},
                ],
            },
            {"id": "n1", "type": "change", "z": "sf", "g": "gsf", "x": 100, "y": 80, "wires": [["n2"]]},
            {"id": "n2", "type": "function", "z": "sf", "g": "gsf", "x": 250, "y": 80, "func": "return msg;", "wires": [[]]},
            {"id": "gsf", "type": "group", "z": "sf", "name": "Core", "x": 80, "y": 40, "w": 260, "h": 100, "nodes": ["n1", "n2"]},
            {"id": "s1", "type": "inject", "z": "t1", "x": 50, "y": 50, "wires": [["inst"]]},
            {"id": "s2", "type": "inject", "z": "t1", "x": 50, "y": 100, "wires": [["inst"]]},
            {"id": "s3", "type": "inject", "z": "t1", "x": 50, "y": 150, "wires": [["inst"]]},
            {"id": "inst", "type": "subflow:sf", "z": "t1", "x": 200, "y": 100, "env": [], "wires": [["out"]]},
            {"id": "out", "type": "debug", "z": "t1", "x": 400, "y": 100, "wires": []},
            {"id": "far", "type": "debug", "z": "t2", "x": 10, "y": 10, "wires": []},
            {"id": "cfg", "type": "mqtt-broker", "broker": "localhost"},
        ]
    )
