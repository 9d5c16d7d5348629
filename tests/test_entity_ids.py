from __future__ import annotations

import pytest


@pytest.mark.basic
def test_generate_id_is_prefixed_and_avoids_existing(monkeypatch) -> None:
    from flowmapper.mapping import ids

    a = ids.generate_id("group-")
    b = ids.generate_id("group-")
    assert a.startswith("group-") and b.startswith("group-")
    assert a != b

    values = iter(["aaaaaaaaa0000", "bbbbbbbbb0000"])

    class _FakeUUID:
        def __init__(self, value: str):
            self.hex = value

    monkeypatch.setattr(ids.uuid, "uuid4", lambda: _FakeUUID(next(values)))
    monkeypatch.setattr(ids.time, "time", lambda: 1.0)
    taken = {"rs-aaaaaaaaa"}
    assert ids.generate_id(existing=taken) == "rs-bbbbbbbbb"


@pytest.mark.basic
def test_dedupe_prefers_body_then_field_count_then_first(caplog) -> None:
    from flowmapper.mapping import dedupe_records

    records = [
        {"id": "sf", "type": "subflow", "name": "x", "info": "", "env": []},
        {"id": "n", "type": "debug"},
        {"id": "sf", "type": "subflow", "flow": [{"id": "a"}]},
        {"id": "n", "type": "debug", "z": "t1"},
        {"id": "n", "type": "other", "z": "t2"},
        {"type": "no-id"},
    ]
    with caplog.at_level("WARNING", logger="flowmapper"):
        out = dedupe_records(records)

    assert out == [
        {"id": "sf", "type": "subflow", "flow": [{"id": "a"}]},
        {"id": "n", "type": "debug", "z": "t1"},
        {"type": "no-id"},
    ]
    assert caplog.text.count("Duplicate record id resolved") == 3
