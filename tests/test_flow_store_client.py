from __future__ import annotations

import json

import httpx
import pytest


def _store(state: dict, calls: list):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path != "/flows":
            return httpx.Response(404, text="not found")
        if request.method == "GET":
            if request.headers.get("Node-RED-API-Version") == "v2":
                return httpx.Response(200, json={"rev": state["rev"], "flows": state["flows"]})
            return httpx.Response(200, json=state["flows"])
        if request.method == "POST":
            body = json.loads(request.content)
            if body.get("rev") and body["rev"] != state["rev"]:
                return httpx.Response(409, json={"code": "version_mismatch"})
            state["flows"] = body["flows"]
            state["rev"] = f"rev-{int(state['rev'].split('-')[1]) + 1}"
            return httpx.Response(200, json={"rev": state["rev"]})
        return httpx.Response(405)

    return httpx.MockTransport(handler)


@pytest.mark.basic
def test_get_flows_reads_v2_snapshot(simple_document) -> None:
    from flowmapper.client import FlowStoreClient

    calls: list = []
    state = {"rev": "rev-1", "flows": simple_document}
    with FlowStoreClient("http://store.test/", transport=_store(state, calls)) as client:
        snapshot = client.get_flows()

    assert snapshot.rev == "rev-1"
    assert [r["id"] for r in snapshot.flows] == ["t1", "A", "B", "C"]
    assert calls[0].headers["Node-RED-API-Version"] == "v2"
    assert str(calls[0].url) == "http://store.test/flows"


@pytest.mark.basic
def test_get_flows_accepts_v1_array() -> None:
    from flowmapper.client import FlowStoreClient

    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[{"id": "t1", "type": "tab"}, 5]))
    client = FlowStoreClient("http://store.test", transport=transport)
    snapshot = client.get_flows()
    assert snapshot.rev == ""
    assert snapshot.flows == [{"id": "t1", "type": "tab"}]


@pytest.mark.basic
def test_save_flows_fetches_rev_and_sends_full_deploy_headers(simple_document) -> None:
    from flowmapper.client import FlowStoreClient

    calls: list = []
    state = {"rev": "rev-1", "flows": []}
    client = FlowStoreClient("http://store.test", transport=_store(state, calls))

    new_rev = client.save_flows(simple_document)

    assert new_rev == "rev-2"
    assert [c.method for c in calls] == ["GET", "POST"]
    post = calls[1]
    assert post.headers["Node-RED-API-Version"] == "v2"
    assert post.headers["Node-RED-Deployment-Type"] == "full"
    assert json.loads(post.content) == {"rev": "rev-1", "flows": simple_document}
    assert state["flows"] == simple_document


@pytest.mark.basic
def test_save_flows_validates_before_sending() -> None:
    from flowmapper.client import FlowStoreClient
    from flowmapper.validation import FlowValidationError

    calls: list = []
    client = FlowStoreClient("http://store.test", transport=_store({"rev": "rev-1", "flows": []}, calls))
    with pytest.raises(FlowValidationError):
        client.save_flows([{"id": "a", "type": "inject", "z": "t1", "x": 0, "y": 0, "wires": [["ghost"]]}])
    assert calls == []


@pytest.mark.basic
def test_http_errors_surface_as_flow_store_error(simple_document) -> None:
    from flowmapper.client import FlowStoreClient, FlowStoreError

    calls: list = []
    client = FlowStoreClient("http://store.test", transport=_store({"rev": "rev-5", "flows": []}, calls))
    with pytest.raises(FlowStoreError) as excinfo:
        client.save_flows(simple_document, rev="rev-1")
    assert excinfo.value.status_code == 409
    assert isinstance(excinfo.value.__cause__, httpx.HTTPStatusError)

    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    offline = FlowStoreClient("http://store.test", transport=httpx.MockTransport(boom))
    with pytest.raises(FlowStoreError) as excinfo:
        offline.get_flows()
    assert excinfo.value.status_code is None
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.integration
def test_save_scope_round_trips_an_edit(template_document) -> None:
    from dataclasses import replace

    from flowmapper.client import FlowStoreClient
    from flowmapper.mapping import to_visual
    from flowmapper.visual import Position

    calls: list = []
    state = {"rev": "rev-1", "flows": template_document}
    client = FlowStoreClient("http://store.test", transport=_store(state, calls))

    graph = to_visual(client.get_flows().flows, "t1")
    nodes = [replace(n, position=Position(x=999, y=1)) if n.id == "out" else n for n in graph.nodes]
    new_rev = client.save_scope(nodes, graph.edges, "t1")

    assert new_rev == "rev-2"
    saved = {r["id"]: r for r in state["flows"]}
    assert (saved["out"]["x"], saved["out"]["y"]) == (999, 1)
    assert saved["sf"]["flow"][0]["id"] == "n1"
    assert json.loads(calls[-1].content)["rev"] == "rev-1"


@pytest.mark.integration
def test_save_scope_sends_the_load_time_rev(template_document) -> None:
    from flowmapper.client import FlowStoreClient, FlowStoreError
    from flowmapper.mapping import to_visual

    calls: list = []
    state = {"rev": "rev-1", "flows": template_document}
    client = FlowStoreClient("http://store.test", transport=_store(state, calls))

    loaded = client.get_flows()
    graph = to_visual(loaded.flows, "t1")
    # Another editor deploys in between.
    state["rev"] = "rev-7"

    with pytest.raises(FlowStoreError) as excinfo:
        client.save_scope(graph.nodes, graph.edges, "t1", rev=loaded.rev)
    assert excinfo.value.status_code == 409
    assert json.loads(calls[-1].content)["rev"] == "rev-1"
    assert state["rev"] == "rev-7"

    assert client.save_scope(graph.nodes, graph.edges, "t1", rev="rev-7") == "rev-8"
    assert json.loads(calls[-1].content)["rev"] == "rev-7"


@pytest.mark.basic
def test_store_config_from_env(monkeypatch) -> None:
    from flowmapper.client import FlowStoreClient, StoreConfig

    monkeypatch.delenv("FLOWMAPPER_STORE_URL", raising=False)
    monkeypatch.delenv("FLOWMAPPER_STORE_TIMEOUT_S", raising=False)
    assert StoreConfig.from_env() == StoreConfig(base_url="http://localhost:1880", timeout_s=30.0)

    monkeypatch.setenv("FLOWMAPPER_STORE_URL", "http://nodered:1880/")
    monkeypatch.setenv("FLOWMAPPER_STORE_TIMEOUT_S", "5")
    cfg = StoreConfig.from_env()
    assert cfg.timeout_s == 5.0
    assert FlowStoreClient.from_config(cfg).base_url == "http://nodered:1880"

    monkeypatch.setenv("FLOWMAPPER_STORE_TIMEOUT_S", "soon")
    with pytest.raises(ValueError):
        StoreConfig.from_env()
