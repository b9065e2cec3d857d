from fastapi.testclient import TestClient


def test_api_normalize_parse_trace_metrics() -> None:
    from advisory_engine.api.main import app

    client = TestClient(app)

    health_resp = client.get("/health")
    assert health_resp.status_code == 200
    assert health_resp.json()["status"] == "ok"

    normalize_resp = client.post(
        "/advisories/normalize",
        json={
            "diagnostic": '{"etat_actuel": "DB fragmented"}',
            "actions_recommandees": '```json\n[{"action":"Add index","priorite":"haute"}]\n```',
            "risques": [],
            "sql_suggere": "SELECT count(*) FROM orders",
            "niveau_confiance": 0.8,
        },
    )
    assert normalize_resp.status_code == 200
    normalized = normalize_resp.json()
    assert normalized["diagnostic"]["kind"] == "structured"
    assert normalized["diagnostic"]["current_state"] == "DB fragmented"
    assert normalized["actions"]["records"][0]["label"] == "Add index"
    assert normalized["actions"]["records"][0]["priority"] == "high"
    assert normalized["risks"] is None
    assert normalized["suggested_queries"] == {"kind": "single", "query": "SELECT count(*) FROM orders"}
    assert normalized["confidence_band"] == "high"
    assert normalized["has_content"] is True
    assert normalized["provenance"]["actions"]["strategy"] == "json_fence"

    parse_resp = client.post("/advisories/parse", json={"text": "No JSON here, just advice."})
    assert parse_resp.status_code == 200
    parsed = parse_resp.json()
    assert parsed["diagnostic"] == {"kind": "prose", "text": "No JSON here, just advice."}
    assert parsed["confidence"] == 0.5

    trace_resp = client.get(f"/traces/{normalized['trace_id']}")
    assert trace_resp.status_code == 200
    assert trace_resp.json()["source"] == "payload"
    assert trace_resp.json()["slots"]["diagnostic"]["strategy"] == "direct"

    traces_resp = client.get("/traces", params={"limit": 5})
    assert traces_resp.status_code == 200
    assert parsed["trace_id"] in {item["trace_id"] for item in traces_resp.json()["items"]}

    metrics_resp = client.get("/metrics")
    assert metrics_resp.status_code == 200
    assert metrics_resp.json()["total_requests"] >= 2


def test_api_rejects_bad_input() -> None:
    from advisory_engine.api.main import app

    client = TestClient(app)

    missing_confidence = client.post("/advisories/normalize", json={"diagnostic": "ok"})
    assert missing_confidence.status_code == 422

    unknown_trace = client.get("/traces/does-not-exist")
    assert unknown_trace.status_code == 404
    assert "Trace not found" in unknown_trace.json()["detail"]

    for limit in (0, -1, 1001):
        bad_limit = client.get("/traces", params={"limit": limit})
        assert bad_limit.status_code == 422
