"""HTTP API tests against an engine over the bundled library."""

import pytest
from fastapi.testclient import TestClient

from app import app, get_engine
from red_flags import RedFlagEngine
from rule_library import RuleLibraryRepository

PAYOUT_TEXT = "The maximum payable amount is R20,000 per claim."


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_analyze_returns_report(client):
    resp = client.post("/analyze", json={"text": PAYOUT_TEXT, "contract_type": "insurance"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["contract_type"] == "insurance"
    assert body["degraded"] is False
    assert [f["id"] for f in body["flags"]] == ["payout_limit"]
    assert body["flags"][0]["severity"] == 70
    assert body["library"]["loaded"] is True


def test_analyze_detects_type_and_honours_max_flags(client):
    text = "This insurance policy covers each claim. The insurer will not pay for wear and tear."
    resp = client.post("/analyze", json={"text": text, "max_flags": 0})
    body = resp.json()
    assert body["contract_type"] == "insurance"
    assert body["contract_type_detected"] is True
    assert body["flags"] == []


def test_analyze_rejects_blank_text(client):
    resp = client.post("/analyze", json={"text": "   "})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "No text could be extracted from the document"


def test_analyze_rejects_negative_max_flags(client):
    resp = client.post("/analyze", json={"text": PAYOUT_TEXT, "max_flags": -1})
    assert resp.status_code == 422


def test_analyze_markdown(client):
    resp = client.post(
        "/analyze.md",
        json={"text": PAYOUT_TEXT, "contract_type": "insurance", "document_name": "policy.pdf"},
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/markdown")
    assert "# Red Flag Report — policy.pdf" in resp.text
    assert "## Payout Limit" in resp.text
    assert "<em>maximum payable amount is R20,000</em>" in resp.text


def test_detect_type(client):
    resp = client.post("/detect-type", json={"text": "The tenant shall pay the landlord monthly."})
    assert resp.status_code == 200
    body = resp.json()
    assert body["contract_type"] == "lease"
    assert body["reason"].startswith("keyword_score")
    assert len(body["candidates"]) == 4


def test_rules_status(client):
    body = client.get("/rules/status").json()
    assert body["loaded"] is True
    assert body["version"] == "1.0.0"
    assert body["contract_types"]["insurance"] == 8


def test_list_rules_for_type(client):
    resp = client.get("/rules/lease")
    assert resp.status_code == 200
    assert "deposit_forfeiture" in [r["id"] for r in resp.json()]


def test_list_rules_unknown_type(client):
    resp = client.get("/rules/maritime")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "No rules found for contract type 'maritime'"


def test_analyze_reports_degraded_library(tmp_path):
    path = tmp_path / "library.json"
    path.write_text("[]", encoding="utf-8")
    broken = RedFlagEngine(RuleLibraryRepository(path))
    app.dependency_overrides[get_engine] = lambda: broken
    try:
        resp = TestClient(app).post("/analyze", json={"text": PAYOUT_TEXT, "contract_type": "insurance"})
    finally:
        app.dependency_overrides.clear()

    body = resp.json()
    assert resp.status_code == 200
    assert body["flags"] == []
    assert body["degraded"] is True
    assert body["library"]["loaded"] is False
