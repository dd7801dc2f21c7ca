import json

import pytest

from retireplan.app import app


@pytest.fixture
def client(tmp_path):
    app.config["TESTING"] = True
    app.config["DATA_DIR"] = str(tmp_path)
    with app.test_client() as client:
        yield client


def test_healthcheck(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_simulate_endpoint(client, scenario_records):
    payload = {"profile": {"birthYear": 1982, "retirementAge": 65}, "currentYear": 2024, **scenario_records}

    response = client.post("/api/simulate", json=payload)

    assert response.status_code == 200
    body = response.get_json()
    assert body["cashflow"][0]["netAmount"] == pytest.approx(900)
    assert body["assets"][0]["breakdown"]["debtItems"][0]["amount"] == pytest.approx(20000)
    assert body["metrics"]["retirementYear"] == 2047
    assert body["chart"][0]["year"] == 2024
    assert body["skipped"] == []


def test_simulate_accepts_current_age(client):
    payload = {"profile": {"currentAge": 42}, "currentYear": 2024, "incomes": [{"amount": 100}]}

    body = client.post("/api/simulate", json=payload).get_json()

    assert body["cashflow"][0]["age"] == 42
    assert body["cashflow"][-1]["year"] == 2072


def test_simulate_rejects_bad_payloads(client):
    assert client.post("/api/simulate", data="nope", content_type="text/plain").status_code == 400
    assert client.post("/api/simulate", json={"currentYear": 2024}).status_code == 400

    response = client.post("/api/simulate", json={"profile": {}, "currentYear": 2024})
    assert response.status_code == 400
    assert "error" in response.get_json()

    response = client.post("/api/simulate", json={"profile": {"birthYear": 1982}, "currentYear": "soon"})
    assert response.status_code == 400


def test_snapshot_simulation_saves_result(client, tmp_path, scenario_records):
    snapshot = {"profile": {"birthYear": 1982, "retirementAge": 65}, "currentYear": 2024, **scenario_records}
    (tmp_path / "kim.json").write_text(json.dumps(snapshot, ensure_ascii=False), encoding="utf-8")

    response = client.post("/api/snapshots/kim/simulate", json={})

    assert response.status_code == 200
    saved = json.loads((tmp_path / "kim.result.json").read_text(encoding="utf-8"))
    assert saved["cashflow"][0]["netAmount"] == pytest.approx(900)
    assert "metrics" in saved


def test_snapshot_not_found(client):
    assert client.post("/api/snapshots/nobody/simulate").status_code == 404


def test_calculator_endpoint(client):
    response = client.post(
        "/api/calculator",
        json={"currentAssets": 10000, "annualSavings": 1200, "yearsToRetirement": 20, "nominalReturnRate": 5, "savingsGrowthRate": 3},
    )

    body = response.get_json()
    assert response.status_code == 200
    assert body["retirementAssets"] > 10000
    assert body["realReturnRate"] == pytest.approx(2)

    assert client.post("/api/calculator", json={"yearsToRetirement": "x"}).status_code == 400
