"""REST surface for the retirement projection engine."""

from __future__ import annotations

import datetime
import os
from typing import Any, Dict

from flask import Flask, jsonify, request

from retireplan.config import config_from_env
from retireplan.data_model import profile_from_record
from retireplan.engine.aggregate import chart_rows
from retireplan.engine.calculator import calculate
from retireplan.engine.metrics import summary_metrics
from retireplan.engine.simulator import run_simulation
from retireplan.engine.storage import load_snapshot, save_result
from retireplan.logger import setup_logger

logger = setup_logger("retireplan")

app = Flask(__name__)
app.config["DATA_DIR"] = os.getenv("RETIREPLAN_DATA_DIR", "user_data")


def _extract_payload_value(payload: dict, *keys: str, default=None):
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


def _current_year(payload: dict) -> int:
    raw = _extract_payload_value(payload, "currentYear", "current_year")
    if raw is None:
        return datetime.date.today().year
    return int(raw)


def _simulate_payload(payload: dict) -> Dict[str, Any]:
    """Runs one simulation over a snapshot-shaped payload. Raises ValueError on bad input."""
    profile_record = payload.get("profile")
    if not isinstance(profile_record, dict):
        raise ValueError("Profile is required.")
    current_year = _current_year(payload)
    profile = profile_from_record(profile_record, current_year)
    records = {key: value for key, value in payload.items() if key not in {"profile", "currentYear", "current_year"}}

    result = run_simulation(profile, records, current_year, config_from_env())
    body = result.to_dict()
    body["metrics"] = summary_metrics(result, profile)
    body["chart"] = chart_rows(result)
    return body


def _snapshot_path(name: str, suffix: str = "") -> str:
    safe = "".join(ch for ch in name if ch.isalnum() or ch in "-_")
    return os.path.join(app.config["DATA_DIR"], f"{safe}{suffix}.json")


@app.after_request
def apply_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return response


@app.get("/api/health")
def healthcheck():
    return jsonify({"status": "ok"})


@app.post("/api/simulate")
def simulate_endpoint():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "JSON object body is required."}), 400
    try:
        body = _simulate_payload(payload)
    except (TypeError, ValueError) as exc:
        logger.warning("Rejected simulation request: %s", exc)
        return jsonify({"error": str(exc) or "Invalid simulation parameters."}), 400
    return jsonify(body)


@app.post("/api/snapshots/<name>/simulate")
def simulate_snapshot(name: str):
    snapshot = load_snapshot(_snapshot_path(name))
    if not snapshot:
        return jsonify({"error": "Snapshot not found."}), 404
    overrides = request.get_json(silent=True) or {}
    if "currentYear" in overrides:
        snapshot["currentYear"] = overrides["currentYear"]
    try:
        body = _simulate_payload(snapshot)
    except (TypeError, ValueError) as exc:
        return jsonify({"error": str(exc)}), 400
    save_result(_snapshot_path(name, ".result"), body)
    return jsonify(body)


@app.post("/api/calculator")
def calculator_endpoint():
    payload = request.get_json(silent=True) or {}
    try:
        current_assets = float(_extract_payload_value(payload, "currentAssets", default=0.0))
        annual_savings = float(_extract_payload_value(payload, "annualSavings", default=0.0))
        years = int(_extract_payload_value(payload, "yearsToRetirement", "years", default=0))
        return_rate = float(_extract_payload_value(payload, "nominalReturnRate", "returnRate", default=0.0))
        growth_rate = float(_extract_payload_value(payload, "savingsGrowthRate", "growthRate", default=3.0))
    except (TypeError, ValueError):
        return jsonify({"error": "Invalid calculator parameters."}), 400
    return jsonify(calculate(current_assets, annual_savings, years, return_rate, growth_rate))


if __name__ == "__main__":
    app.run(debug=False, port=8000)
