from __future__ import annotations

from copy import deepcopy
from math import isclose

from backend.core.growth import growth_schedule, project_account


def load_request() -> dict:
    return {
        "starting_balance": 25000,
        "annual_rate": 0.06,
        "years": 10,
        "monthly_contribution": 500,
    }


def test_contribution_monotonicity(client):
    base = load_request()
    richer = deepcopy(base)
    richer["monthly_contribution"] = 1000

    base_resp = client.post("/api/calc/accumulation", json=base)
    richer_resp = client.post("/api/calc/accumulation", json=richer)

    assert base_resp.status_code == 200
    assert richer_resp.status_code == 200
    assert richer_resp.get_json()["final_balance"] > base_resp.get_json()["final_balance"]


def test_schedule_starts_at_starting_balance(client):
    resp = client.post("/api/calc/accumulation", json=load_request())
    assert resp.status_code == 200

    schedule = resp.get_json()["schedule"]
    assert len(schedule) == 11
    assert schedule[0]["period"] == 0
    assert isclose(schedule[0]["balance"], 25000.0)
    assert isclose(schedule[-1]["contributed"], 25000.0 + 500 * 12 * 10)


def test_zero_rate_is_linear(client):
    request = {"starting_balance": 1000, "annual_rate": 0.0, "years": 3, "monthly_contribution": 100}
    resp = client.post("/api/calc/accumulation", json=request)

    balances = [point["balance"] for point in resp.get_json()["schedule"]]
    assert balances == [1000.0, 2200.0, 3400.0, 4600.0]


def test_schedule_matches_closed_form():
    balances = growth_schedule(10000, 0.07, 500, 2)
    assert isclose(balances[1], project_account(10000, 0.07, 500, 12), rel_tol=1e-12)
    assert isclose(balances[2], project_account(10000, 0.07, 500, 24), rel_tol=1e-9)


def test_invalid_payload_returns_422(client):
    bad = load_request()
    bad["years"] = 0

    resp = client.post("/api/calc/accumulation", json=bad)
    assert resp.status_code == 422
    assert "detail" in resp.get_json()
