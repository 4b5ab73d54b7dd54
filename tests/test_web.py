from __future__ import annotations

import pytest
from flask.testing import FlaskClient

from remortgage_web.app import OPTION_FORM_FIELDS, create_app


@pytest.fixture
def flask_app():
    return create_app({"TESTING": True, "SECRET_KEY": "test-secret"})


@pytest.fixture
def client(flask_app) -> FlaskClient:
    with flask_app.test_client() as test_client:
        yield test_client


def form_for(options: list[dict], action: str = "update", **mortgage) -> dict:
    data = {
        "outstanding": mortgage.get("outstanding", "250000"),
        "remain_years": mortgage.get("remain_years", "25"),
        "remain_months": mortgage.get("remain_months", "0"),
        "option_count": str(len(options)),
        "action": action,
    }
    for i, values in enumerate(options):
        for name in OPTION_FORM_FIELDS:
            value = values.get(name)
            if name == "apply_erc":
                if value:
                    data[f"options-{i}-apply_erc"] = "on"
            elif value is not None:
                data[f"options-{i}-{name}"] = value
    return data


def option_form(**overrides) -> dict:
    values = {
        "repayment_type": "repayment",
        "rate": "4.99",
        "fee_amount": "999",
        "fee_handling": "add",
        "fixed_years": "2",
        "fixed_months": "0",
        "overpayment": "0",
        "erc_amount": "0",
        "apply_erc": False,
        "reversion_rate": "6.00",
    }
    values.update(overrides)
    return values


class TestIndexPage:
    def test_defaults_rendered(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        body = resp.get_data(as_text=True)
        assert "Option A" in body
        assert "Option B" in body
        assert "Differences vs Option A" in body

    def test_add_option(self, client):
        resp = client.post("/", data=form_for([option_form(), option_form(rate="5.29")], action="add_option"))
        assert resp.status_code == 200
        assert "Option C" in resp.get_data(as_text=True)
        # kept in the session
        assert "Option C" in client.get("/").get_data(as_text=True)

    def test_add_respects_limit(self):
        app = create_app({"TESTING": True, "SECRET_KEY": "x", "MAX_OPTIONS": 2})
        with app.test_client() as client:
            resp = client.post("/", data=form_for([option_form(), option_form()], action="add_option"))
        assert "Option C" not in resp.get_data(as_text=True)

    def test_remove_relabels(self, client):
        options = [option_form(rate="1.11"), option_form(rate="2.22"), option_form(rate="3.33")]
        resp = client.post("/", data=form_for(options, action="remove_option:0"))
        body = resp.get_data(as_text=True)
        assert "Option C" not in body
        assert 'value="2.22"' in body
        assert 'value="3.33"' in body
        assert 'value="1.11"' not in body

    def test_last_option_cannot_be_removed(self, client):
        resp = client.post("/", data=form_for([option_form()], action="remove_option:0"))
        body = resp.get_data(as_text=True)
        assert "Option A" in body
        assert "Differences vs" not in body

    def test_bad_enum_reported_for_that_option_only(self, client):
        options = [option_form(rate="1.11"), option_form(rate="2.22", repayment_type="tracker")]
        resp = client.post("/", data=form_for(options, outstanding="180000"))
        assert resp.status_code == 200
        body = resp.get_data(as_text=True)
        assert "Option B: Unknown repayment type" in body
        assert "Option A: Unknown" not in body
        assert 'value="1.11"' in body
        assert 'value="2.22"' in body
        assert 'value="180000"' in body

    def test_bad_fee_handling_keeps_other_fields(self, client):
        resp = client.post("/", data=form_for([option_form(rate="3.75", fee_handling="sometimes")]))
        body = resp.get_data(as_text=True)
        assert "Option A: Unknown fee handling" in body
        assert 'value="3.75"' in body

    def test_option_count_clamped_to_limit(self):
        app = create_app({"TESTING": True, "SECRET_KEY": "x", "MAX_OPTIONS": 2})
        data = form_for([option_form(), option_form()])
        data["option_count"] = "300000"
        with app.test_client() as client:
            resp = client.post("/", data=data)
        assert resp.status_code == 200
        body = resp.get_data(as_text=True)
        assert "Option B" in body
        assert "Option C" not in body

    def test_long_fixed_term_capped_and_reported(self):
        app = create_app({"TESTING": True, "SECRET_KEY": "x", "MAX_TERM_MONTHS": 360})
        with app.test_client() as client:
            resp = client.post("/", data=form_for([option_form(fixed_years="200000")]))
        assert resp.status_code == 200
        body = resp.get_data(as_text=True)
        assert "Option A: fixed term is limited to 360 months" in body
        assert 'value="200000"' in body

    def test_long_remaining_term_reported(self):
        app = create_app({"TESTING": True, "SECRET_KEY": "x", "MAX_TERM_MONTHS": 360})
        with app.test_client() as client:
            resp = client.post("/", data=form_for([option_form()], remain_years="100000"))
        assert resp.status_code == 200
        assert "Remaining term is limited to 360 months" in resp.get_data(as_text=True)

    def test_reset(self, client):
        client.post("/", data=form_for([option_form()] * 3))
        client.post("/reset")
        body = client.get("/").get_data(as_text=True)
        assert "Option C" not in body
        assert "Option B" in body


class TestCompareApi:
    def payload(self) -> dict:
        return {
            "outstandingBalance": 100000,
            "remainingTermMonths": 120,
            "options": [
                {"type": "interestOnly", "rate": "5", "feeAmount": "0", "fixedYears": "1", "overpayment": "200"},
                {"type": "repayment", "rate": "4.5", "feeAmount": "999", "feeHandling": "upfront", "fixedYears": "2"},
            ],
        }

    def test_results(self, client):
        resp = client.post("/api/compare", json=self.payload())
        assert resp.status_code == 200
        body = resp.get_json()
        assert [r["label"] for r in body["results"]] == ["Option A", "Option B"]
        a, b = (r["metrics"] for r in body["results"])
        assert a["monthlyPayment"] == pytest.approx(100000 * 0.05 / 12 + 200)
        assert b["upfrontFee"] == 999
        assert b["startingBalance"] == 100000
        assert body["differences"][0]["monthlyPayment"] == b["monthlyPayment"] - a["monthlyPayment"]
        assert len(body["chartData"]) == 25

    def test_years_and_months(self, client):
        payload = self.payload()
        del payload["remainingTermMonths"]
        payload.update(remainingYears="10", remainingMonths="0")
        expected = client.post("/api/compare", json=self.payload()).get_json()
        assert client.post("/api/compare", json=payload).get_json() == expected

    def test_defaults_when_no_options(self, client):
        resp = client.post("/api/compare", json={"outstandingBalance": "250,000", "remainingTermMonths": 300})
        body = resp.get_json()
        assert body["results"][0]["metrics"]["startingBalance"] == 250999

    @pytest.mark.parametrize(
        "payload",
        [
            [1, 2, 3],
            {"options": "nope"},
            {"options": [1]},
            {"options": [{"colour": "red"}]},
            {"options": [{"type": "tracker"}]},
        ],
    )
    def test_invalid_payload_returns_400(self, client, payload):
        resp = client.post("/api/compare", json=payload)
        assert resp.status_code == 400
        assert "detail" in resp.get_json()

    def test_non_json_body(self, client):
        resp = client.post("/api/compare", data="hello", content_type="text/plain")
        assert resp.status_code == 400

    @pytest.mark.parametrize("rate", ["-1200", "-1199"])
    def test_negative_rate_treated_as_zero(self, client, rate):
        payload = self.payload()
        payload["options"][1]["rate"] = rate
        resp = client.post("/api/compare", json=payload)
        assert resp.status_code == 200
        b = resp.get_json()["results"][1]["metrics"]
        assert b["monthlyPayment"] == pytest.approx(100000 / 120)

    def test_too_many_options(self):
        app = create_app({"TESTING": True, "SECRET_KEY": "x", "MAX_OPTIONS": 2})
        with app.test_client() as client:
            resp = client.post("/api/compare", json={"options": [{}, {}, {}]})
        assert resp.status_code == 400
        assert resp.get_json()["detail"] == "At most 2 options can be compared"

    def test_fixed_term_over_limit(self, client):
        payload = self.payload()
        payload["options"][0]["fixedYears"] = "200000"
        resp = client.post("/api/compare", json=payload)
        assert resp.status_code == 400
        assert resp.get_json()["detail"] == "Option A: fixed term is limited to 600 months"

    def test_remaining_term_over_limit(self, client):
        payload = self.payload()
        payload["remainingTermMonths"] = 1200000
        resp = client.post("/api/compare", json=payload)
        assert resp.status_code == 400
        assert "Remaining term is limited to 600 months" in resp.get_json()["detail"]

    def test_term_limit_from_environment(self, monkeypatch):
        monkeypatch.setenv("REMORTGAGE_MAX_TERM_MONTHS", "60")
        app = create_app({"TESTING": True, "SECRET_KEY": "x"})
        with app.test_client() as client:
            resp = client.post("/api/compare", json=self.payload())
        assert resp.status_code == 400
        assert resp.get_json()["detail"] == "Remaining term is limited to 60 months"
