"""HTTP tests for the ledger API."""

import unittest

from fastapi.testclient import TestClient

from loan_ledger.core.config import AppSettings
from loan_ledger.main import create_app
from loan_ledger.repositories.in_memory_record_store import InMemoryRecordStore
from loan_ledger.services.loan_ledger_service import LoanLedgerService
from loan_ledger.tests.support import ADMIN, ALICE, BOB, INCOME, PRINCIPAL, RATE_BPS, TENURE, FakeClock


def _caller(identity):
    return {"X-Caller-Id": identity}


class LedgerApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        service = LoanLedgerService(InMemoryRecordStore(), clock=self.clock)
        self.client = TestClient(create_app(settings=AppSettings(log_level="WARNING"), service=service))
        response = self.client.post("/ledger/initialize", json={"fee_percentage": 250}, headers=_caller(ADMIN))
        self.assertEqual(response.status_code, 200)

    def register(self, identity=ALICE):
        return self.client.post(
            "/ledger/users",
            json={"full_name": "Alice", "monthly_income": INCOME, "employment_type": "SALARIED"},
            headers=_caller(identity),
        )

    def create_loan(self, caller=ADMIN):
        return self.client.post(
            "/ledger/loans",
            json={
                "user": ALICE,
                "principal_amount": PRINCIPAL,
                "interest_rate": RATE_BPS,
                "tenure_months": TENURE,
            },
            headers=_caller(caller),
        )

    def test_health_and_root(self) -> None:
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})
        self.assertIn("running", self.client.get("/").json()["message"])

    def test_settings_snapshot(self) -> None:
        policy = self.client.get("/settings").json()["policy"]
        self.assertEqual(policy["grace_days"], 2)
        self.assertEqual(policy["fine_cap_bps"], 1000)

    def test_program_state(self) -> None:
        body = self.client.get("/ledger/program").json()
        self.assertEqual(body["authority"], ADMIN)
        self.assertEqual(body["fee_percentage"], 250)

    def test_register_user(self) -> None:
        response = self.register()
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["event"]["event_type"], "UserRegistered")
        self.assertEqual(body["records"]["user_profile"]["credit_score"], 500)
        self.assertTrue(self.client.get("/ledger/users/{0}/registered".format(ALICE)).json()["registered"])
        self.assertEqual(self.client.get("/ledger/users/{0}/credit-score".format(ALICE)).json()["credit_score"], 500)

    def test_duplicate_registration_conflict(self) -> None:
        self.register()
        response = self.register()
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"]["kind"], "UserAlreadyRegistered")

    def test_missing_caller_header(self) -> None:
        response = self.client.post(
            "/ledger/users",
            json={"full_name": "Alice", "monthly_income": INCOME, "employment_type": "SALARIED"},
        )
        self.assertEqual(response.status_code, 401)

    def test_invalid_payload(self) -> None:
        response = self.client.post(
            "/ledger/users",
            json={"full_name": "Alice", "monthly_income": INCOME, "employment_type": "ASTRONAUT"},
            headers=_caller(ALICE),
        )
        self.assertEqual(response.status_code, 422)

    def test_loan_lifecycle_over_http(self) -> None:
        self.register()
        self.assertEqual(self.create_loan(caller=ALICE).status_code, 403)
        created = self.create_loan()
        self.assertEqual(created.status_code, 200)
        installment = created.json()["records"]["loan"]["monthly_installment"]

        loan = self.client.get("/ledger/loans/{0}/0".format(ALICE)).json()
        self.assertEqual(loan["status"], "ACTIVE")
        self.assertEqual(len(self.client.get("/ledger/loans/{0}/0/schedule".format(ALICE)).json()), TENURE)
        self.assertEqual(self.create_loan().status_code, 409)

        self.clock.at_due(1)
        paid = self.client.post(
            "/ledger/loans/{0}/0/payments".format(ALICE),
            json={"installment_number": 1, "amount": installment, "payment_hash": "0xabc"},
            headers=_caller(ALICE),
        )
        self.assertEqual(paid.status_code, 200)
        self.assertTrue(paid.json()["event"]["on_time"])
        record = self.client.get("/ledger/loans/{0}/0/payments/1".format(ALICE)).json()
        self.assertEqual(record["payment_hash"], "0xabc")
        schedule = self.client.get("/ledger/loans/{0}/0/schedule".format(ALICE)).json()
        self.assertEqual(schedule[0]["status"], "PAID")
        self.assertEqual(schedule[0]["total_due"], 0)
        self.assertEqual(schedule[1]["status"], "PENDING")
        self.assertEqual(schedule[1]["total_due"], installment)

        early_close = self.client.post("/ledger/loans/{0}/0/complete".format(ALICE), headers=_caller(ALICE))
        self.assertEqual(early_close.status_code, 422)
        self.assertEqual(early_close.json()["detail"]["kind"], "InsufficientPayment")

        defaulted = self.client.post("/ledger/loans/{0}/0/default".format(ALICE), headers=_caller(ADMIN))
        self.assertEqual(defaulted.status_code, 200)
        profile = self.client.get("/ledger/users/{0}".format(ALICE)).json()
        self.assertEqual(profile["risk_level"], "CRITICAL")

    def test_unknown_loan(self) -> None:
        response = self.client.get("/ledger/loans/{0}/5".format(ALICE))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"]["kind"], "LoanNotFound")

    def test_out_of_range_loan_id_is_not_found(self) -> None:
        self.register()
        for loan_id in (-1, 2**64):
            response = self.client.get("/ledger/loans/{0}/{1}".format(ALICE, loan_id))
            self.assertEqual(response.status_code, 404)
            self.assertEqual(response.json()["detail"]["kind"], "LoanNotFound")
        self.assertEqual(self.client.get("/ledger/loans/{0}/-1/schedule".format(ALICE)).status_code, 404)
        paid = self.client.post(
            "/ledger/loans/{0}/-1/payments".format(ALICE),
            json={"installment_number": 1, "amount": 1},
            headers=_caller(ALICE),
        )
        self.assertEqual(paid.status_code, 404)
        self.assertEqual(paid.json()["detail"]["kind"], "LoanNotFound")

    def test_oversized_caller_identity_rejected(self) -> None:
        self.assertEqual(self.register("a" * 65).status_code, 422)

    def test_pause_returns_locked(self) -> None:
        self.assertEqual(
            self.client.post("/ledger/pause", json={"paused": True}, headers=_caller(ALICE)).status_code, 403
        )
        self.assertEqual(self.client.post("/ledger/pause", json={"paused": True}, headers=_caller(ADMIN)).status_code, 200)
        self.assertEqual(self.register(BOB).status_code, 423)

    def test_risk_score_and_profile_update(self) -> None:
        self.register()
        response = self.client.post(
            "/ledger/users/{0}/risk-score".format(ALICE),
            json={"risk_score": 700, "risk_level": "LOW", "default_probability": 300},
            headers=_caller(ADMIN),
        )
        self.assertEqual(response.status_code, 200)
        risk = self.client.get("/ledger/users/{0}/risk-profile".format(ALICE)).json()
        self.assertEqual(risk["recommended_max_loan"], INCOME * 10)

        updated = self.client.patch(
            "/ledger/users/me", json={"employment_type": "BUSINESS_OWNER"}, headers=_caller(ALICE)
        )
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["records"]["user_profile"]["employment_type"], "BUSINESS_OWNER")

    def test_events_endpoint(self) -> None:
        self.register()
        events = self.client.get("/ledger/events").json()
        self.assertEqual([item["event"]["event_type"] for item in events], ["ProgramInitialized", "UserRegistered"])
        limited = self.client.get("/ledger/events", params={"since": 1, "limit": 1}).json()
        self.assertEqual([item["sequence"] for item in limited], [1])


if __name__ == "__main__":
    unittest.main()
