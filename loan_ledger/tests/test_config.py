"""Unit tests for YAML settings and ledger policy loading."""

from pathlib import Path
import tempfile
import unittest

from loan_ledger.core.config import DEFAULT_POLICY, load_policy, load_settings
from loan_ledger.models.enums import AmortizationMode, RiskLevel
from loan_ledger.models.exceptions import ModelValidationError


POLICY_YAML = """
app:
  name: "Test Ledger"
  port: "9001"
  debug: "yes"
  cors_origins: "http://a.test, http://b.test"
policy:
  amortization_mode: decimal
  terms:
    min_principal: 1000
    max_tenure_months: 24
  fines:
    grace_days: 3
    fine_cap_bps: null
  scoring:
    income_multipliers:
      LOW: 12
      medium: 6
      high: 2
      critical: 1
  underwriting:
    allow_prepayment: false
    min_credit_score: 550
    blocked_risk_levels: [critical, high]
"""


class ConfigLoadingTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)

    def _write(self, text: str) -> Path:
        path = Path(self._tmp.name) / "config.yml"
        path.write_text(text, encoding="utf-8")
        return path

    def test_load_settings_from_file(self) -> None:
        settings = load_settings(self._write(POLICY_YAML))
        self.assertEqual(settings.app_name, "Test Ledger")
        self.assertEqual(settings.port, 9001)
        self.assertTrue(settings.debug)
        self.assertEqual(settings.cors_origins, ("http://a.test", "http://b.test"))

    def test_load_policy_from_file(self) -> None:
        policy = load_policy(self._write(POLICY_YAML))
        self.assertEqual(policy.amortization_mode, AmortizationMode.DECIMAL)
        self.assertEqual(policy.terms.min_principal, 1000)
        self.assertEqual(policy.terms.max_principal, DEFAULT_POLICY.terms.max_principal)
        self.assertEqual(policy.terms.max_tenure_months, 24)
        self.assertEqual(policy.fines.grace_days, 3)
        self.assertIsNone(policy.fines.fine_cap_bps)
        self.assertEqual(policy.scoring.multiplier(RiskLevel.LOW), 12)
        self.assertEqual(policy.scoring.multiplier(RiskLevel.HIGH), 2)
        self.assertFalse(policy.allow_prepayment)
        self.assertEqual(policy.min_credit_score, 550)
        self.assertEqual(policy.blocked_risk_levels, frozenset({RiskLevel.CRITICAL, RiskLevel.HIGH}))

    def test_bundled_config_matches_defaults(self) -> None:
        policy = load_policy()
        self.assertEqual(policy.fines, DEFAULT_POLICY.fines)
        self.assertEqual(policy.terms, DEFAULT_POLICY.terms)
        self.assertEqual(policy.amortization_mode, AmortizationMode.FLOAT)

    def test_missing_file_falls_back_to_defaults(self) -> None:
        missing = Path(self._tmp.name) / "absent.yml"
        self.assertEqual(load_policy(missing), DEFAULT_POLICY)
        self.assertEqual(load_settings(missing).port, 8000)

    def test_invalid_integer_falls_back(self) -> None:
        policy = load_policy(config={"policy": {"fines": {"grace_days": "soon"}}})
        self.assertEqual(policy.fines.grace_days, DEFAULT_POLICY.fines.grace_days)

    def test_unknown_risk_tier_rejected(self) -> None:
        with self.assertRaises(ModelValidationError):
            load_policy(config={"policy": {"scoring": {"income_multipliers": {"extreme": 1}}}})

    def test_non_decreasing_multipliers_rejected(self) -> None:
        table = {"low": 3, "medium": 6, "high": 3, "critical": 1}
        with self.assertRaises(ModelValidationError):
            load_policy(config={"policy": {"scoring": {"income_multipliers": table}}})

    def test_inverted_terms_rejected(self) -> None:
        with self.assertRaises(ModelValidationError):
            load_policy(config={"policy": {"terms": {"min_principal": 10, "max_principal": 5}}})


if __name__ == "__main__":
    unittest.main()
