"""Configuration loading utilities for YAML-based application settings."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, FrozenSet, Mapping, Optional, Union

import yaml

from loan_ledger.common.amortization import DEFAULT_TERM_BOUNDS, LoanTermBounds
from loan_ledger.common.lateness import DEFAULT_FINE_POLICY, FinePolicy
from loan_ledger.common.protocol_constants import BPS_DENOMINATOR, MAX_FEE_PERCENTAGE_BPS
from loan_ledger.common.scoring_policy import DEFAULT_INCOME_MULTIPLIERS, DEFAULT_SCORING_POLICY, ScoringPolicy
from loan_ledger.models.enums import AmortizationMode, RiskLevel
from loan_ledger.models.exceptions import ModelValidationError

from .logging_config import get_logger


logger = get_logger(__name__)
_BASE_DIR = Path(__file__).resolve().parent.parent
_CONFIG_PATH = _BASE_DIR / "config.yml"

PathLike = Union[str, Path]


@dataclass(frozen=True)
class AppSettings:
    """Application settings loaded from YAML configuration file."""

    app_name: str = "Micro-Loan Ledger API"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: tuple = ("*",)
    log_level: str = "INFO"


@dataclass(frozen=True)
class LedgerPolicy:
    """Business rules applied by every ledger transition."""

    terms: LoanTermBounds = DEFAULT_TERM_BOUNDS
    fines: FinePolicy = DEFAULT_FINE_POLICY
    scoring: ScoringPolicy = DEFAULT_SCORING_POLICY
    amortization_mode: AmortizationMode = AmortizationMode.FLOAT
    max_fee_percentage_bps: int = MAX_FEE_PERCENTAGE_BPS
    allow_prepayment: bool = True
    min_credit_score: Optional[int] = None
    blocked_risk_levels: FrozenSet[RiskLevel] = field(default_factory=frozenset)

    def validate(self) -> "LedgerPolicy":
        """Reject inverted bounds and inconsistent tables.

        Raises:
            ModelValidationError: If any bound or table is inconsistent.
        """
        terms = self.terms
        if not 0 < terms.min_principal <= terms.max_principal:
            raise ModelValidationError("principal bounds are inverted")
        if not 0 < terms.min_tenure_months <= terms.max_tenure_months <= 255:
            raise ModelValidationError("tenure bounds are invalid")
        if not 0 < terms.max_interest_rate_bps <= 65535:
            raise ModelValidationError("max_interest_rate_bps must be within (0, 65535]")
        if self.fines.grace_days < 0 or self.fines.daily_fine_rate_bps < 0:
            raise ModelValidationError("grace_days and daily_fine_rate_bps must not be negative")
        if self.fines.fine_cap_bps is not None and self.fines.fine_cap_bps < 0:
            raise ModelValidationError("fine_cap_bps must not be negative")
        if not 0 <= self.max_fee_percentage_bps <= BPS_DENOMINATOR:
            raise ModelValidationError("max_fee_percentage_bps must be within [0, 10000]")
        self.scoring.validate()
        return self


DEFAULT_POLICY = LedgerPolicy().validate()


def _to_bool(value: Any, default: bool = False) -> bool:
    """Convert value to bool with a default fallback."""
    try:
        if isinstance(value, bool):
            return value
        return value.strip().lower() in {"1", "true", "yes", "on"}
    except (AttributeError, ValueError):
        logger.warning("Invalid boolean value '%s'. Using default=%s", value, default)
        return default


def _to_int(value: Any, default: int) -> int:
    """Convert value to int with a default fallback."""
    try:
        if isinstance(value, bool):
            raise TypeError("booleans are not integers here")
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid integer value '%s'. Using default=%s", value, default)
        return default


def _to_optional_int(value: Any, default: Optional[int]) -> Optional[int]:
    """Convert value to int, keeping an explicit null as ``None``."""
    if value is None:
        return None
    return _to_int(value, default)


def _to_list(value: Any) -> list:
    """Convert list-like or comma-separated value to list[str]."""
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return [item.strip() for item in str(value).split(",") if item.strip()]


def _to_enum(enum_cls, value: Any, default):
    """Convert a case-insensitive name to an enum member with a default fallback."""
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        logger.warning("Invalid %s value '%s'. Using default=%s", enum_cls.__name__, value, default.value)
        return default


def _section(config: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = config.get(key) or {}
    if not isinstance(value, Mapping):
        logger.warning("Config section '%s' is not a mapping. Using defaults.", key)
        return {}
    return value


def _read_config(path: Optional[PathLike] = None) -> dict:
    """Read and parse YAML configuration."""
    config_path = Path(path) if path is not None else _CONFIG_PATH
    try:
        with config_path.open("r", encoding="utf-8") as config_file:
            config_data = yaml.safe_load(config_file) or {}
        logger.info("Configuration loaded from %s", config_path)
    except FileNotFoundError:
        logger.warning("Config file not found at %s. Falling back to defaults.", config_path)
        return {}
    except yaml.YAMLError:
        logger.exception("Failed to parse config file %s. Falling back to defaults.", config_path)
        return {}
    if not isinstance(config_data, dict):
        logger.warning("Config file %s does not hold a mapping. Falling back to defaults.", config_path)
        return {}
    return config_data


def load_settings(path: Optional[PathLike] = None, config: Optional[Mapping[str, Any]] = None) -> AppSettings:
    """Load application settings from `config.yml`."""
    config = _read_config(path) if config is None else config
    app_cfg = _section(config, "app")
    defaults = AppSettings()

    cors_origins = _to_list(app_cfg.get("cors_origins", list(defaults.cors_origins)))
    return AppSettings(
        app_name=str(app_cfg.get("name", defaults.app_name)),
        debug=_to_bool(app_cfg.get("debug", defaults.debug), defaults.debug),
        host=str(app_cfg.get("host", defaults.host)),
        port=_to_int(app_cfg.get("port", defaults.port), defaults.port),
        cors_origins=tuple(cors_origins) or defaults.cors_origins,
        log_level=str(app_cfg.get("log_level", defaults.log_level)).upper(),
    )


def _load_multipliers(raw: Any) -> Mapping[RiskLevel, int]:
    if raw is None:
        return DEFAULT_INCOME_MULTIPLIERS
    if not isinstance(raw, Mapping):
        raise ModelValidationError("policy.scoring.income_multipliers must be a mapping")
    multipliers = {}
    for key, value in raw.items():
        try:
            level = RiskLevel(str(key).strip().upper())
        except ValueError:
            raise ModelValidationError("Unknown risk level '{0}' in income_multipliers".format(key))
        multipliers[level] = _to_int(value, DEFAULT_INCOME_MULTIPLIERS[level])
    return multipliers


def load_policy(path: Optional[PathLike] = None, config: Optional[Mapping[str, Any]] = None) -> LedgerPolicy:
    """Load ledger business rules from the ``policy`` section of `config.yml`.

    Raises:
        ModelValidationError: If the resulting policy is inconsistent.
    """
    config = _read_config(path) if config is None else config
    policy_cfg = _section(config, "policy")
    terms_cfg = _section(policy_cfg, "terms")
    fines_cfg = _section(policy_cfg, "fines")
    scoring_cfg = _section(policy_cfg, "scoring")
    underwriting_cfg = _section(policy_cfg, "underwriting")
    base = DEFAULT_POLICY

    terms = LoanTermBounds(
        min_principal=_to_int(terms_cfg.get("min_principal", base.terms.min_principal), base.terms.min_principal),
        max_principal=_to_int(terms_cfg.get("max_principal", base.terms.max_principal), base.terms.max_principal),
        max_interest_rate_bps=_to_int(
            terms_cfg.get("max_interest_rate_bps", base.terms.max_interest_rate_bps),
            base.terms.max_interest_rate_bps,
        ),
        min_tenure_months=_to_int(
            terms_cfg.get("min_tenure_months", base.terms.min_tenure_months),
            base.terms.min_tenure_months,
        ),
        max_tenure_months=_to_int(
            terms_cfg.get("max_tenure_months", base.terms.max_tenure_months),
            base.terms.max_tenure_months,
        ),
    )
    fines = FinePolicy(
        grace_days=_to_int(fines_cfg.get("grace_days", base.fines.grace_days), base.fines.grace_days),
        daily_fine_rate_bps=_to_int(
            fines_cfg.get("daily_fine_rate_bps", base.fines.daily_fine_rate_bps),
            base.fines.daily_fine_rate_bps,
        ),
        fine_cap_bps=_to_optional_int(
            fines_cfg.get("fine_cap_bps", base.fines.fine_cap_bps),
            base.fines.fine_cap_bps,
        ),
    )
    base_scoring = base.scoring
    scoring = ScoringPolicy(
        min_credit_score=_to_int(
            scoring_cfg.get("min_credit_score", base_scoring.min_credit_score), base_scoring.min_credit_score
        ),
        max_credit_score=_to_int(
            scoring_cfg.get("max_credit_score", base_scoring.max_credit_score), base_scoring.max_credit_score
        ),
        on_time_bonus=_to_int(scoring_cfg.get("on_time_bonus", base_scoring.on_time_bonus), base_scoring.on_time_bonus),
        late_penalty=_to_int(scoring_cfg.get("late_penalty", base_scoring.late_penalty), base_scoring.late_penalty),
        completion_bonus=_to_int(
            scoring_cfg.get("completion_bonus", base_scoring.completion_bonus), base_scoring.completion_bonus
        ),
        default_penalty=_to_int(
            scoring_cfg.get("default_penalty", base_scoring.default_penalty), base_scoring.default_penalty
        ),
        max_recommended_loan=_to_int(
            scoring_cfg.get("max_recommended_loan", base_scoring.max_recommended_loan),
            base_scoring.max_recommended_loan,
        ),
        income_multipliers=_load_multipliers(scoring_cfg.get("income_multipliers")),
    )
    blocked = frozenset(
        _to_enum(RiskLevel, item, RiskLevel.CRITICAL) for item in _to_list(underwriting_cfg.get("blocked_risk_levels"))
    )

    policy = LedgerPolicy(
        terms=terms,
        fines=fines,
        scoring=scoring,
        amortization_mode=_to_enum(
            AmortizationMode, policy_cfg.get("amortization_mode", base.amortization_mode.value), base.amortization_mode
        ),
        max_fee_percentage_bps=_to_int(
            policy_cfg.get("max_fee_percentage_bps", base.max_fee_percentage_bps), base.max_fee_percentage_bps
        ),
        allow_prepayment=_to_bool(underwriting_cfg.get("allow_prepayment", base.allow_prepayment), base.allow_prepayment),
        min_credit_score=_to_optional_int(underwriting_cfg.get("min_credit_score"), None),
        blocked_risk_levels=blocked,
    )
    return policy.validate()
