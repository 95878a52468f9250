"""Ledger router exposing one endpoint per transition and query."""

from dataclasses import asdict
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Header, HTTPException, Query, status
from pydantic import BaseModel, Field

from loan_ledger.models.enums import EmploymentType, RiskLevel
from loan_ledger.models.exceptions import ErrorKind, LoanProgramError, ModelValidationError
from loan_ledger.services.loan_ledger_service import LoanLedgerService
from loan_ledger.services.loan_lifecycle import TransitionResult


logger = logging.getLogger(__name__)

_STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorKind.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.LOAN_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.USER_ALREADY_REGISTERED: status.HTTP_409_CONFLICT,
    ErrorKind.ACTIVE_LOAN_EXISTS: status.HTTP_409_CONFLICT,
    ErrorKind.INSTALLMENT_ALREADY_PAID: status.HTTP_409_CONFLICT,
    ErrorKind.LOAN_NOT_ACTIVE: status.HTTP_409_CONFLICT,
    ErrorKind.LOAN_ALREADY_COMPLETED: status.HTTP_409_CONFLICT,
    ErrorKind.LOAN_ALREADY_DEFAULTED: status.HTTP_409_CONFLICT,
    ErrorKind.PROGRAM_PAUSED: status.HTTP_423_LOCKED,
}


def status_for_kind(kind: ErrorKind) -> int:
    """Map a failure kind to its HTTP status; validation failures default to 422."""
    return _STATUS_BY_KIND.get(kind, status.HTTP_422_UNPROCESSABLE_ENTITY)


class InitializeRequest(BaseModel):
    """Request payload for program initialization."""

    fee_percentage: int = Field(..., ge=0, le=65535)


class SetPausedRequest(BaseModel):
    paused: bool = Field(...)


class RegisterUserRequest(BaseModel):
    """Request payload for borrower registration."""

    full_name: str = Field(...)
    monthly_income: int = Field(..., ge=0)
    employment_type: EmploymentType = Field(...)


class UpdateUserProfileRequest(BaseModel):
    """Request payload for borrower profile updates; omitted fields are unchanged."""

    monthly_income: Optional[int] = Field(default=None, ge=0)
    employment_type: Optional[EmploymentType] = Field(default=None)


class CreateLoanRequest(BaseModel):
    """Request payload for loan origination."""

    user: str = Field(..., min_length=1)
    principal_amount: int = Field(..., ge=0)
    interest_rate: int = Field(..., ge=0, le=65535)
    tenure_months: int = Field(..., ge=0, le=255)
    start_timestamp: Optional[int] = Field(default=None)


class RecordPaymentRequest(BaseModel):
    """Request payload for installment payment recording."""

    installment_number: int = Field(..., ge=0, le=255)
    amount: int = Field(..., ge=0)
    payment_hash: str = Field(default="")


class WaiveFineRequest(BaseModel):
    installment_number: int = Field(..., ge=0, le=255)
    waived_amount: int = Field(..., ge=0)


class UpdateRiskScoreRequest(BaseModel):
    """Request payload for externally computed risk assessments."""

    risk_score: int = Field(..., ge=0, le=65535)
    risk_level: RiskLevel = Field(...)
    default_probability: int = Field(..., ge=0, le=65535)


def _require_caller(x_caller_id: Optional[str]) -> str:
    caller = (x_caller_id or "").strip()
    if not caller:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Caller-Id header.")
    return caller


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, LoanProgramError):
        return HTTPException(
            status_code=status_for_kind(exc.kind),
            detail={"kind": exc.kind.value, "message": str(exc)},
        )
    if isinstance(exc, ModelValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    logger.exception("Ledger endpoint failed.")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _transition_payload(result: TransitionResult) -> Dict[str, Any]:
    return {
        "event": result.event.model_dump(mode="json"),
        "records": {role: record.model_dump(mode="json") for role, record in result.records.items()},
    }


def build_ledger_router(service: LoanLedgerService) -> APIRouter:
    """Build the ledger router bound to ``service``."""
    router = APIRouter(prefix="/ledger", tags=["ledger"])

    @router.post("/initialize", summary="Initialize program state")
    def initialize(payload: InitializeRequest, x_caller_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        """Create the program singleton; the caller becomes administrator."""
        caller = _require_caller(x_caller_id)
        try:
            return _transition_payload(service.initialize(caller, payload.fee_percentage))
        except Exception as exc:
            raise _to_http_error(exc)

    @router.post("/pause", summary="Pause or resume the program")
    def set_paused(payload: SetPausedRequest, x_caller_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        caller = _require_caller(x_caller_id)
        try:
            return _transition_payload(service.set_paused(caller, payload.paused))
        except Exception as exc:
            raise _to_http_error(exc)

    @router.get("/program", summary="Program state")
    def get_program_state() -> Dict[str, Any]:
        try:
            return service.get_program_state().model_dump(mode="json")
        except Exception as exc:
            raise _to_http_error(exc)

    @router.post("/users", summary="Register borrower")
    def register_user(payload: RegisterUserRequest, x_caller_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        """Register the caller as a borrower."""
        caller = _require_caller(x_caller_id)
        try:
            return _transition_payload(
                service.register_user(caller, payload.full_name, payload.monthly_income, payload.employment_type)
            )
        except Exception as exc:
            raise _to_http_error(exc)

    @router.patch("/users/me", summary="Update own borrower profile")
    def update_user_profile(
        payload: UpdateUserProfileRequest,
        x_caller_id: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        caller = _require_caller(x_caller_id)
        try:
            return _transition_payload(
                service.update_user_profile(
                    caller,
                    monthly_income=payload.monthly_income,
                    employment_type=payload.employment_type,
                )
            )
        except Exception as exc:
            raise _to_http_error(exc)

    @router.get("/users/{user}", summary="Borrower profile")
    def get_user_profile(user: str) -> Dict[str, Any]:
        try:
            return service.get_user_profile(user).model_dump(mode="json")
        except Exception as exc:
            raise _to_http_error(exc)

    @router.get("/users/{user}/registered", summary="Registration check")
    def is_user_registered(user: str) -> Dict[str, Any]:
        return {"user": user, "registered": service.is_user_registered(user)}

    @router.get("/users/{user}/credit-score", summary="Borrower credit score")
    def get_credit_score(user: str) -> Dict[str, Any]:
        try:
            return {"user": user, "credit_score": service.get_credit_score(user)}
        except Exception as exc:
            raise _to_http_error(exc)

    @router.get("/users/{user}/risk-profile", summary="Borrower risk profile")
    def get_risk_profile(user: str) -> Dict[str, Any]:
        try:
            return service.get_risk_profile(user).model_dump(mode="json")
        except Exception as exc:
            raise _to_http_error(exc)

    @router.post("/users/{user}/risk-score", summary="Apply external risk assessment")
    def update_risk_score(
        user: str,
        payload: UpdateRiskScoreRequest,
        x_caller_id: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        """Overwrite the borrower's score and tier (administrator only)."""
        caller = _require_caller(x_caller_id)
        try:
            return _transition_payload(
                service.update_risk_score(
                    caller,
                    user,
                    payload.risk_score,
                    payload.risk_level,
                    payload.default_probability,
                )
            )
        except Exception as exc:
            raise _to_http_error(exc)

    @router.post("/loans", summary="Create loan")
    def create_loan(payload: CreateLoanRequest, x_caller_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        """Originate a loan for ``payload.user`` (administrator only)."""
        caller = _require_caller(x_caller_id)
        try:
            return _transition_payload(
                service.create_loan(
                    caller,
                    payload.user,
                    payload.principal_amount,
                    payload.interest_rate,
                    payload.tenure_months,
                    start_timestamp=payload.start_timestamp,
                )
            )
        except Exception as exc:
            raise _to_http_error(exc)

    @router.get("/loans/{user}/{loan_id}", summary="Loan record")
    def get_loan(user: str, loan_id: int) -> Dict[str, Any]:
        try:
            return service.get_loan(user, loan_id).model_dump(mode="json")
        except Exception as exc:
            raise _to_http_error(exc)

    @router.get("/loans/{user}/{loan_id}/schedule", summary="Installment schedule")
    def get_loan_schedule(user: str, loan_id: int) -> List[Dict[str, Any]]:
        """Installments with their status and the amount due if paid now."""
        try:
            return [
                dict(asdict(row), status=row.status) for row in service.get_loan_schedule(user, loan_id)
            ]
        except Exception as exc:
            raise _to_http_error(exc)

    @router.post("/loans/{user}/{loan_id}/payments", summary="Record installment payment")
    def record_payment(
        user: str,
        loan_id: int,
        payload: RecordPaymentRequest,
        x_caller_id: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        caller = _require_caller(x_caller_id)
        try:
            return _transition_payload(
                service.record_payment(
                    caller,
                    user,
                    loan_id,
                    payload.installment_number,
                    payload.amount,
                    payload.payment_hash,
                )
            )
        except Exception as exc:
            raise _to_http_error(exc)

    @router.get("/loans/{user}/{loan_id}/payments/{installment_number}", summary="Payment record")
    def get_payment_record(user: str, loan_id: int, installment_number: int) -> Dict[str, Any]:
        try:
            return service.get_payment_record(user, loan_id, installment_number).model_dump(mode="json")
        except Exception as exc:
            raise _to_http_error(exc)

    @router.post("/loans/{user}/{loan_id}/waive-fine", summary="Waive installment fine")
    def waive_fine(
        user: str,
        loan_id: int,
        payload: WaiveFineRequest,
        x_caller_id: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        caller = _require_caller(x_caller_id)
        try:
            return _transition_payload(
                service.waive_fine(caller, user, loan_id, payload.installment_number, payload.waived_amount)
            )
        except Exception as exc:
            raise _to_http_error(exc)

    @router.post("/loans/{user}/{loan_id}/default", summary="Mark loan defaulted")
    def mark_loan_defaulted(user: str, loan_id: int, x_caller_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        caller = _require_caller(x_caller_id)
        try:
            return _transition_payload(service.mark_loan_defaulted(caller, user, loan_id))
        except Exception as exc:
            raise _to_http_error(exc)

    @router.post("/loans/{user}/{loan_id}/complete", summary="Mark loan completed")
    def mark_loan_completed(user: str, loan_id: int, x_caller_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        caller = _require_caller(x_caller_id)
        try:
            return _transition_payload(service.mark_loan_completed(caller, user, loan_id))
        except Exception as exc:
            raise _to_http_error(exc)

    @router.get("/events", summary="Ledger event log")
    def list_events(
        since: int = Query(default=0, ge=0),
        limit: Optional[int] = Query(default=None, ge=1, le=1000),
    ) -> List[Dict[str, Any]]:
        return [envelope.model_dump(mode="json") for envelope in service.list_events(since=since, limit=limit)]

    return router
