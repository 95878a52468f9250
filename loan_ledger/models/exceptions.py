"""Custom exceptions for record, store and transition layers."""

from enum import Enum
from typing import Optional


class ModelError(Exception):
    """Base class for model-related failures."""


class ModelValidationError(ModelError):
    """Raised when record data fails schema, codec or policy validation."""


class RecordNotFoundError(ModelError):
    """Raised when no record exists at a requested address."""

    def __init__(self, message: str, address: Optional[str] = None) -> None:
        super().__init__(message)
        self.address = address


class RecordExistsError(ModelError):
    """Raised when a record is created at an address that is already taken."""

    def __init__(self, message: str, address: Optional[str] = None) -> None:
        super().__init__(message)
        self.address = address


class ErrorKind(str, Enum):
    """Failure kinds reported by loan program transitions."""

    UNAUTHORIZED = "Unauthorized"
    PROGRAM_PAUSED = "ProgramPaused"
    USER_ALREADY_REGISTERED = "UserAlreadyRegistered"
    USER_NOT_FOUND = "UserNotFound"
    INVALID_LOAN_AMOUNT = "InvalidLoanAmount"
    INVALID_INTEREST_RATE = "InvalidInterestRate"
    INVALID_TENURE = "InvalidTenure"
    ACTIVE_LOAN_EXISTS = "ActiveLoanExists"
    LOAN_NOT_FOUND = "LoanNotFound"
    LOAN_NOT_ACTIVE = "LoanNotActive"
    INVALID_PAYMENT_AMOUNT = "InvalidPaymentAmount"
    INVALID_INSTALLMENT_NUMBER = "InvalidInstallmentNumber"
    INSTALLMENT_ALREADY_PAID = "InstallmentAlreadyPaid"
    LOAN_ALREADY_COMPLETED = "LoanAlreadyCompleted"
    LOAN_ALREADY_DEFAULTED = "LoanAlreadyDefaulted"
    INSUFFICIENT_PAYMENT = "InsufficientPayment"
    PAYMENT_TOO_EARLY = "PaymentTooEarly"
    INVALID_RISK_SCORE = "InvalidRiskScore"
    INVALID_DEFAULT_PROBABILITY = "InvalidDefaultProbability"
    MATH_OVERFLOW = "MathOverflow"
    NAME_TOO_LONG = "NameTooLong"
    INVALID_STRING_FORMAT = "InvalidStringFormat"
    LOW_CREDIT_SCORE = "LowCreditScore"
    HIGH_RISK_USER = "HighRiskUser"
    INCOME_TOO_LOW = "IncomeTooLow"


ERROR_MESSAGES = {
    ErrorKind.UNAUTHORIZED: "Unauthorized access",
    ErrorKind.PROGRAM_PAUSED: "Program is paused",
    ErrorKind.USER_ALREADY_REGISTERED: "User already registered",
    ErrorKind.USER_NOT_FOUND: "User not found",
    ErrorKind.INVALID_LOAN_AMOUNT: "Invalid loan amount",
    ErrorKind.INVALID_INTEREST_RATE: "Invalid interest rate",
    ErrorKind.INVALID_TENURE: "Invalid tenure",
    ErrorKind.ACTIVE_LOAN_EXISTS: "User already has an active loan",
    ErrorKind.LOAN_NOT_FOUND: "Loan not found",
    ErrorKind.LOAN_NOT_ACTIVE: "Loan not active",
    ErrorKind.INVALID_PAYMENT_AMOUNT: "Invalid payment amount",
    ErrorKind.INVALID_INSTALLMENT_NUMBER: "Invalid installment number",
    ErrorKind.INSTALLMENT_ALREADY_PAID: "Installment already paid",
    ErrorKind.LOAN_ALREADY_COMPLETED: "Loan already completed",
    ErrorKind.LOAN_ALREADY_DEFAULTED: "Loan already defaulted",
    ErrorKind.INSUFFICIENT_PAYMENT: "Insufficient payment amount",
    ErrorKind.PAYMENT_TOO_EARLY: "Payment too early",
    ErrorKind.INVALID_RISK_SCORE: "Invalid risk score",
    ErrorKind.INVALID_DEFAULT_PROBABILITY: "Invalid default probability",
    ErrorKind.MATH_OVERFLOW: "Calculation overflow",
    ErrorKind.NAME_TOO_LONG: "Name too long",
    ErrorKind.INVALID_STRING_FORMAT: "Invalid string format",
    ErrorKind.LOW_CREDIT_SCORE: "Low credit score",
    ErrorKind.HIGH_RISK_USER: "High risk user",
    ErrorKind.INCOME_TOO_LOW: "Income too low",
}


class LoanProgramError(ModelError):
    """Raised when a transition precondition or arithmetic check fails.

    Args:
        kind: Failure kind reported to the caller.
        detail: Optional context appended to the canonical message.
    """

    def __init__(self, kind: ErrorKind, detail: Optional[str] = None) -> None:
        self.kind = kind
        self.detail = detail
        message = ERROR_MESSAGES[kind]
        if detail:
            message = "{0}: {1}".format(message, detail)
        super().__init__(message)
