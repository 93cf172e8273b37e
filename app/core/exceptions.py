"""
Domain error taxonomy for the wallet core.

Services raise these; the API layer maps them to HTTP responses in
app/core/exception_handlers.py. Storage exceptions are translated into one of
these before they leave a repository or service.
"""
from typing import Any, Dict, Optional


class WalletError(Exception):
    code = "WALLET_ERROR"
    status_code = 400
    retryable = False

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)


class InvalidAmount(WalletError):
    code = "INVALID_AMOUNT"


class InsufficientFunds(WalletError):
    code = "INSUFFICIENT_FUNDS"


class BelowMinimum(WalletError):
    code = "BELOW_MINIMUM"


class DuplicateAccrual(WalletError):
    """Raised when a daily return was already logged; the accrual engine absorbs it."""

    code = "DUPLICATE_ACCRUAL"
    status_code = 409


class DuplicateProof(WalletError):
    code = "DUPLICATE_PROOF"
    status_code = 409


class InvalidTransition(WalletError):
    code = "INVALID_TRANSITION"
    status_code = 409


class LockTimeout(WalletError):
    code = "LOCK_TIMEOUT"
    status_code = 503
    retryable = True


class UserNotFound(WalletError):
    code = "USER_NOT_FOUND"
    status_code = 404


class RequestNotFound(WalletError):
    code = "REQUEST_NOT_FOUND"
    status_code = 404


class PlanNotFound(WalletError):
    code = "PLAN_NOT_FOUND"
    status_code = 404


class PlanUnavailable(WalletError):
    code = "PLAN_UNAVAILABLE"
