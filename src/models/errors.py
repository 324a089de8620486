"""Error taxonomy shared by the client, session and workflows.

AuthError          credentials rejected or session gone; re-authenticate.
ValidationError    wager input rejected locally; never reaches the network.
InvalidTransition  market change attempted out of order; refetch and retry.
NetworkError       service unreachable or answered unexpectedly.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from src.models.schemas import FieldError


class PredictError(Exception):
    """Base class for every error raised by this package."""


class AuthErrorKind(str, Enum):
    INVALID_CREDENTIALS = "InvalidCredentials"
    VALIDATION_FAILED = "ValidationFailed"
    SESSION_EXPIRED = "SessionExpired"
    NOT_AUTHENTICATED = "NotAuthenticated"


class AuthError(PredictError):
    def __init__(
        self,
        kind: AuthErrorKind,
        message: str,
        field_errors: Optional[List[FieldError]] = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.field_errors = list(field_errors or [])
        super().__init__(message)


class ValidationErrorKind(str, Enum):
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    BELOW_MINIMUM = "BelowMinimum"
    MARKET_NOT_TRADABLE = "MarketNotTradable"


class ValidationError(PredictError):
    def __init__(self, kind: ValidationErrorKind, message: str) -> None:
        self.kind = kind
        self.message = message
        super().__init__(message)


class InvalidTransition(PredictError):
    def __init__(self, market_id: int, status: str, action: str) -> None:
        self.market_id = market_id
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} market {market_id} while it is {status}")


class NetworkError(PredictError):
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        field_errors: Optional[List[FieldError]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.field_errors = list(field_errors or [])
        super().__init__(message)
