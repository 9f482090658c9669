"""
marketplay/errors.py

Error taxonomy for the marketplace SDK.

Every failure raised by the registry, the settlement coordinator or the
ledger client is a MarketplayError subclass tagged with an ErrorKind, so
callers can branch on the class (or on `.kind`) instead of parsing
message text.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    INVALID_ARGUMENT = "invalid_argument"
    PRECONDITION_FAILED = "precondition_failed"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    UNAUTHORIZED = "unauthorized"
    AUTHORIZATION_MISMATCH = "authorization_mismatch"
    CONFIRMATION_TIMEOUT = "confirmation_timeout"
    EXTERNAL_FAILURE = "external_failure"


class MarketplayError(Exception):
    """Base class for all SDK errors."""
    kind: ErrorKind


class InvalidArgument(MarketplayError, ValueError):
    """Malformed or out-of-range input, caught before any ledger call."""
    kind = ErrorKind.INVALID_ARGUMENT


class PreconditionFailed(MarketplayError):
    """An ownership or registration check against the ledger failed."""
    kind = ErrorKind.PRECONDITION_FAILED


class InsufficientFunds(MarketplayError):
    kind = ErrorKind.INSUFFICIENT_FUNDS

    def __init__(self, address: str, required: int, available: int):
        super().__init__(
            f"Insufficient funds for {address}: "
            f"required {required} microAlgos, available {available}"
        )
        self.address = address
        self.required = required
        self.available = available


class NotFound(MarketplayError, LookupError):
    kind = ErrorKind.NOT_FOUND


class InvalidState(MarketplayError):
    """The requested transition is not allowed from the current state."""
    kind = ErrorKind.INVALID_STATE


class Unauthorized(MarketplayError, PermissionError):
    kind = ErrorKind.UNAUTHORIZED


class AuthorizationMismatch(MarketplayError):
    """The number of authorizers does not match the number of legs."""
    kind = ErrorKind.AUTHORIZATION_MISMATCH

    def __init__(self, leg_count: int, authorizer_count: int):
        super().__init__(
            f"Number of transactions ({leg_count}) must match "
            f"number of signers ({authorizer_count})"
        )
        self.leg_count = leg_count
        self.authorizer_count = authorizer_count


class ConfirmationTimeout(MarketplayError, TimeoutError):
    kind = ErrorKind.CONFIRMATION_TIMEOUT

    def __init__(self, tx_id: str, rounds: int):
        super().__init__(f"Transaction {tx_id} not confirmed after {rounds} rounds")
        self.tx_id = tx_id
        self.rounds = rounds


class ExternalFailure(MarketplayError):
    """A network or protocol rejection forwarded from the ledger client.

    The original exception is kept both as `cause` and as `__cause__`
    (raise ... from ...).
    """
    kind = ErrorKind.EXTERNAL_FAILURE

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
