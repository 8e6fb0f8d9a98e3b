"""
Escrow-specific exception hierarchy.

Every rejected escrow operation raises one of these typed exceptions. A
rejection always means the whole operation was abandoned: no partial state
change survives it, so callers either correct their input or try again
later.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class EscrowError(Exception):
    """Base exception for all escrow errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried unchanged
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


class LedgerError(Exception):
    """Raised by the token ledger when it rejects an operation."""
    pass


# ==================== Configuration Errors ====================


class ConfigurationReason(Enum):
    """Why escrow construction was rejected."""
    ZERO_ADDRESS = "zero_address"
    ZERO_START = "zero_start"
    START_AFTER_END = "start_after_end"
    ZERO_VESTING_PERIOD = "zero_vesting_period"
    INVALID_AMOUNT = "invalid_amount"


class InvalidConfiguration(EscrowError):
    """Raised when construction parameters violate the escrow rules.

    Fatal to deployment: the same inputs will always be rejected.
    """

    def __init__(
        self,
        message: str,
        reason: ConfigurationReason,
        start: Optional[int] = None,
        end: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.reason = reason
        self.start = start
        self.end = end


# ==================== Authorization Errors ====================


class Unauthorized(EscrowError):
    """Raised when the caller lacks the role required for a mutation."""

    def __init__(self, message: str, caller: str, expected: Optional[str], **kwargs: Any) -> None:
        super().__init__(message, details={"caller": caller, "expected": expected}, **kwargs)
        self.caller = caller
        self.expected = expected


class InvalidAddress(EscrowError):
    """Raised when a supplied address argument is the null/zero sentinel."""

    def __init__(self, message: str, field: str, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.field = field


# ==================== Lifecycle Errors ====================


class EscrowTerminated(EscrowError):
    """Raised when release is attempted after termination."""
    pass


class EscrowNotTerminated(EscrowError):
    """Raised when unvested tokens are withdrawn before termination."""
    pass


# ==================== Ledger Interaction Errors ====================


class TransferFailure(EscrowError):
    """Raised when the token ledger rejects a transfer out of the escrow."""

    def __init__(self, message: str, recipient: str, amount: int, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.recipient = recipient
        self.amount = amount


class InvariantViolation(EscrowError):
    """Raised when internal accounting contradicts itself (a bug, not bad input)."""
    pass
