"""
Vesting Escrow.

Holds fungible tokens for a beneficiary, releases them on a step vesting
schedule and lets the owner terminate early and reclaim what has not been
released.
"""

from .core.contracts import ERC20Token, EscrowEvent, VestingEscrow
from .core.escrow_exceptions import (
    ConfigurationReason,
    EscrowError,
    EscrowNotTerminated,
    EscrowTerminated,
    InvalidAddress,
    InvalidConfiguration,
    InvariantViolation,
    LedgerError,
    TransferFailure,
    Unauthorized,
)
from .core.vesting_schedule import VestingTerms, vested_amount

__version__ = "0.1.0"

__all__ = [
    "VestingEscrow",
    "EscrowEvent",
    "ERC20Token",
    "VestingTerms",
    "vested_amount",
    # Exceptions
    "EscrowError",
    "ConfigurationReason",
    "InvalidConfiguration",
    "Unauthorized",
    "InvalidAddress",
    "EscrowTerminated",
    "EscrowNotTerminated",
    "TransferFailure",
    "InvariantViolation",
    "LedgerError",
]
