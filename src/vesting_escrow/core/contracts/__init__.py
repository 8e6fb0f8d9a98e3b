"""
Escrow contract implementations.

- ERC20: Fungible token ledger the escrow holds its allocation on
- Ownable: Two-step ownership handoff
- VestingEscrow: Single-beneficiary vesting escrow
"""

from .erc20 import ERC20Token, TokenEvent, TokenLedger
from .ownable import OwnershipHandoff
from .vesting_escrow import EscrowEvent, VestingEscrow

__all__ = [
    "ERC20Token",
    "TokenEvent",
    "TokenLedger",
    "OwnershipHandoff",
    "VestingEscrow",
    "EscrowEvent",
]
