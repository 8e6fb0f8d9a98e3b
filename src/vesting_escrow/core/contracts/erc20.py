"""
ERC20-style fungible token ledger.

This is the token ledger an escrow holds its allocation on. It provides:
- Balance queries (``balance_of``)
- Transfers that either fully succeed or raise ``LedgerError``
- Owner-only minting, used to fund escrows
- Transfer events and dict serialization

Security features:
- uint256 range checks on every amount
- Zero address checks on recipients
- Every check runs before any balance is touched, so a rejected transfer
  leaves the ledger unchanged
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Protocol, runtime_checkable

from ..addresses import ZERO_ADDRESS, is_zero_address, normalize_address, short
from ..escrow_exceptions import LedgerError
from ..vesting_schedule import UINT256_MAX

logger = logging.getLogger(__name__)


@runtime_checkable
class TokenLedger(Protocol):
    """The two ledger operations an escrow depends on."""

    def balance_of(self, account: str) -> int:
        ...

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        ...


@dataclass
class TokenEvent:
    """Represents a ledger Transfer event."""

    event_type: str
    from_address: str
    to_address: str
    value: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ERC20Token:
    """
    In-memory fungible token ledger.

    Balances are plain integers keyed by lower-case address. Only the
    ``owner`` may mint.
    """

    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0

    # Contract address
    address: str = ""

    # Owner (for minting permissions)
    owner: str = ""

    balances: dict[str, int] = field(default_factory=dict)
    events: list[TokenEvent] = field(default_factory=list)

    # Supply cap (0 = unlimited)
    max_supply: int = 0

    def __post_init__(self) -> None:
        if not self.address:
            addr_input = f"{self.name}{self.symbol}{time.time()}".encode()
            addr_hash = hashlib.sha3_256(addr_input).digest()
            self.address = f"0x{addr_hash[-20:].hex()}"
        self.address = normalize_address(self.address)
        self.owner = normalize_address(self.owner)

    # ==================== View Functions ====================

    def balance_of(self, account: str) -> int:
        """
        Get the token balance of an account.

        Args:
            account: Address to check

        Returns:
            Token balance
        """
        return self.balances.get(normalize_address(account), 0)

    # ==================== State-Changing Functions ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Transfer tokens from sender to recipient.

        Args:
            sender: Address sending tokens (msg.sender)
            recipient: Address receiving tokens
            amount: Amount to transfer

        Returns:
            True if successful

        Raises:
            LedgerError: If the transfer is rejected
        """
        sender_norm = normalize_address(sender)
        recipient_norm = normalize_address(recipient)

        self._validate_address(recipient_norm, "recipient")
        self._validate_amount(amount)

        sender_balance = self.balances.get(sender_norm, 0)
        if sender_balance < amount:
            raise LedgerError(
                f"ERC20: transfer amount exceeds balance ({amount} > {sender_balance})"
            )

        self.balances[sender_norm] = sender_balance - amount
        self.balances[recipient_norm] = self.balances.get(recipient_norm, 0) + amount

        self._emit_transfer(sender_norm, recipient_norm, amount)

        logger.debug(
            "ERC20 transfer",
            extra={
                "event": "erc20.transfer",
                "token": self.symbol,
                "from": short(sender_norm),
                "to": short(recipient_norm),
                "amount": amount,
            }
        )

        return True

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """
        Mint new tokens (owner only).

        Args:
            minter: Address calling mint (must be owner)
            to: Recipient of minted tokens
            amount: Amount to mint

        Returns:
            True if successful

        Raises:
            LedgerError: If minting fails
        """
        if normalize_address(minter) != self.owner:
            raise LedgerError("ERC20: caller is not owner")

        to_norm = normalize_address(to)
        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)

        if self.max_supply > 0 and self.total_supply + amount > self.max_supply:
            raise LedgerError(
                f"ERC20: mint would exceed max supply "
                f"({self.total_supply + amount} > {self.max_supply})"
            )

        self.total_supply += amount
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount

        self._emit_transfer(ZERO_ADDRESS, to_norm, amount)

        logger.info(
            "ERC20 mint",
            extra={
                "event": "erc20.mint",
                "token": self.symbol,
                "to": short(to_norm),
                "amount": amount,
                "new_supply": self.total_supply,
            }
        )

        return True

    # ==================== Helpers ====================

    def _validate_address(self, address: str, field: str) -> None:
        if is_zero_address(address):
            raise LedgerError(f"ERC20: {field} is zero address")

    def _validate_amount(self, amount: int) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise LedgerError("ERC20: amount must be an integer")
        if amount < 0:
            raise LedgerError("ERC20: amount cannot be negative")
        if amount > UINT256_MAX:
            raise LedgerError("ERC20: amount exceeds uint256")

    def _emit_transfer(self, from_addr: str, to_addr: str, amount: int) -> None:
        self.events.append(
            TokenEvent(
                event_type="Transfer",
                from_address=from_addr,
                to_address=to_addr,
                value=amount,
            )
        )

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        """Serialize token state to dictionary."""
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": self.total_supply,
            "address": self.address,
            "owner": self.owner,
            "balances": dict(self.balances),
            "max_supply": self.max_supply,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ERC20Token":
        """Deserialize token state from dictionary."""
        token = cls(
            name=data["name"],
            symbol=data["symbol"],
            decimals=data.get("decimals", 18),
            total_supply=data.get("total_supply", 0),
            address=data.get("address", ""),
            owner=data.get("owner", ""),
            max_supply=data.get("max_supply", 0),
        )
        token.balances = dict(data.get("balances", {}))
        return token
