"""
Token Vesting Escrow.

Holds a pool of fungible tokens for a single beneficiary and releases them
on a deterministic step schedule. Three independent roles govern it:

- owner: terminates the escrow, sweeps unvested tokens and reassigns the
  beneficiary owner. Transferable through a two-step handoff.
- beneficiary owner: reassigns the beneficiary.
- beneficiary: receives released tokens.

Anyone may call ``release``; tokens always go to the current beneficiary,
so third-party automation can trigger payouts without choosing where the
funds land.

Security features:
- Accounting is committed before the ledger is called, so a reentrant
  call made from inside a transfer sees the updated ``released`` value
- Every mutating operation is atomic: if anything fails, including the
  ledger transfer, all escrow state and events are restored
- Termination is one-way and permanently disables release
"""

from __future__ import annotations

import hashlib
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Optional

from .. import escrow_metrics
from ..addresses import is_zero_address, normalize_address, short
from ..escrow_exceptions import (
    ConfigurationReason,
    EscrowNotTerminated,
    EscrowTerminated,
    InvalidAddress,
    InvalidConfiguration,
    InvariantViolation,
    LedgerError,
    TransferFailure,
    Unauthorized,
)
from ..vesting_schedule import build_terms, vested_amount
from .erc20 import TokenLedger
from .ownable import OwnershipHandoff

logger = logging.getLogger(__name__)


@dataclass
class EscrowEvent:
    """Represents a notification emitted by the escrow."""

    event_type: str
    data: Dict[str, Any]
    timestamp: int = field(default_factory=lambda: int(time.time()))


class VestingEscrow:
    """
    Single-beneficiary vesting escrow over an ERC20-style ledger.

    Usage:
        escrow = VestingEscrow(
            token, beneficiary_owner, beneficiary, owner,
            start=1000, end=2000, vesting_period=100,
            initial_tokens=10, vesting_event_tokens=5,
        )
        token.transfer(funder, escrow.address, 30)
        escrow.release()
    """

    def __init__(
        self,
        token: TokenLedger,
        beneficiary_owner: str,
        beneficiary: str,
        owner: str,
        start: int,
        end: int,
        vesting_period: int,
        initial_tokens: int,
        vesting_event_tokens: int,
        address: str = "",
        time_provider: Optional[Callable[[], int]] = None,
    ) -> None:
        """
        Create an escrow with immutable schedule parameters.

        Raises:
            InvalidConfiguration: checked in order: zero role address,
                zero start, start after end, zero vesting period,
                out-of-range token amounts
        """
        if is_zero_address(beneficiary_owner) or is_zero_address(beneficiary) or is_zero_address(owner):
            raise InvalidConfiguration(
                "VestingEscrow: role address is zero address",
                reason=ConfigurationReason.ZERO_ADDRESS,
            )
        self.terms = build_terms(start, end, vesting_period, initial_tokens, vesting_event_tokens)
        self.token = token
        self.beneficiary_owner = normalize_address(beneficiary_owner)
        self.beneficiary = normalize_address(beneficiary)
        self._ownership = OwnershipHandoff()
        self._ownership.initialize(owner)

        self.released = 0
        self.terminated = False
        self.events: list[EscrowEvent] = []

        self._time_provider = time_provider or (lambda: int(time.time()))
        self._last_timestamp: Optional[int] = None
        self._in_flight = 0

        if not address:
            addr_input = f"{self.beneficiary}{start}{end}{time.time()}".encode()
            address = f"0x{hashlib.sha3_256(addr_input).digest()[-20:].hex()}"
        self.address = normalize_address(address)

        logger.info(
            "Vesting escrow created",
            extra={
                "event": "escrow.created",
                "escrow": short(self.address),
                "beneficiary": short(self.beneficiary),
                "start": self.terms.start,
                "end": self.terms.end,
                "vesting_period": self.terms.vesting_period,
            }
        )

    # ==================== Role Accessors ====================

    @property
    def owner(self) -> str:
        return self._ownership.owner

    @property
    def pending_owner(self) -> Optional[str]:
        return self._ownership.pending_owner

    @property
    def start(self) -> int:
        return self.terms.start

    @property
    def end(self) -> int:
        return self.terms.end

    @property
    def vesting_period(self) -> int:
        return self.terms.vesting_period

    @property
    def initial_tokens(self) -> int:
        return self.terms.initial_tokens

    @property
    def vesting_event_tokens(self) -> int:
        return self.terms.vesting_event_tokens

    # ==================== View Functions ====================

    def balance(self) -> int:
        """Tokens currently held by the escrow on the ledger."""
        return self.token.balance_of(self.address)

    def total_allocation(self) -> int:
        """
        Everything ever allocated to the escrow: held balance plus released.

        Tokens handed to the ledger by a transfer that has not returned yet
        are already counted in ``released`` (or are being swept), so they are
        left out of the held balance.
        """
        return self.balance() - self._in_flight + self.released

    def vested_amount(self, timestamp: int) -> int:
        """Cumulative amount vested at ``timestamp`` (no side effects)."""
        return vested_amount(self.terms, int(timestamp), self.total_allocation())

    def releasable(self, timestamp: Optional[int] = None) -> int:
        """
        Amount the beneficiary could claim now (or at ``timestamp``).

        Raises:
            InvariantViolation: if more has been released than has vested
        """
        if timestamp is None:
            timestamp = self._current_time()
        amount = self.vested_amount(timestamp) - self.released
        if amount < 0:
            raise InvariantViolation(
                f"VestingEscrow: released {self.released} exceeds vested amount",
                details={"released": self.released, "timestamp": timestamp},
            )
        return amount

    def is_fully_vested(self, timestamp: Optional[int] = None) -> bool:
        if timestamp is None:
            timestamp = self._current_time()
        return int(timestamp) >= self.terms.end

    def get_state(self) -> Dict[str, Any]:
        """Summary of roles, schedule and accounting."""
        now = self._current_time()
        return {
            "address": self.address,
            "owner": self.owner,
            "pending_owner": self.pending_owner,
            "beneficiary_owner": self.beneficiary_owner,
            "beneficiary": self.beneficiary,
            "terms": self.terms.to_dict(),
            "released": self.released,
            "terminated": self.terminated,
            "balance": self.balance(),
            "vested": self.vested_amount(now),
            "releasable": 0 if self.terminated else self.releasable(now),
            "timestamp": now,
        }

    # ==================== State-Changing Functions ====================

    def release(self, caller: str = "") -> int:
        """
        Transfer everything currently releasable to the beneficiary.

        Callable by anyone; the destination is always ``beneficiary``.

        Args:
            caller: Address triggering the release (informational only)

        Returns:
            Amount transferred (may be 0)

        Raises:
            EscrowTerminated: If the escrow has been terminated
            TransferFailure: If the ledger rejects the transfer
        """
        with self._atomic():
            if self.terminated:
                logger.warning(
                    "Release rejected: escrow terminated",
                    extra={"event": "escrow.release_rejected", "escrow": short(self.address), "caller": short(caller)},
                )
                raise EscrowTerminated("VestingEscrow: escrow is terminated")

            now = self._current_time()
            amount = self.releasable(now)
            self.released += amount
            self._emit("Released", {"amount": amount, "beneficiary": self.beneficiary}, now)
            self._transfer_out(self.beneficiary, amount)

        escrow_metrics.record_release(self.address, amount)
        escrow_metrics.update_escrow_balance(self.token, self.address)
        logger.info(
            "Vested tokens released",
            extra={
                "event": "escrow.released",
                "escrow": short(self.address),
                "beneficiary": short(self.beneficiary),
                "caller": short(caller),
                "amount": amount,
                "total_released": self.released,
            }
        )
        return amount

    def terminate(self, caller: str, return_address: str) -> int:
        """
        Terminate the escrow and sweep its whole balance to ``return_address`` (owner only).

        Calling it again on a terminated escrow emits another ``Terminated``
        event and sweeps whatever balance has arrived since.

        Returns:
            Amount swept back
        """
        with self._atomic():
            self._require_owner(caller, "terminate")
            self.terminated = True
            self._emit("Terminated", {"return_address": normalize_address(return_address)})
            amount = self._withdraw_unvested(return_address)

        escrow_metrics.record_termination(self.address)
        escrow_metrics.record_unvested_withdrawal(self.address, amount)
        escrow_metrics.update_escrow_balance(self.token, self.address)
        logger.info(
            "Vesting escrow terminated",
            extra={
                "event": "escrow.terminated",
                "escrow": short(self.address),
                "return_address": short(return_address),
                "amount": amount,
            }
        )
        return amount

    def withdraw_unvested_tokens(self, caller: str, return_address: str) -> int:
        """
        Sweep the escrow's entire balance to ``return_address`` (owner only).

        Only allowed after termination.

        Returns:
            Amount swept back

        Raises:
            Unauthorized: If caller is not the owner
            EscrowNotTerminated: If the escrow is still active
            InvalidAddress: If ``return_address`` is the zero address
            TransferFailure: If the ledger rejects the transfer
        """
        with self._atomic():
            self._require_owner(caller, "withdraw_unvested_tokens")
            amount = self._withdraw_unvested(return_address)

        escrow_metrics.record_unvested_withdrawal(self.address, amount)
        escrow_metrics.update_escrow_balance(self.token, self.address)
        return amount

    def update_beneficiary_owner(self, caller: str, new_beneficiary_owner: str) -> bool:
        """
        Reassign the beneficiary owner (owner only).

        Returns:
            True if the role changed, False if it already had that value
        """
        with self._atomic():
            self._require_owner(caller, "update_beneficiary_owner")
            self._require_address(new_beneficiary_owner, "beneficiary_owner")
            new_norm = normalize_address(new_beneficiary_owner)
            if new_norm == self.beneficiary_owner:
                return False
            previous = self.beneficiary_owner
            self.beneficiary_owner = new_norm
            self._emit("BeneficiaryOwnerUpdated", {"previous": previous, "new": new_norm})

        logger.info(
            "Beneficiary owner updated",
            extra={
                "event": "escrow.beneficiary_owner_updated",
                "escrow": short(self.address),
                "previous": short(previous),
                "new": short(new_norm),
            }
        )
        return True

    def update_beneficiary(self, caller: str, new_beneficiary: str) -> bool:
        """
        Reassign the beneficiary (beneficiary owner only).

        Returns:
            True if the role changed, False if it already had that value
        """
        with self._atomic():
            caller_norm = normalize_address(caller)
            if caller_norm != self.beneficiary_owner:
                self._log_unauthorized(caller_norm, self.beneficiary_owner, "update_beneficiary")
                raise Unauthorized(
                    "VestingEscrow: caller is not the beneficiary owner",
                    caller=caller_norm,
                    expected=self.beneficiary_owner,
                )
            self._require_address(new_beneficiary, "beneficiary")
            new_norm = normalize_address(new_beneficiary)
            if new_norm == self.beneficiary:
                return False
            previous = self.beneficiary
            self.beneficiary = new_norm
            self._emit("BeneficiaryUpdated", {"previous": previous, "new": new_norm})

        logger.info(
            "Beneficiary updated",
            extra={
                "event": "escrow.beneficiary_updated",
                "escrow": short(self.address),
                "previous": short(previous),
                "new": short(new_norm),
            }
        )
        return True

    # ==================== Ownership Handoff ====================

    def transfer_ownership(self, caller: str, new_owner: str) -> bool:
        """Propose ``new_owner`` as successor (owner only); takes effect on acceptance."""
        with self._atomic():
            self._require_owner(caller, "transfer_ownership")
            pending = self._ownership.propose(caller, new_owner)
            self._emit("OwnershipTransferStarted", {"previous": self.owner, "new": pending})

        logger.info(
            "Ownership transfer started",
            extra={
                "event": "escrow.ownership_transfer_started",
                "escrow": short(self.address),
                "owner": short(self.owner),
                "pending_owner": short(pending),
            }
        )
        return True

    def accept_ownership(self, caller: str) -> bool:
        """Complete a pending handoff (pending owner only)."""
        with self._atomic():
            try:
                previous, new = self._ownership.accept(caller)
            except Unauthorized as exc:
                self._log_unauthorized(exc.caller, exc.expected, "accept_ownership")
                raise
            self._emit("OwnershipTransferred", {"previous": previous, "new": new})

        logger.info(
            "Ownership transferred",
            extra={
                "event": "escrow.ownership_transferred",
                "escrow": short(self.address),
                "previous": short(previous),
                "new": short(new),
            }
        )
        return True

    # ==================== Helpers ====================

    def _withdraw_unvested(self, return_address: str) -> int:
        if not self.terminated:
            raise EscrowNotTerminated("VestingEscrow: escrow is not terminated")
        self._require_address(return_address, "return_address")
        return_norm = normalize_address(return_address)
        amount = self.balance() - self._in_flight
        self._emit("UnvestedTokensWithdrawn", {"amount": amount, "return_address": return_norm})
        self._transfer_out(return_norm, amount)
        return amount

    def _transfer_out(self, recipient: str, amount: int) -> None:
        """Move tokens out of the escrow; must be the last step of an operation."""
        # Tokens being sent still sit in the ledger balance until the call returns
        self._in_flight += amount
        try:
            ok = self.token.transfer(self.address, recipient, amount)
        except LedgerError as exc:
            logger.warning(
                "Ledger rejected escrow transfer: %s",
                exc,
                extra={"event": "escrow.transfer_failed", "escrow": short(self.address), "to": short(recipient), "amount": amount},
            )
            raise TransferFailure(
                f"VestingEscrow: transfer of {amount} to {recipient} failed: {exc}",
                recipient=recipient,
                amount=amount,
            ) from exc
        finally:
            self._in_flight -= amount
        if not ok:
            logger.warning(
                "Ledger reported failed escrow transfer",
                extra={"event": "escrow.transfer_failed", "escrow": short(self.address), "to": short(recipient), "amount": amount},
            )
            raise TransferFailure(
                f"VestingEscrow: transfer of {amount} to {recipient} failed",
                recipient=recipient,
                amount=amount,
            )

    def _require_owner(self, caller: str, operation: str) -> None:
        try:
            self._ownership.require_owner(caller)
        except Unauthorized as exc:
            self._log_unauthorized(exc.caller, exc.expected, operation)
            raise

    def _require_address(self, address: str, field: str) -> None:
        if is_zero_address(address):
            raise InvalidAddress(f"VestingEscrow: {field} is zero address", field=field)

    def _log_unauthorized(self, caller: str, expected: Optional[str], operation: str) -> None:
        logger.warning(
            "Access denied: %s",
            operation,
            extra={
                "event": "escrow.unauthorized",
                "escrow": short(self.address),
                "caller": short(caller),
                "expected": short(expected),
            }
        )

    def _current_time(self) -> int:
        """Read the time source, never going backwards."""
        timestamp = self._time_provider()
        try:
            timestamp = int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("time_provider must return an integer timestamp") from exc
        if self._last_timestamp is not None and timestamp < self._last_timestamp:
            logger.warning(
                "Time source went backwards; holding last timestamp",
                extra={"event": "escrow.clock_regression", "reported": timestamp, "last": self._last_timestamp},
            )
            return self._last_timestamp
        self._last_timestamp = timestamp
        return timestamp

    def _emit(self, event_type: str, data: Dict[str, Any], timestamp: Optional[int] = None) -> None:
        if timestamp is None:
            timestamp = self._current_time()
        self.events.append(EscrowEvent(event_type=event_type, data=data, timestamp=timestamp))

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        """Restore roles, accounting and the event log if the block raises."""
        snapshot = (
            self.beneficiary_owner,
            self.beneficiary,
            self.released,
            self.terminated,
            self._ownership.owner,
            self._ownership.pending_owner,
        )
        event_count = len(self.events)
        try:
            yield
        except Exception:
            (
                self.beneficiary_owner,
                self.beneficiary,
                self.released,
                self.terminated,
                self._ownership.owner,
                self._ownership.pending_owner,
            ) = snapshot
            del self.events[event_count:]
            raise

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        """Serialize escrow state to dictionary."""
        return {
            "address": self.address,
            "owner": self.owner,
            "pending_owner": self.pending_owner,
            "beneficiary_owner": self.beneficiary_owner,
            "beneficiary": self.beneficiary,
            "start": self.terms.start,
            "end": self.terms.end,
            "vesting_period": self.terms.vesting_period,
            "initial_tokens": self.terms.initial_tokens,
            "vesting_event_tokens": self.terms.vesting_event_tokens,
            "released": self.released,
            "terminated": self.terminated,
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        token: TokenLedger,
        time_provider: Optional[Callable[[], int]] = None,
    ) -> "VestingEscrow":
        """Deserialize escrow state from dictionary."""
        escrow = cls(
            token,
            beneficiary_owner=data["beneficiary_owner"],
            beneficiary=data["beneficiary"],
            owner=data["owner"],
            start=data["start"],
            end=data["end"],
            vesting_period=data["vesting_period"],
            initial_tokens=data["initial_tokens"],
            vesting_event_tokens=data["vesting_event_tokens"],
            address=data.get("address", ""),
            time_provider=time_provider,
        )
        escrow.released = int(data.get("released", 0))
        escrow.terminated = bool(data.get("terminated", False))
        pending = data.get("pending_owner")
        escrow._ownership.pending_owner = normalize_address(pending) if pending else None
        return escrow
