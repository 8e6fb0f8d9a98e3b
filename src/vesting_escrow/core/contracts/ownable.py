"""
Two-step ownership handoff.

The active owner proposes a successor; the role only changes once that
successor accepts. A mistyped successor address therefore never gains
control, and the current owner keeps the role until acceptance.

The contract owning an ``OwnershipHandoff`` is responsible for emitting
events and for rolling state back when an enclosing operation fails.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ..addresses import is_zero_address, normalize_address
from ..escrow_exceptions import InvalidAddress, Unauthorized


@dataclass
class OwnershipHandoff:
    """Active owner plus an optional pending successor."""

    owner: str = ""
    pending_owner: Optional[str] = None

    def initialize(self, owner: str) -> None:
        """Assign the initial owner directly; no acceptance step is needed."""
        if is_zero_address(owner):
            raise InvalidAddress("Ownable: initial owner is zero address", field="owner")
        self.owner = normalize_address(owner)
        self.pending_owner = None

    def is_owner(self, caller: str) -> bool:
        return bool(self.owner) and normalize_address(caller) == self.owner

    def require_owner(self, caller: str) -> None:
        if not self.is_owner(caller):
            raise Unauthorized(
                "Ownable: caller is not the owner",
                caller=normalize_address(caller),
                expected=self.owner,
            )

    def propose(self, caller: str, new_owner: str) -> str:
        """
        Start a handoff to ``new_owner`` (owner only).

        A later proposal replaces an earlier one.

        Returns:
            The normalized proposed successor
        """
        self.require_owner(caller)
        if is_zero_address(new_owner):
            raise InvalidAddress("Ownable: new owner is zero address", field="new_owner")
        self.pending_owner = normalize_address(new_owner)
        return self.pending_owner

    def accept(self, caller: str) -> Tuple[str, str]:
        """
        Complete the handoff (pending owner only).

        Returns:
            ``(previous_owner, new_owner)``
        """
        caller_norm = normalize_address(caller)
        if self.pending_owner is None or caller_norm != self.pending_owner:
            raise Unauthorized(
                "Ownable: caller is not the pending owner",
                caller=caller_norm,
                expected=self.pending_owner,
            )
        previous = self.owner
        self.owner = caller_norm
        self.pending_owner = None
        return previous, self.owner
