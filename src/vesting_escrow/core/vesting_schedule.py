"""
Step-function vesting schedule.

The schedule is defined by fixed per-step quantities: ``initial_tokens``
vest at ``start`` and another ``vesting_event_tokens`` vest at each full
``vesting_period`` elapsed after it. The actual allocation held by an
escrow only matters once ``end`` is reached, at which point everything
is vested.

All arithmetic is integer arithmetic with floor division.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterator, Tuple

from .escrow_exceptions import ConfigurationReason, InvalidConfiguration

UINT256_MAX = 2**256 - 1


@dataclass(frozen=True)
class VestingTerms:
    """Immutable schedule parameters of a single escrow."""

    start: int
    end: int
    vesting_period: int
    initial_tokens: int
    vesting_event_tokens: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_terms(
    start: int,
    end: int,
    vesting_period: int,
    initial_tokens: int,
    vesting_event_tokens: int,
) -> VestingTerms:
    """
    Validate schedule parameters and freeze them into ``VestingTerms``.

    Checks run in this order: zero start, start after end, zero vesting
    period, then the two token amounts.

    Raises:
        InvalidConfiguration: naming the first rule that failed
    """
    if start <= 0:
        raise InvalidConfiguration(
            "VestingEscrow: start is not initialized",
            reason=ConfigurationReason.ZERO_START,
        )
    if start > end:
        raise InvalidConfiguration(
            f"VestingEscrow: start {start} is after end {end}",
            reason=ConfigurationReason.START_AFTER_END,
            start=start,
            end=end,
            details={"start": start, "end": end},
        )
    if vesting_period <= 0:
        raise InvalidConfiguration(
            "VestingEscrow: vesting period is zero",
            reason=ConfigurationReason.ZERO_VESTING_PERIOD,
        )
    for name, amount in (("initial_tokens", initial_tokens), ("vesting_event_tokens", vesting_event_tokens)):
        if not isinstance(amount, int) or isinstance(amount, bool) or not 0 <= amount <= UINT256_MAX:
            raise InvalidConfiguration(
                f"VestingEscrow: {name} must be a uint256 amount",
                reason=ConfigurationReason.INVALID_AMOUNT,
                details={name: amount},
            )
    return VestingTerms(
        start=int(start),
        end=int(end),
        vesting_period=int(vesting_period),
        initial_tokens=initial_tokens,
        vesting_event_tokens=vesting_event_tokens,
    )


def vested_amount(terms: VestingTerms, timestamp: int, total_allocation: int) -> int:
    """
    Cumulative amount vested at ``timestamp``.

    Args:
        terms: Schedule parameters
        timestamp: Point in time to evaluate
        total_allocation: Everything ever allocated to the escrow
            (current balance plus amount already released)

    Returns:
        0 before ``start``, ``total_allocation`` from ``end`` onwards,
        otherwise ``initial_tokens`` plus one ``vesting_event_tokens``
        per full period elapsed since ``start``.
    """
    if timestamp < terms.start:
        return 0
    if timestamp >= terms.end:
        return total_allocation
    elapsed_periods = (timestamp - terms.start) // terms.vesting_period
    return terms.initial_tokens + elapsed_periods * terms.vesting_event_tokens


def vesting_events(terms: VestingTerms) -> Iterator[Tuple[int, int]]:
    """
    Yield ``(timestamp, cumulative_vested)`` for every step strictly before ``end``.

    The first item is ``start`` itself with ``initial_tokens``. The end of the
    schedule is not included because its amount depends on the allocation.
    """
    timestamp = terms.start
    step = 0
    while timestamp < terms.end:
        yield timestamp, terms.initial_tokens + step * terms.vesting_event_tokens
        step += 1
        timestamp = terms.start + step * terms.vesting_period


def scheduled_total(terms: VestingTerms) -> int:
    """Amount the step schedule reaches just before ``end``."""
    if terms.end <= terms.start:
        return 0
    last_step = (terms.end - 1 - terms.start) // terms.vesting_period
    return terms.initial_tokens + last_step * terms.vesting_event_tokens
