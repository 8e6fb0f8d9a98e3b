"""
Vesting escrow instrumentation.

Provides Prometheus metrics that track how many tokens each escrow has
released or returned, with helper functions that are safe to call from
the success path of an escrow operation.
"""

from __future__ import annotations

from typing import Any

from prometheus_client import Counter, Gauge

released_tokens_counter = Counter(
    "vesting_escrow_released_tokens_total",
    "Total tokens released to beneficiaries",
    ["escrow"],
)

release_events_counter = Counter(
    "vesting_escrow_release_events_total",
    "Total number of successful release calls",
    ["escrow"],
)

terminations_counter = Counter(
    "vesting_escrow_terminations_total",
    "Total number of terminate calls",
    ["escrow"],
)

unvested_withdrawn_counter = Counter(
    "vesting_escrow_unvested_withdrawn_tokens_total",
    "Total unvested tokens swept back after termination",
    ["escrow"],
)

escrow_balance_gauge = Gauge(
    "vesting_escrow_balance",
    "Current token balance held by the escrow",
    ["escrow"],
)


def record_release(escrow_address: str, amount: int) -> None:
    """Count a release call and the tokens it moved."""
    release_events_counter.labels(escrow=escrow_address).inc()
    if amount <= 0:
        return
    released_tokens_counter.labels(escrow=escrow_address).inc(amount)


def record_termination(escrow_address: str) -> None:
    terminations_counter.labels(escrow=escrow_address).inc()


def record_unvested_withdrawal(escrow_address: str, amount: int) -> None:
    if amount <= 0:
        return
    unvested_withdrawn_counter.labels(escrow=escrow_address).inc(amount)


def update_escrow_balance(ledger: Any, escrow_address: str) -> None:
    """Refresh the balance gauge from the token ledger."""
    if ledger is None or not escrow_address:
        return

    balance = ledger.balance_of(escrow_address)
    escrow_balance_gauge.labels(escrow=escrow_address).set(balance)
