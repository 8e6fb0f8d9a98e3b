"""
Shared fixtures for escrow tests: a funded ledger, a hand-driven clock
and an escrow on the reference schedule (start=1000, end=2000,
period=100, 10 tokens at start, 5 per period).
"""

from types import SimpleNamespace

import pytest

from vesting_escrow.core.contracts import ERC20Token, VestingEscrow

MINTER = "0x" + "9" * 40
OWNER = "0x" + "a" * 40
BENEFICIARY_OWNER = "0x" + "b" * 40
BENEFICIARY = "0x" + "c" * 40
STRANGER = "0x" + "d" * 40
TREASURY = "0x" + "e" * 40
ESCROW_ADDRESS = "0x" + "5" * 40

SCHEDULE = {
    "start": 1000,
    "end": 2000,
    "vesting_period": 100,
    "initial_tokens": 10,
    "vesting_event_tokens": 5,
}

ALLOCATION = 100


class ManualClock:
    """Time source the test moves by hand."""

    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def set(self, timestamp: int) -> None:
        self.now = timestamp


@pytest.fixture
def clock():
    return ManualClock(now=500)


@pytest.fixture
def token():
    return ERC20Token(name="Vest Token", symbol="VEST", owner=MINTER)


@pytest.fixture
def make_escrow(token, clock):
    """Factory for escrows on the reference schedule, optionally funded."""

    def _make(funding: int = ALLOCATION, ledger=None, address: str = ESCROW_ADDRESS, **overrides):
        params = dict(SCHEDULE)
        params.update(overrides)
        escrow = VestingEscrow(
            ledger if ledger is not None else token,
            beneficiary_owner=BENEFICIARY_OWNER,
            beneficiary=BENEFICIARY,
            owner=OWNER,
            address=address,
            time_provider=clock,
            **params,
        )
        if funding:
            token.mint(MINTER, escrow.address, funding)
        return escrow

    return _make


@pytest.fixture
def escrow(make_escrow):
    return make_escrow()


@pytest.fixture
def accounts():
    """Well-known addresses used across the escrow tests."""
    return SimpleNamespace(
        minter=MINTER,
        owner=OWNER,
        beneficiary_owner=BENEFICIARY_OWNER,
        beneficiary=BENEFICIARY,
        stranger=STRANGER,
        treasury=TREASURY,
        escrow=ESCROW_ADDRESS,
    )
