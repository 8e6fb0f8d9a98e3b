"""
Tests for the in-memory ERC20 ledger used to hold escrow allocations.
"""

import pytest

from vesting_escrow.core.contracts import ERC20Token, TokenLedger
from vesting_escrow.core.escrow_exceptions import LedgerError

MINTER = "0x" + "9" * 40
ALICE = "0x" + "1" * 40
BOB = "0x" + "2" * 40


@pytest.fixture
def token():
    token = ERC20Token(name="Vest Token", symbol="VEST", owner=MINTER)
    token.mint(MINTER, ALICE, 1000)
    return token


class TestERC20Token:
    def test_satisfies_ledger_protocol(self, token):
        assert isinstance(token, TokenLedger)

    def test_generated_address(self, token):
        assert token.address.startswith("0x")
        assert len(token.address) == 42

    def test_mint_updates_supply(self, token):
        assert token.total_supply == 1000
        assert token.balance_of(ALICE) == 1000
        assert token.events[-1].from_address == "0x" + "0" * 40

    def test_only_owner_mints(self, token):
        with pytest.raises(LedgerError, match="not owner"):
            token.mint(ALICE, ALICE, 1)

    def test_max_supply_enforced(self):
        capped = ERC20Token(name="Capped", symbol="CAP", owner=MINTER, max_supply=10)
        capped.mint(MINTER, ALICE, 10)
        with pytest.raises(LedgerError, match="max supply"):
            capped.mint(MINTER, ALICE, 1)

    def test_transfer(self, token):
        assert token.transfer(ALICE, BOB, 300) is True
        assert token.balance_of(ALICE) == 700
        assert token.balance_of("0x" + "2" * 40 + " ") == 300
        event = token.events[-1]
        assert (event.event_type, event.from_address, event.to_address, event.value) == (
            "Transfer", ALICE, BOB, 300,
        )

    def test_zero_amount_transfer(self, token):
        assert token.transfer(BOB, ALICE, 0) is True
        assert token.balance_of(ALICE) == 1000

    def test_insufficient_balance_leaves_ledger_unchanged(self, token):
        event_count = len(token.events)
        with pytest.raises(LedgerError, match="exceeds balance"):
            token.transfer(ALICE, BOB, 1001)
        assert token.balance_of(ALICE) == 1000
        assert token.balance_of(BOB) == 0
        assert len(token.events) == event_count

    @pytest.mark.parametrize("recipient", ["", None, "0x" + "0" * 40])
    def test_zero_recipient_rejected(self, token, recipient):
        with pytest.raises(LedgerError, match="zero address"):
            token.transfer(ALICE, recipient, 1)

    @pytest.mark.parametrize("amount", [-1, 2**256, 1.5, True])
    def test_invalid_amount_rejected(self, token, amount):
        with pytest.raises(LedgerError):
            token.transfer(ALICE, BOB, amount)

    def test_serialization(self, token):
        token.transfer(ALICE, BOB, 5)
        restored = ERC20Token.from_dict(token.to_dict())
        assert restored.address == token.address
        assert restored.owner == MINTER
        assert restored.balance_of(BOB) == 5
        assert restored.total_supply == 1000
