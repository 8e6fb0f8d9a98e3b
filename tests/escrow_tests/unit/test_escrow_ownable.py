"""
Tests for the two-step ownership handoff.
"""

import pytest

from vesting_escrow.core.contracts import OwnershipHandoff
from vesting_escrow.core.escrow_exceptions import InvalidAddress, Unauthorized

OWNER = "0x" + "a" * 40
SUCCESSOR = "0x" + "b" * 40
OTHER = "0x" + "c" * 40


@pytest.fixture
def handoff():
    ownership = OwnershipHandoff()
    ownership.initialize("0x" + "A" * 40)
    return ownership


def test_initialize_normalizes_owner(handoff):
    assert handoff.owner == OWNER
    assert handoff.pending_owner is None
    assert handoff.is_owner(OWNER)
    assert not handoff.is_owner(OTHER)


def test_initialize_rejects_zero_owner():
    with pytest.raises(InvalidAddress):
        OwnershipHandoff().initialize("")


def test_uninitialized_handoff_has_no_owner():
    ownership = OwnershipHandoff()
    assert not ownership.is_owner("")
    with pytest.raises(Unauthorized):
        ownership.require_owner("")


def test_require_owner_reports_caller_and_expected(handoff):
    with pytest.raises(Unauthorized) as exc_info:
        handoff.require_owner(OTHER)
    assert exc_info.value.details == {"caller": OTHER, "expected": OWNER}


def test_propose_then_accept(handoff):
    assert handoff.propose(OWNER, SUCCESSOR) == SUCCESSOR
    assert handoff.owner == OWNER

    assert handoff.accept(SUCCESSOR) == (OWNER, SUCCESSOR)
    assert handoff.owner == SUCCESSOR
    assert handoff.pending_owner is None


def test_later_proposal_replaces_earlier(handoff):
    handoff.propose(OWNER, SUCCESSOR)
    handoff.propose(OWNER, OTHER)
    with pytest.raises(Unauthorized):
        handoff.accept(SUCCESSOR)
    handoff.accept(OTHER)
    assert handoff.owner == OTHER


def test_only_owner_proposes(handoff):
    with pytest.raises(Unauthorized):
        handoff.propose(SUCCESSOR, SUCCESSOR)
    assert handoff.pending_owner is None


def test_zero_successor_rejected(handoff):
    with pytest.raises(InvalidAddress) as exc_info:
        handoff.propose(OWNER, "0x" + "0" * 40)
    assert exc_info.value.field == "new_owner"


def test_accept_without_pending(handoff):
    with pytest.raises(Unauthorized) as exc_info:
        handoff.accept(SUCCESSOR)
    assert exc_info.value.expected is None
