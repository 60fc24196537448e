"""
Tests for the ownership ledger and holder values
"""

import pytest

from bag_ledger.storage import InMemoryStorage
from bag_ledger.ownership import Holder, HolderKind, OwnershipLedger
from bag_ledger.errors import InvalidRecipient, NoOwner


@pytest.fixture
def ledger():
    return OwnershipLedger(InMemoryStorage())


class TestHolder:

    def test_ledger_and_account_are_distinct(self):
        assert Holder.ledger() != Holder.of("ledger")
        assert Holder.ledger().key != Holder.of("ledger").key

    def test_is_account(self):
        assert Holder.of("alice").is_account("alice")
        assert not Holder.of("alice").is_account("bob")
        assert not Holder.ledger().is_account(None)

    def test_account_holder_requires_id(self):
        with pytest.raises(InvalidRecipient):
            Holder(HolderKind.ACCOUNT, None)
        with pytest.raises(InvalidRecipient):
            Holder.of("")

    def test_dict_round_trip(self):
        holder = Holder.of("alice")
        assert Holder.from_dict(holder.to_dict()) == holder
        assert Holder.from_dict(Holder.ledger().to_dict()).is_ledger


class TestOwnershipLedger:

    def test_unowned_bag(self, ledger):
        with pytest.raises(NoOwner):
            ledger.owner_of(0)

    def test_creation_transfer(self, ledger):
        ledger.record_transfer(None, Holder.of("alice"), 0)
        assert ledger.owner_of(0) == Holder.of("alice")
        assert ledger.balance_of("alice") == 1
        assert ledger.bags_of("alice") == [0]

    def test_unknown_account_has_zero_balance(self, ledger):
        assert ledger.balance_of("nobody") == 0
        assert ledger.bags_of("nobody") == []

    def test_empty_account_has_zero_balance(self, ledger):
        ledger.record_transfer(None, Holder.of("alice"), 0)
        assert ledger.balance_of("") == 0
        assert ledger.balance_of(None) == 0
        assert ledger.bags_of("") == []

    def test_transfer_moves_counts_and_index(self, ledger):
        ledger.record_transfer(None, Holder.ledger(), 0)
        ledger.record_transfer(None, Holder.ledger(), 1)
        ledger.record_transfer(Holder.ledger(), Holder.of("bob"), 0)

        assert ledger.balance_of(Holder.ledger()) == 1
        assert ledger.bags_of(Holder.ledger()) == [1]
        assert ledger.balance_of("bob") == 1
        assert ledger.bags_of("bob") == [0]

    def test_transfer_clears_approval(self, ledger):
        ledger.record_transfer(None, Holder.of("alice"), 0)
        ledger.set_approval(0, "bob")
        ledger.record_transfer(Holder.of("alice"), Holder.of("carol"), 0)
        assert ledger.approved_for(0) is None

    def test_transfer_to_current_holder(self, ledger):
        ledger.record_transfer(None, Holder.of("alice"), 0)
        ledger.record_transfer(Holder.of("alice"), Holder.of("alice"), 0)
        assert ledger.balance_of("alice") == 1
        assert ledger.bags_of("alice") == [0]

    def test_approval_slot(self, ledger):
        ledger.record_transfer(None, Holder.of("alice"), 0)
        ledger.set_approval(0, "bob")
        ledger.set_approval(0, "carol")
        assert ledger.approved_for(0) == "carol"
        ledger.set_approval(0, None)
        assert ledger.approved_for(0) is None
        ledger.set_approval(0, "bob")
        ledger.set_approval(0, "")
        assert ledger.approved_for(0) is None

    def test_releasing_unheld_bag_fails(self, ledger):
        ledger.record_transfer(None, Holder.of("alice"), 0)
        with pytest.raises(NoOwner):
            ledger.record_transfer(Holder.of("bob"), Holder.of("carol"), 0)
