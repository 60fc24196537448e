"""
Transfer Protocol Module

The ways ownership moves between accounts outside a sale: direct transfer,
approve-then-take-ownership, and delegated transfer-from. Every entry point
checks authorisation before touching state and mutates only through
OwnershipLedger.record_transfer.
"""

from typing import Callable, Optional

from .ownership import Holder, OwnershipLedger
from .errors import InvalidRecipient, Unauthorized
from .events import EventPayload, approval_event, transfer_event


class TransferProtocol:

    def __init__(self, ownership: OwnershipLedger, emit: Callable[[EventPayload], None]):
        self.ownership = ownership
        self.emit = emit

    def _require_owner(self, caller: Optional[str], bag_id: int) -> Holder:
        owner = self.ownership.owner_of(bag_id)
        if caller is None or not owner.is_account(caller):
            raise Unauthorized(
                f"{caller} does not own bag {bag_id}",
                {"caller": caller, "bag_id": bag_id}
            )
        return owner

    def approve(self, caller: Optional[str], to: Optional[str], bag_id: int) -> None:
        """Grant `to` the right to take bag_id; None or an empty account revokes"""
        owner = self._require_owner(caller, bag_id)
        to = to or None
        self.ownership.set_approval(bag_id, to)
        self.emit(approval_event(bag_id, owner, to))

    def transfer(self, caller: Optional[str], to: Optional[str], bag_id: int) -> None:
        owner = self._require_owner(caller, bag_id)
        if not to:
            raise InvalidRecipient("Transfer needs a recipient", {"bag_id": bag_id})
        new_owner = Holder.of(to)
        self.ownership.record_transfer(owner, new_owner, bag_id)
        self.emit(transfer_event(bag_id, owner, new_owner))

    def take_ownership(self, caller: Optional[str], bag_id: int) -> None:
        if not caller:
            raise InvalidRecipient("Taking ownership needs an account", {"bag_id": bag_id})
        previous = self.ownership.owner_of(bag_id)
        if self.ownership.approved_for(bag_id) != caller:
            raise Unauthorized(
                f"{caller} is not approved for bag {bag_id}",
                {"caller": caller, "bag_id": bag_id}
            )
        new_owner = Holder.of(caller)
        self.ownership.record_transfer(previous, new_owner, bag_id)
        self.emit(transfer_event(bag_id, previous, new_owner))

    def transfer_from(self, caller: Optional[str], from_: Optional[str],
                      to: Optional[str], bag_id: int) -> None:
        """
        Move bag_id from its owner `from_` to the approved account `to`.

        Only `to` is checked against the approval; `caller` is recorded
        but not otherwise required to match.
        """
        if not to:
            raise InvalidRecipient("Transfer needs a recipient", {"bag_id": bag_id})
        owner = self.ownership.owner_of(bag_id)
        if not owner.is_account(from_):
            raise Unauthorized(
                f"{from_} does not own bag {bag_id}",
                {"caller": caller, "from": from_, "bag_id": bag_id}
            )
        if self.ownership.approved_for(bag_id) != to:
            raise Unauthorized(
                f"{to} is not approved for bag {bag_id}",
                {"caller": caller, "to": to, "bag_id": bag_id}
            )
        new_owner = Holder.of(to)
        self.ownership.record_transfer(owner, new_owner, bag_id)
        self.emit(transfer_event(bag_id, owner, new_owner))
