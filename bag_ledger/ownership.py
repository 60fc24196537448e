"""
Ownership Ledger Module

Maps each bag to exactly one holder, keeps a per-holder count and bag index,
and holds at most one approved transferee per bag. A holder is either an
external account or the ledger itself; "no previous owner" and "no approval"
are None rather than reserved account values.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from .storage import StorageInterface
from .errors import InvalidRecipient, NoOwner


class HolderKind(Enum):
    LEDGER = "ledger"
    ACCOUNT = "account"


@dataclass(frozen=True)
class Holder:
    """Owned(account) or HeldByLedger"""
    kind: HolderKind
    account: Optional[str] = None

    def __post_init__(self):
        if self.kind == HolderKind.ACCOUNT and not self.account:
            raise InvalidRecipient("Account holder requires an account id")
        if self.kind == HolderKind.LEDGER and self.account is not None:
            raise InvalidRecipient("Ledger holder cannot carry an account id")

    @classmethod
    def ledger(cls) -> 'Holder':
        return cls(HolderKind.LEDGER)

    @classmethod
    def of(cls, account: str) -> 'Holder':
        return cls(HolderKind.ACCOUNT, account)

    @property
    def is_ledger(self) -> bool:
        return self.kind == HolderKind.LEDGER

    def is_account(self, account: Optional[str]) -> bool:
        return self.kind == HolderKind.ACCOUNT and self.account == account

    @property
    def key(self) -> str:
        """Storage key; cannot collide between the two kinds"""
        if self.is_ledger:
            return "ledger"
        return f"account:{self.account}"

    def to_dict(self) -> dict:
        """Typed form used in storage and notifications"""
        return {"kind": self.kind.value, "account": self.account}

    @classmethod
    def from_dict(cls, data: dict) -> 'Holder':
        return cls(HolderKind(data["kind"]), data.get("account"))


HolderLike = Union[Holder, str]


def as_holder(value: HolderLike) -> Holder:
    return value if isinstance(value, Holder) else Holder.of(value)


class OwnershipLedger:
    """
    Owner, per-holder count/index and approval maps.

    record_transfer is the only way ownership changes; callers are
    responsible for authorisation.
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.owners_table = "bag_owners"
        self.holdings_table = "holdings"
        self.approvals_table = "bag_approvals"

    def owner_of(self, bag_id: int) -> Holder:
        data = self.storage.load(self.owners_table, str(bag_id))
        if data is None:
            raise NoOwner(f"Bag {bag_id} has no owner", {"bag_id": bag_id})
        return Holder.from_dict(data)

    def balance_of(self, holder: HolderLike) -> int:
        """Number of bags held; 0 for holders never seen"""
        if not holder:
            return 0
        data = self.storage.load(self.holdings_table, as_holder(holder).key)
        return data["count"] if data else 0

    def bags_of(self, holder: HolderLike) -> List[int]:
        """Bag identifiers held, ascending"""
        if not holder:
            return []
        data = self.storage.load(self.holdings_table, as_holder(holder).key)
        return list(data["bag_ids"]) if data else []

    def approved_for(self, bag_id: int) -> Optional[str]:
        data = self.storage.load(self.approvals_table, str(bag_id))
        return data["approved"] if data else None

    def set_approval(self, bag_id: int, account: Optional[str]) -> None:
        """Single slot, last write wins; None or an empty account clears"""
        if not account:
            self.storage.delete(self.approvals_table, str(bag_id))
        else:
            self.storage.save(self.approvals_table, str(bag_id), {"approved": account})

    def record_transfer(self, previous: Optional[Holder], new: Holder, bag_id: int) -> None:
        """
        Move bag_id to `new`.

        `previous` is None only when the bag is being created. Otherwise the
        previous holder's count is decremented and any approval is cleared.
        """
        # Release first so a transfer to the current holder keeps the index intact
        if previous is not None:
            self._adjust_holdings(previous, bag_id, added=False)
            self.set_approval(bag_id, None)

        self._adjust_holdings(new, bag_id, added=True)
        self.storage.save(self.owners_table, str(bag_id), new.to_dict())

    def _adjust_holdings(self, holder: Holder, bag_id: int, added: bool) -> None:
        data = self.storage.load(self.holdings_table, holder.key) or {
            "holder": holder.to_dict(), "count": 0, "bag_ids": []
        }
        bag_ids = set(data["bag_ids"])
        if added:
            data["count"] += 1
            bag_ids.add(bag_id)
        else:
            if data["count"] == 0 or bag_id not in bag_ids:
                raise NoOwner(
                    f"{holder.key} does not hold bag {bag_id}",
                    {"bag_id": bag_id, "holder": holder.key}
                )
            data["count"] -= 1
            bag_ids.discard(bag_id)
        data["bag_ids"] = sorted(bag_ids)
        self.storage.save(self.holdings_table, holder.key, data)

    def all_holdings(self) -> List[dict]:
        """Raw holdings records, for invariant checks"""
        return self.storage.load_all(self.holdings_table)
