"""
Bag Registry Module

Append-only, densely indexed store of bag records. Identifiers are assigned
sequentially from zero and never reused; the only mutation after creation
is a price update.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict

from .storage import StorageInterface, StorageRecord
from .errors import IdentifierSpaceExhausted, NotFound
from .logging_config import get_logger


@dataclass
class Bag(StorageRecord):
    """A uniquely identified, non-fungible asset"""
    bag_id: int
    name: str
    price: int
    rent: int

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['price'] = str(self.price)
        result['rent'] = str(self.rent)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Bag':
        data['price'] = int(data['price'])
        data['rent'] = int(data['rent'])
        return super().from_dict(data)


class BagRegistry:
    """Sequential bag records; ownership lives in OwnershipLedger"""

    def __init__(self, storage: StorageInterface, initial_rent: int = 0,
                 max_bag_id: int = 2**32 - 1):
        self.storage = storage
        self.initial_rent = initial_rent
        self.max_bag_id = max_bag_id
        self.table_name = "bags"
        self.logger = get_logger("bag_ledger.registry")

    def create(self, name: str, price: int) -> Bag:
        """
        Append a new bag with the next sequential identifier

        Raises:
            IdentifierSpaceExhausted: if the new identifier would exceed max_bag_id
        """
        bag_id = self.total_supply()
        if bag_id > self.max_bag_id:
            raise IdentifierSpaceExhausted(
                f"Bag identifier {bag_id} exceeds the maximum of {self.max_bag_id}",
                {"bag_id": bag_id, "max_bag_id": self.max_bag_id}
            )

        now = datetime.now(timezone.utc)
        bag = Bag(
            id=str(bag_id),
            created_at=now,
            updated_at=now,
            bag_id=bag_id,
            name=name,
            price=price,
            rent=self.initial_rent
        )
        self.storage.save(self.table_name, bag.id, bag.to_dict())
        self.logger.debug(f"Registered bag {bag_id} ({name}) at price {price}")
        return bag

    def get(self, bag_id: int) -> Bag:
        """Load a bag; raises NotFound outside the populated range"""
        data = None
        if 0 <= bag_id < self.total_supply():
            data = self.storage.load(self.table_name, str(bag_id))
        if data is None:
            raise NotFound(f"Bag {bag_id} not found", {"bag_id": bag_id})
        return Bag.from_dict(data)

    def update_price(self, bag_id: int, new_price: int) -> Bag:
        bag = self.get(bag_id)
        bag.price = new_price
        bag.updated_at = datetime.now(timezone.utc)
        self.storage.save(self.table_name, bag.id, bag.to_dict())
        return bag

    def total_supply(self) -> int:
        """Number of bags created so far"""
        return self.storage.count(self.table_name)
