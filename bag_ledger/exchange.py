"""
Bag Exchange Module

Public operation surface of the ledger. Wires the registry, ownership
ledger, transfer protocol, pricing engine, treasury and administrator role
together and runs every state-changing call as one all-or-nothing unit:
storage changes, audit records, queued payments and notifications either
all take effect or none do.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .config import BagLedgerConfig, get_config
from .storage import StorageInterface, create_storage
from .audit import AuditTrail, AuditEventType
from .events import (
    DomainEvent, EventDispatcher, EventPayload,
    birth_event, sale_event, transfer_event
)
from .registry import Bag, BagRegistry
from .ownership import Holder, HolderLike, OwnershipLedger
from .transfers import TransferProtocol
from .pricing import PricingEngine
from .treasury import InMemoryPaymentGateway, PaymentGateway, SettlementMode, Treasury
from .roles import AdministratorRole
from .errors import (
    BagLedgerError, InsufficientPayment, InvalidRecipient, SelfPurchase
)
from .logging_config import get_logger, log_action
from . import safe_math


@dataclass
class BagView:
    """Read-only projection of a bag and its owner"""
    bag_id: int
    name: str
    price: int
    owner: Holder
    rent: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bag_id": self.bag_id,
            "name": self.name,
            "price": str(self.price),
            "owner": self.owner.account,
            "held_by_ledger": self.owner.is_ledger,
            "rent": str(self.rent)
        }


@dataclass
class PurchaseReceipt:
    """Outcome of a successful purchase"""
    bag_id: int
    name: str
    buyer: str
    previous_owner: Holder
    old_price: int
    new_price: int
    paid: int
    payout: int
    fee: int
    refund: int
    settlement: SettlementMode

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bag_id": self.bag_id,
            "name": self.name,
            "buyer": self.buyer,
            "previous_owner": self.previous_owner.account,
            "sold_by_ledger": self.previous_owner.is_ledger,
            "old_price": str(self.old_price),
            "new_price": str(self.new_price),
            "paid": str(self.paid),
            "payout": str(self.payout),
            "fee": str(self.fee),
            "refund": str(self.refund),
            "settlement": self.settlement.value
        }


class BagExchange:
    """
    Asset-ownership ledger with a rising-price auction.

    Every public mutation is executed inside storage.atomic(). Calls are
    assumed to be serialised by the caller (one mutation at a time); no
    extra locking is done here.
    """

    def __init__(
        self,
        storage: StorageInterface,
        config: Optional[BagLedgerConfig] = None,
        gateway: Optional[PaymentGateway] = None,
        event_dispatcher: Optional[EventDispatcher] = None,
        audit_trail: Optional[AuditTrail] = None
    ):
        self.config = config or get_config()
        self.storage = storage
        self.logger = get_logger("bag_ledger.exchange")
        self.audit_trail = audit_trail or AuditTrail(storage, enabled=self.config.enable_audit_logging)
        self.event_dispatcher = event_dispatcher or EventDispatcher()
        self.gateway = gateway or InMemoryPaymentGateway()

        self.registry = BagRegistry(
            storage,
            initial_rent=self.config.initial_rent,
            max_bag_id=self.config.max_bag_id
        )
        self.ownership = OwnershipLedger(storage)
        self.transfers = TransferProtocol(self.ownership, self._emit)
        self.pricing = PricingEngine(
            self.config.first_step_limit,
            self.config.second_step_limit,
            self.config.payout_percent
        )
        self.treasury = Treasury(storage, self.gateway, SettlementMode(self.config.settlement_mode))
        self.roles = AdministratorRole(storage, self.config.administrator)

        self._pending_events: List[EventPayload] = []

    # ------------------------------------------------------------------
    # Operation plumbing
    # ------------------------------------------------------------------

    def _emit(self, event: EventPayload) -> None:
        self._pending_events.append(event)

    @contextmanager
    def _operation(self, action: str, caller: Optional[str], resource: str):
        """Run one public mutation atomically, then deliver its side effects"""
        self._pending_events = []
        try:
            with self.storage.atomic():
                yield
        except BagLedgerError as e:
            self._pending_events = []
            self.treasury.discard()
            log_action(
                self.logger, "warning", f"Rejected {action}: {e.message}",
                user_id=caller, action=action, resource=resource, extra=e.to_dict()
            )
            raise
        except Exception:
            self._pending_events = []
            self.treasury.discard()
            self.logger.exception(f"Unexpected failure in {action}")
            raise

        # Committed: delivery failures become credits instead of errors
        events, self._pending_events = self._pending_events, []
        try:
            self._settle(action, caller)
        finally:
            for event in events:
                self.event_dispatcher.publish(event)

    def _settle(self, action: str, caller: Optional[str]) -> None:
        """Send queued payments; failed deliveries are credited to their account"""
        undelivered = self.treasury.flush()
        if not undelivered:
            return
        with self.storage.atomic():
            for account, amount in undelivered:
                self.treasury.credit_undelivered(account, amount)
                self._audit(AuditEventType.CREDIT_ISSUED, "treasury", account, caller, {
                    "amount": amount, "reason": "delivery_failed", "action": action
                })
        for account, amount in undelivered:
            log_action(
                self.logger, "warning", f"Payment of {amount} to {account} credited after delivery failure",
                user_id=caller, action=action, resource=f"credit:{account}",
                extra={"account": account, "amount": str(amount)}
            )

    def _audit(self, event_type: AuditEventType, entity_type: str, entity_id: str,
               caller: Optional[str], metadata: Dict[str, Any]) -> None:
        self.audit_trail.log_event(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            metadata=metadata,
            user_id=caller
        )

    # ------------------------------------------------------------------
    # Creation and administration
    # ------------------------------------------------------------------

    def create_bag(self, caller: Optional[str], name: str,
                   owner: Optional[str] = None, price: Optional[int] = None) -> Bag:
        """
        Create a bag (administrator only).

        Args:
            caller: Account submitting the call
            name: Display name, immutable afterwards
            owner: Initial owning account; the ledger holds the bag when None
            price: Initial listed price; defaults to the configured starting price

        Returns:
            The new Bag record

        Raises:
            Unauthorized: caller is not the administrator
            IdentifierSpaceExhausted: the identifier cap was reached
        """
        price = self.config.starting_price if price is None else price
        with self._operation("create_bag", caller, "bag:new"):
            self.roles.require(caller)
            safe_math.require_uint(price)

            bag = self.registry.create(name, price)
            holder = Holder.of(owner) if owner else Holder.ledger()
            self._emit(birth_event(bag.bag_id, bag.name, holder))
            self.ownership.record_transfer(None, holder, bag.bag_id)
            self._emit(transfer_event(bag.bag_id, None, holder))

            self._audit(AuditEventType.BAG_CREATED, "bag", bag.id, caller, {
                "name": name, "price": price, "owner": holder.key, "rent": bag.rent
            })

        log_action(
            self.logger, "info", f"Bag created: {name}",
            user_id=caller, action="create_bag", resource=f"bag:{bag.bag_id}",
            extra={"bag_id": bag.bag_id, "price": str(price), "owner": holder.key}
        )
        return bag

    def set_administrator(self, caller: Optional[str], new_account: Optional[str]) -> None:
        with self._operation("set_administrator", caller, "role:administrator"):
            previous = self.roles.set_administrator(caller, new_account)
            self._audit(AuditEventType.ADMINISTRATOR_CHANGED, "role", "administrator", caller, {
                "previous": previous, "current": new_account
            })
            self._emit(EventPayload(
                event_type=DomainEvent.ADMINISTRATOR_CHANGED,
                entity_type="role",
                entity_id="administrator",
                data={"previous": previous, "current": new_account}
            ))

        log_action(
            self.logger, "info", "Administrator changed",
            user_id=caller, action="set_administrator", resource="role:administrator",
            extra={"current": new_account}
        )

    def withdraw(self, caller: Optional[str], to: Optional[str] = None) -> int:
        """
        Send the ledger's retained balance (administrator only).

        Credits still owed to accounts in pull mode are not withdrawn.

        Returns:
            Amount sent
        """
        with self._operation("withdraw", caller, "treasury:ledger"):
            self.roles.require(caller)
            destination = to or self.roles.holder
            amount = self.treasury.withdraw_all(destination)
            self._audit(AuditEventType.FUNDS_WITHDRAWN, "treasury", "ledger", caller, {
                "to": destination, "amount": amount
            })
            self._emit(EventPayload(
                event_type=DomainEvent.FUNDS_WITHDRAWN,
                entity_type="treasury",
                entity_id="ledger",
                data={"to": destination, "amount": amount}
            ))

        log_action(
            self.logger, "info", f"Withdrew {amount}",
            user_id=caller, action="withdraw", resource="treasury:ledger",
            extra={"to": destination, "amount": str(amount)}
        )
        return amount

    def withdraw_credit(self, caller: Optional[str]) -> int:
        """Collect the caller's pull-mode credit; returns the amount sent"""
        with self._operation("withdraw_credit", caller, f"credit:{caller}"):
            if not caller:
                raise InvalidRecipient("Withdrawing a credit needs an account")
            amount = self.treasury.withdraw_credit(caller)
            if amount:
                self._audit(AuditEventType.CREDIT_WITHDRAWN, "treasury", caller, caller, {
                    "amount": amount
                })

        log_action(
            self.logger, "info", f"Credit withdrawn: {amount}",
            user_id=caller, action="withdraw_credit", resource=f"credit:{caller}",
            extra={"amount": str(amount)}
        )
        return amount

    # ------------------------------------------------------------------
    # Purchase workflow
    # ------------------------------------------------------------------

    def purchase(self, caller: Optional[str], bag_id: int, paid_amount: int) -> PurchaseReceipt:
        """
        Buy a bag at its listed price or more.

        The price rises by the tier of the pre-sale price, the previous owner
        receives the payout share (kept by the ledger when it was the
        seller), the fee is retained and any overpayment is refunded.

        Raises:
            NotFound / NoOwner: unknown bag
            SelfPurchase: caller already owns the bag
            InvalidRecipient: no caller account
            InsufficientPayment: paid_amount below the listed price
            PaymentDeliveryError: a payout or refund could not be delivered
        """
        with self._operation("purchase", caller, f"bag:{bag_id}"):
            bag = self.registry.get(bag_id)
            old_owner = self.ownership.owner_of(bag_id)
            selling_price = bag.price

            if old_owner.is_account(caller):
                raise SelfPurchase(
                    f"{caller} already owns bag {bag_id}",
                    {"caller": caller, "bag_id": bag_id}
                )
            if not caller:
                raise InvalidRecipient("Purchase needs a buyer account", {"bag_id": bag_id})
            if paid_amount < selling_price:
                raise InsufficientPayment(
                    f"Paid {paid_amount}, price is {selling_price}",
                    {"paid": paid_amount, "price": selling_price, "bag_id": bag_id}
                )

            payout = self.pricing.seller_payout(selling_price)
            fee = safe_math.sub(selling_price, payout)
            excess = safe_math.sub(paid_amount, selling_price)
            self.treasury.receive(paid_amount)

            new_price = self.pricing.next_price(selling_price)
            self.registry.update_price(bag_id, new_price)

            buyer = Holder.of(caller)
            self.ownership.record_transfer(old_owner, buyer, bag_id)
            self._emit(transfer_event(bag_id, old_owner, buyer))

            if old_owner.is_ledger:
                self.treasury.retain(payout)
            else:
                self.treasury.disburse(old_owner.account, payout)
            self.treasury.record_fee(fee)

            self._emit(sale_event(bag_id, selling_price, new_price, old_owner, buyer, bag.name))
            self.treasury.disburse(caller, excess)

            self._audit(AuditEventType.BAG_SOLD, "bag", bag.id, caller, {
                "old_price": selling_price,
                "new_price": new_price,
                "old_owner": old_owner.key,
                "new_owner": buyer.key,
                "paid": paid_amount,
                "payout": payout,
                "fee": fee,
                "refund": excess,
                "settlement": self.treasury.mode.value
            })
            if self.treasury.mode == SettlementMode.PULL:
                credited = [(caller, excess)]
                if not old_owner.is_ledger:
                    credited.append((old_owner.account, payout))
                for account, amount in credited:
                    if amount:
                        self._audit(AuditEventType.CREDIT_ISSUED, "treasury", account, caller, {
                            "amount": amount, "bag_id": bag_id
                        })

        receipt = PurchaseReceipt(
            bag_id=bag_id,
            name=bag.name,
            buyer=caller,
            previous_owner=old_owner,
            old_price=selling_price,
            new_price=new_price,
            paid=paid_amount,
            payout=payout,
            fee=fee,
            refund=excess,
            settlement=self.treasury.mode
        )
        log_action(
            self.logger, "info", f"Bag {bag_id} sold to {caller}",
            user_id=caller, action="purchase", resource=f"bag:{bag_id}",
            extra=receipt.to_dict()
        )
        return receipt

    # ------------------------------------------------------------------
    # Transfer protocol
    # ------------------------------------------------------------------

    def approve(self, caller: Optional[str], to: Optional[str], bag_id: int) -> None:
        with self._operation("approve", caller, f"bag:{bag_id}"):
            self.transfers.approve(caller, to, bag_id)
            self._audit(AuditEventType.APPROVAL_SET, "bag", str(bag_id), caller, {"approved": to})
        log_action(self.logger, "info", f"Approval set on bag {bag_id}",
                   user_id=caller, action="approve", resource=f"bag:{bag_id}",
                   extra={"approved": to})

    def transfer(self, caller: Optional[str], to: Optional[str], bag_id: int) -> None:
        with self._operation("transfer", caller, f"bag:{bag_id}"):
            self.transfers.transfer(caller, to, bag_id)
            self._audit(AuditEventType.BAG_TRANSFERRED, "bag", str(bag_id), caller, {
                "from": caller, "to": to, "via": "transfer"
            })
        log_action(self.logger, "info", f"Bag {bag_id} transferred to {to}",
                   user_id=caller, action="transfer", resource=f"bag:{bag_id}")

    def take_ownership(self, caller: Optional[str], bag_id: int) -> None:
        with self._operation("take_ownership", caller, f"bag:{bag_id}"):
            previous = self.ownership.owner_of(bag_id)
            self.transfers.take_ownership(caller, bag_id)
            self._audit(AuditEventType.BAG_TRANSFERRED, "bag", str(bag_id), caller, {
                "from": previous.key, "to": caller, "via": "take_ownership"
            })
        log_action(self.logger, "info", f"Bag {bag_id} taken by {caller}",
                   user_id=caller, action="take_ownership", resource=f"bag:{bag_id}")

    def transfer_from(self, caller: Optional[str], from_: Optional[str],
                      to: Optional[str], bag_id: int) -> None:
        with self._operation("transfer_from", caller, f"bag:{bag_id}"):
            self.transfers.transfer_from(caller, from_, to, bag_id)
            self._audit(AuditEventType.BAG_TRANSFERRED, "bag", str(bag_id), caller, {
                "from": from_, "to": to, "via": "transfer_from"
            })
        log_action(self.logger, "info", f"Bag {bag_id} moved from {from_} to {to}",
                   user_id=caller, action="transfer_from", resource=f"bag:{bag_id}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_bag(self, bag_id: int) -> BagView:
        bag = self.registry.get(bag_id)
        return BagView(
            bag_id=bag.bag_id,
            name=bag.name,
            price=bag.price,
            owner=self.ownership.owner_of(bag_id),
            rent=bag.rent
        )

    def owner_of(self, bag_id: int) -> Holder:
        return self.ownership.owner_of(bag_id)

    def balance_of(self, holder: HolderLike) -> int:
        return self.ownership.balance_of(holder)

    def bags_of(self, holder: HolderLike) -> List[int]:
        return self.ownership.bags_of(holder)

    def approved_for(self, bag_id: int) -> Optional[str]:
        return self.ownership.approved_for(bag_id)

    def price_of(self, bag_id: int) -> int:
        return self.registry.get(bag_id).price

    def total_supply(self) -> int:
        return self.registry.total_supply()

    def credit_of(self, account: str) -> int:
        return self.treasury.credit_of(account)

    @property
    def administrator(self) -> str:
        return self.roles.holder

    @property
    def name(self) -> str:
        return self.config.collection_name

    @property
    def symbol(self) -> str:
        return self.config.collection_symbol

    def check_invariants(self) -> List[str]:
        """
        Recompute ownership bookkeeping from scratch.

        Returns a list of violations; empty when every bag has an owner and
        every holder's count matches the bags pointing at it,
        and pull-mode credits add up and are covered by the balance.
        """
        problems = []
        expected: Dict[str, List[int]] = {}
        for bag_id in range(self.total_supply()):
            try:
                holder = self.ownership.owner_of(bag_id)
            except BagLedgerError:
                problems.append(f"bag {bag_id} has no owner")
                continue
            expected.setdefault(holder.key, []).append(bag_id)

        for record in self.ownership.all_holdings():
            key = Holder.from_dict(record["holder"]).key
            bag_ids = expected.pop(key, [])
            if record["count"] != len(bag_ids):
                problems.append(f"{key} count {record['count']} != {len(bag_ids)} owned")
            if sorted(record["bag_ids"]) != sorted(bag_ids):
                problems.append(f"{key} index {record['bag_ids']} != {bag_ids}")
        for key, bag_ids in expected.items():
            problems.append(f"{key} owns {bag_ids} but has no holdings record")

        owed = sum(self.treasury.credits().values())
        if owed != self.treasury.outstanding_credits:
            problems.append(f"credits sum to {owed}, treasury records {self.treasury.outstanding_credits}")
        if self.treasury.outstanding_credits > self.treasury.balance:
            problems.append("outstanding credits exceed the ledger balance")

        return problems


def create_exchange(config: Optional[BagLedgerConfig] = None,
                    gateway: Optional[PaymentGateway] = None) -> BagExchange:
    """Build an exchange on the storage named by config.database_url"""
    config = config or get_config()
    return BagExchange(create_storage(config.database_url), config=config, gateway=gateway)
