"""
Treasury and Settlement Module

Tracks the ledger's own fund balance and moves money out of it. Incoming
payments are credited in full; payouts and refunds leave either immediately
through a PaymentGateway ("push") or as withdrawable credits that the
receiving account collects later ("pull").

In push mode a payment the gateway refuses during the operation aborts it,
rolling back everything it did. A payment that fails only when it is sent,
after commit, becomes a credit the account can withdraw later. In pull
mode ownership changes never depend on delivery; only withdraw_credit does.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Set, Tuple

from .storage import StorageInterface
from .errors import InsufficientFunds, InvalidRecipient, PaymentDeliveryError
from . import safe_math
from .logging_config import get_logger


class SettlementMode(Enum):
    PUSH = "push"
    PULL = "pull"


class PaymentGateway(ABC):
    """
    Delivers funds to an account outside the ledger.

    Two phases: check() runs inside the ledger operation and may veto it;
    send() runs only after the operation committed and is final.
    """

    @abstractmethod
    def check(self, account: str, amount: int) -> None:
        """Raise PaymentDeliveryError if account cannot accept amount"""
        pass

    @abstractmethod
    def send(self, account: str, amount: int) -> None:
        """Deliver a payment that already passed check(); a failure here is credited back"""
        pass


@dataclass
class InMemoryPaymentGateway(PaymentGateway):
    """
    Gateway that records deliveries in memory.

    Accounts in `rejecting` refuse every delivery, standing in for an
    account that cannot accept funds.
    """
    deliveries: List[Tuple[str, int]] = field(default_factory=list)
    rejecting: Set[str] = field(default_factory=set)

    def check(self, account: str, amount: int) -> None:
        if account in self.rejecting:
            raise PaymentDeliveryError(
                f"Account {account} rejected a payment of {amount}",
                {"account": account, "amount": amount}
            )

    def send(self, account: str, amount: int) -> None:
        self.deliveries.append((account, amount))

    def total_delivered(self, account: str) -> int:
        return sum(amount for to, amount in self.deliveries if to == account)


class Treasury:
    """
    Fund balance held by the ledger.

    fee_income and inventory_proceeds are running totals of what the ledger
    has kept; balance is what it currently holds, including credits still
    owed to accounts in pull mode.

    Outgoing payments are checked with the gateway immediately and queued;
    flush() sends them once the enclosing operation has committed and
    discard() drops them when it rolled back.
    """

    def __init__(self, storage: StorageInterface, gateway: PaymentGateway,
                 mode: SettlementMode = SettlementMode.PUSH):
        self.storage = storage
        self.gateway = gateway
        self.mode = mode
        self.table_name = "treasury"
        self.credits_table = "credits"
        self.record_id = "ledger"
        self._outbox: List[Tuple[str, int]] = []
        self.logger = get_logger("bag_ledger.treasury")

    def _load(self) -> Dict[str, int]:
        data = self.storage.load(self.table_name, self.record_id) or {}
        return {
            "balance": int(data.get("balance", 0)),
            "fee_income": int(data.get("fee_income", 0)),
            "inventory_proceeds": int(data.get("inventory_proceeds", 0)),
            "outstanding_credits": int(data.get("outstanding_credits", 0)),
        }

    def _save(self, state: Dict[str, int]) -> None:
        self.storage.save(self.table_name, self.record_id, {k: str(v) for k, v in state.items()})

    def snapshot(self) -> Dict[str, int]:
        return self._load()

    @property
    def balance(self) -> int:
        return self._load()["balance"]

    @property
    def fee_income(self) -> int:
        return self._load()["fee_income"]

    @property
    def inventory_proceeds(self) -> int:
        return self._load()["inventory_proceeds"]

    @property
    def outstanding_credits(self) -> int:
        return self._load()["outstanding_credits"]

    def withdrawable(self) -> int:
        """Balance not owed to any account"""
        state = self._load()
        return safe_math.sub(state["balance"], state["outstanding_credits"])

    def receive(self, amount: int) -> None:
        state = self._load()
        state["balance"] = safe_math.add(state["balance"], amount)
        self._save(state)

    def record_fee(self, amount: int) -> None:
        state = self._load()
        state["fee_income"] = safe_math.add(state["fee_income"], amount)
        self._save(state)

    def retain(self, amount: int) -> None:
        """Keep a payout that has no external seller"""
        state = self._load()
        state["inventory_proceeds"] = safe_math.add(state["inventory_proceeds"], amount)
        self._save(state)

    def disburse(self, account: str, amount: int) -> None:
        """
        Pay `amount` out to `account` according to the settlement mode.
        Zero amounts are a no-op.
        """
        if not account:
            raise InvalidRecipient("Disbursement needs an account")
        if amount == 0:
            return

        if self.mode == SettlementMode.PUSH:
            self._send(account, amount)
        else:
            self._add_credit(account, amount)

    def _add_credit(self, account: str, amount: int) -> None:
        state = self._load()
        state["outstanding_credits"] = safe_math.add(state["outstanding_credits"], amount)
        self._save(state)
        credit = safe_math.add(self.credit_of(account), amount)
        self.storage.save(self.credits_table, account,
                          {"account": account, "amount": str(credit)})

    def credit_of(self, account: str) -> int:
        data = self.storage.load(self.credits_table, account)
        return int(data["amount"]) if data else 0

    def credits(self) -> Dict[str, int]:
        """Outstanding credit per account"""
        return {r["account"]: int(r["amount"]) for r in self.storage.load_all(self.credits_table)}

    def withdraw_credit(self, account: str) -> int:
        """Send the account's whole credit; returns the amount"""
        amount = self.credit_of(account)
        if amount == 0:
            return 0
        state = self._load()
        state["outstanding_credits"] = safe_math.sub(state["outstanding_credits"], amount)
        self._save(state)
        self.storage.delete(self.credits_table, account)
        self._send(account, amount)
        return amount

    def withdraw_all(self, to: str) -> int:
        """Send everything not owed to other accounts to `to`"""
        if not to:
            raise InvalidRecipient("Withdrawal needs an account")
        amount = self.withdrawable()
        if amount > 0:
            self._send(to, amount)
        return amount

    def _send(self, account: str, amount: int) -> None:
        state = self._load()
        if amount > state["balance"]:
            raise InsufficientFunds(
                f"Ledger balance {state['balance']} cannot cover {amount}",
                {"balance": state["balance"], "amount": amount}
            )
        self.gateway.check(account, amount)
        state["balance"] = safe_math.sub(state["balance"], amount)
        self._save(state)
        self._outbox.append((account, amount))

    def pending_payments(self) -> List[Tuple[str, int]]:
        return list(self._outbox)

    def flush(self) -> List[Tuple[str, int]]:
        """
        Deliver queued payments; call only after the operation committed.

        Each payment is sent on its own so one failure does not hold back
        the rest. Returns the payments the gateway failed to deliver; the
        caller turns them into credits with credit_undelivered().
        """
        queued, self._outbox = self._outbox, []
        undelivered = []
        for account, amount in queued:
            try:
                self.gateway.send(account, amount)
            except Exception as e:
                self.logger.error(f"Delivery of {amount} to {account} failed after commit: {e}")
                undelivered.append((account, amount))
        return undelivered

    def credit_undelivered(self, account: str, amount: int) -> None:
        """Return a failed delivery to the balance as a withdrawable credit"""
        state = self._load()
        state["balance"] = safe_math.add(state["balance"], amount)
        self._save(state)
        self._add_credit(account, amount)

    def discard(self) -> None:
        self._outbox = []
