"""
Administrator Role Module

A single privileged account allowed to create bags, withdraw the ledger's
funds and hand the role to someone else. Exactly one holder at any time.
"""

from typing import Optional

from .storage import StorageInterface
from .errors import InvalidRecipient, Unauthorized


class AdministratorRole:
    """Storage-backed single-holder role"""

    ROLE_ID = "administrator"

    def __init__(self, storage: StorageInterface, initial_holder: str):
        if not initial_holder:
            raise InvalidRecipient("An administrator account is required")
        self.storage = storage
        self.table_name = "roles"
        if not self.storage.exists(self.table_name, self.ROLE_ID):
            self.storage.save(self.table_name, self.ROLE_ID, {"account": initial_holder})

    @property
    def holder(self) -> str:
        return self.storage.load(self.table_name, self.ROLE_ID)["account"]

    def is_administrator(self, account: Optional[str]) -> bool:
        return account is not None and account == self.holder

    def require(self, caller: Optional[str]) -> None:
        if not self.is_administrator(caller):
            raise Unauthorized(
                f"{caller} is not the administrator",
                {"caller": caller}
            )

    def set_administrator(self, caller: Optional[str], new_account: Optional[str]) -> str:
        """Replace the holder; returns the previous holder"""
        self.require(caller)
        if not new_account:
            raise InvalidRecipient("New administrator account is required")
        previous = self.holder
        self.storage.save(self.table_name, self.ROLE_ID, {"account": new_account})
        return previous
