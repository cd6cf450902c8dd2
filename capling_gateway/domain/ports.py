"""Collaborator interfaces the core depends on"""

from abc import ABC, abstractmethod
from typing import List, Optional

from capling_gateway.domain.classification import ReasonerResult
from capling_gateway.domain.models import (
    Account,
    Classification,
    JustificationStatus,
    NewTransaction,
    Transaction,
)


class LedgerStore(ABC):
    """
    Durable account/transaction storage.

    Writes are staged in a unit of work and become durable on commit().
    Any failure raises DatabaseError.
    """

    @abstractmethod
    def get_or_create_account(self, user_id: str, account_id: Optional[str] = None) -> Account:
        """Return the user's first account, creating a default one if the user has none"""

    @abstractmethod
    def find_account(self, user_id: str, account_id: Optional[str] = None) -> Optional[Account]:
        """Read-only account lookup"""

    @abstractmethod
    def insert_transaction(self, row: NewTransaction) -> Transaction:
        pass

    @abstractmethod
    def apply_balance_delta(self, account_id: str, delta_cents: int) -> int:
        """Atomically add delta to the stored balance; returns the new balance"""

    @abstractmethod
    def list_transactions(
        self, user_id: str, limit: Optional[int] = None, account_id: Optional[str] = None
    ) -> List[Transaction]:
        """Newest first; no limit returns the full history"""

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        pass

    @abstractmethod
    def resolve_justification(
        self,
        transaction_id: str,
        status: JustificationStatus,
        final_classification: Classification,
        justification: str,
        reflection: Optional[str] = None,
    ) -> Optional[Transaction]:
        """Apply the outcome only if the transaction is still pending; None otherwise"""

    @abstractmethod
    def get_weekly_budget(self, user_id: str) -> int:
        pass

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass


class Reasoner(ABC):
    """External reasoning service; never raises, returns a result value"""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        timeout_seconds: float,
        system_prompt: Optional[str] = None,
    ) -> ReasonerResult:
        pass
