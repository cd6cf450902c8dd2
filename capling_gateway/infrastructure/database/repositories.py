"""Data access layer implementing the ledger store on SQLAlchemy"""

import logging
from typing import List, Optional
from sqlalchemy import select, text, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from capling_gateway.config import settings
from capling_gateway.domain.exceptions import DatabaseError, NotFoundError
from capling_gateway.domain.models import (
    Account,
    Classification,
    JustificationStatus,
    NewTransaction,
    Transaction,
    TransactionType,
)
from capling_gateway.domain.ports import LedgerStore
from capling_gateway.infrastructure.database.models import AccountRecord, TransactionRecord, UserProfileRecord
from capling_gateway.utils.date_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


def to_account(record: AccountRecord) -> Account:
    return Account(
        id=record.id,
        user_id=record.user_id,
        account_name=record.account_name,
        account_type=record.account_type,
        balance_cents=record.balance_cents,
        version=record.version,
        created_at=ensure_utc(record.created_at) if record.created_at else None,
    )


def to_transaction(record: TransactionRecord) -> Transaction:
    return Transaction(
        id=record.id,
        user_id=record.user_id,
        account_id=record.account_id,
        merchant=record.merchant,
        amount_cents=record.amount_cents,
        category=record.category,
        type=TransactionType(record.type),
        classification=Classification(record.classification),
        original_classification=Classification(record.original_classification),
        final_classification=Classification(record.final_classification),
        justification_status=JustificationStatus(record.justification_status),
        occurred_at=ensure_utc(record.occurred_at),
        description=record.description,
        reflection=record.reflection,
        improvement_suggestion=record.improvement_suggestion,
        justification=record.justification,
        created_at=ensure_utc(record.created_at) if record.created_at else None,
        updated_at=ensure_utc(record.updated_at) if record.updated_at else None,
    )


class SqlLedgerStore(LedgerStore):
    """Ledger store backed by a SQLAlchemy session; the caller owns commit/rollback"""

    def __init__(
        self,
        db: Session,
        starting_balance_cents: Optional[int] = None,
        default_weekly_budget_cents: Optional[int] = None,
    ):
        self.db = db
        self.starting_balance_cents = (
            settings.default_starting_balance_cents if starting_balance_cents is None else starting_balance_cents
        )
        self.default_weekly_budget_cents = (
            settings.default_weekly_budget_cents
            if default_weekly_budget_cents is None
            else default_weekly_budget_cents
        )

    def _first_account(self, user_id: str, account_id: Optional[str] = None) -> Optional[AccountRecord]:
        query = select(AccountRecord).where(AccountRecord.user_id == user_id)
        if account_id:
            query = query.where(AccountRecord.id == account_id)
        query = query.order_by(AccountRecord.created_at.asc(), AccountRecord.id.asc()).limit(1)
        return self.db.scalars(query).first()

    def get_or_create_account(self, user_id: str, account_id: Optional[str] = None) -> Account:
        try:
            record = self._first_account(user_id, account_id)
            if record:
                return to_account(record)

            if account_id and self._first_account(user_id) is not None:
                raise NotFoundError("Account")

            record = self.create_default_account(user_id)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to create account: {e}", str(e)) from e

        return to_account(record)

    def create_default_account(self, user_id: str) -> AccountRecord:
        """
        Insert the user's default account, or return the one that already exists.

        The partial unique index on (user_id) WHERE is_default turns a
        concurrent duplicate insert into a no-op.
        """
        insert = sqlite_insert if self.db.get_bind().dialect.name == "sqlite" else postgresql_insert
        result = self.db.execute(
            insert(AccountRecord)
            .values(
                user_id=user_id,
                account_name="Main Checking",
                account_type="checking",
                balance_cents=self.starting_balance_cents,
                is_default=True,
            )
            .on_conflict_do_nothing(index_elements=["user_id"], index_where=text("is_default"))
        )
        record = self.db.scalars(
            select(AccountRecord).where(AccountRecord.user_id == user_id, AccountRecord.is_default.is_(True))
        ).one()

        if result.rowcount:
            logger.info("Created default account", extra={"user_id": user_id, "account_id": record.id})
        return record

    def find_account(self, user_id: str, account_id: Optional[str] = None) -> Optional[Account]:
        try:
            record = self._first_account(user_id, account_id)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to fetch account: {e}", str(e)) from e
        return to_account(record) if record else None

    def insert_transaction(self, row: NewTransaction) -> Transaction:
        """Stage a transaction row; classification columns start identical"""
        record = TransactionRecord(
            user_id=row.user_id,
            account_id=row.account_id,
            merchant=row.merchant,
            amount_cents=row.amount_cents,
            category=row.category,
            type=row.type.value,
            classification=row.classification.value,
            original_classification=row.classification.value,
            final_classification=row.classification.value,
            justification_status=row.justification_status.value,
            reflection=row.reflection,
            improvement_suggestion=row.improvement_suggestion,
            description=row.description,
            occurred_at=row.occurred_at,
        )
        try:
            self.db.add(record)
            self.db.flush()  # Get ID without committing
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to create transaction: {e}", str(e)) from e
        return to_transaction(record)

    def apply_balance_delta(self, account_id: str, delta_cents: int) -> int:
        """In-database increment so concurrent writers cannot lose updates"""
        try:
            result = self.db.execute(
                update(AccountRecord)
                .where(AccountRecord.id == account_id)
                .values(
                    balance_cents=AccountRecord.balance_cents + delta_cents,
                    version=AccountRecord.version + 1,
                    updated_at=utc_now(),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise DatabaseError("Failed to update account balance: account missing", {"account_id": account_id})

            new_balance = self.db.scalar(
                select(AccountRecord.balance_cents).where(AccountRecord.id == account_id)
            )
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to update account balance: {e}", str(e)) from e

        # Keep identity-mapped account objects consistent with the row
        for obj in self.db.identity_map.values():
            if isinstance(obj, AccountRecord) and obj.id == account_id:
                self.db.expire(obj)
        return new_balance

    def list_transactions(
        self, user_id: str, limit: Optional[int] = None, account_id: Optional[str] = None
    ) -> List[Transaction]:
        query = select(TransactionRecord).where(TransactionRecord.user_id == user_id)
        if account_id:
            query = query.where(TransactionRecord.account_id == account_id)
        query = query.order_by(TransactionRecord.occurred_at.desc(), TransactionRecord.created_at.desc())
        if limit is not None:
            query = query.limit(limit)
        try:
            return [to_transaction(r) for r in self.db.scalars(query).all()]
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to fetch transactions: {e}", str(e)) from e

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        try:
            record = self.db.get(TransactionRecord, transaction_id)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to fetch transaction: {e}", str(e)) from e
        return to_transaction(record) if record else None

    def resolve_justification(
        self,
        transaction_id: str,
        status: JustificationStatus,
        final_classification: Classification,
        justification: str,
        reflection: Optional[str] = None,
    ) -> Optional[Transaction]:
        values = {
            "justification_status": status.value,
            "final_classification": final_classification.value,
            "justification": justification,
            "updated_at": utc_now(),
        }
        if reflection:
            values["reflection"] = reflection

        try:
            result = self.db.execute(
                update(TransactionRecord)
                .where(
                    TransactionRecord.id == transaction_id,
                    TransactionRecord.justification_status == JustificationStatus.PENDING.value,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            record = self.db.get(TransactionRecord, transaction_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to update transaction: {e}", str(e)) from e
        return to_transaction(record)

    def get_weekly_budget(self, user_id: str) -> int:
        try:
            profile = self.db.get(UserProfileRecord, user_id)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to fetch user profile: {e}", str(e)) from e
        return profile.weekly_budget_cents if profile else self.default_weekly_budget_cents

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(f"Failed to commit: {e}", str(e)) from e

    def rollback(self) -> None:
        self.db.rollback()
