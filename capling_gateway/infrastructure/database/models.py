"""SQLAlchemy ORM models for accounts, transactions and user profiles"""

import uuid
from sqlalchemy import Column, String, BigInteger, Boolean, DateTime, Integer, ForeignKey, Text, Index, text
from sqlalchemy.orm import declarative_base, relationship

from capling_gateway.utils.date_utils import utc_now

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class AccountRecord(Base):
    """Ledger account; balance is kept in cents"""

    __tablename__ = "accounts"
    __table_args__ = (
        # At most one default account per user
        Index(
            "uq_accounts_default_user",
            "user_id",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default"),
        ),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(Text, nullable=False, index=True)
    account_name = Column(Text, nullable=False, default="Main Checking")
    account_type = Column(Text, nullable=False, default="checking")
    is_default = Column(Boolean, nullable=False, default=False)
    balance_cents = Column(BigInteger, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    transactions = relationship("TransactionRecord", back_populates="account")


class TransactionRecord(Base):
    """Single ledger entry with classification workflow columns"""

    __tablename__ = "transactions"
    __table_args__ = (Index("ix_transactions_user_occurred", "user_id", "occurred_at"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(Text, nullable=False)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    merchant = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    category = Column(Text, nullable=False)
    type = Column(Text, nullable=False)  # "credit" or "debit"
    classification = Column(Text, nullable=False)
    original_classification = Column(Text, nullable=False)
    final_classification = Column(Text, nullable=False)
    justification_status = Column(Text, nullable=False, default="none")
    justification = Column(Text, nullable=True)
    reflection = Column(Text, nullable=True)
    improvement_suggestion = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    account = relationship("AccountRecord", back_populates="transactions")


class UserProfileRecord(Base):
    """Per-user settings consumed by the scoring engine"""

    __tablename__ = "user_profiles"

    user_id = Column(Text, primary_key=True)
    weekly_budget_cents = Column(BigInteger, nullable=False, default=50_000)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
