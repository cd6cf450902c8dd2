"""Pytest fixtures for testing"""

import json
import os

# Must be set before capling_gateway.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RETRY_DELAY_SECONDS", "0")

import pytest
from datetime import datetime, timedelta, timezone
from typing import Generator, List, Optional
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from capling_gateway.api.dependencies import get_reasoner
from capling_gateway.api.main import create_app
from capling_gateway.domain.classification import ReasonerFailure, ReasonerResult, ReasonerSuccess
from capling_gateway.domain.models import (
    Classification,
    JustificationStatus,
    Transaction,
    TransactionType,
)
from capling_gateway.domain.ports import Reasoner
from capling_gateway.infrastructure.database.models import Base, AccountRecord
from capling_gateway.infrastructure.database.repositories import SqlLedgerStore
from capling_gateway.infrastructure.database.session import get_db


# Test database
engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def verdict_json(classification: str, reflection: str = "Noted.", confidence: float = 0.9) -> str:
    return json.dumps(
        {
            "classification": classification,
            "reflection": reflection,
            "confidence": confidence,
            "reasoning": "test",
            "improvement_suggestion": None,
        }
    )


class ScriptedReasoner(Reasoner):
    """Replays scripted results in order; the last one repeats"""

    def __init__(self, *results: ReasonerResult):
        self.results: List[ReasonerResult] = list(results)
        self.prompts: List[str] = []

    def script(self, *results: ReasonerResult) -> None:
        self.results = list(results)

    async def complete(self, prompt: str, timeout_seconds: float, system_prompt: Optional[str] = None):
        self.prompts.append(prompt)
        if not self.results:
            return ReasonerFailure("not_configured", "nothing scripted")
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store(db: Session) -> SqlLedgerStore:
    return SqlLedgerStore(db)


@pytest.fixture
def reasoner() -> ScriptedReasoner:
    return ScriptedReasoner(ReasonerSuccess(verdict_json("responsible")))


@pytest.fixture
def make_account(db: Session):
    """Insert an account with a known balance"""

    def _make(user_id: str = "user_1", balance_cents: int = 10_000) -> AccountRecord:
        record = AccountRecord(user_id=user_id, balance_cents=balance_cents)
        db.add(record)
        db.commit()
        return record

    return _make


@pytest.fixture
def make_transaction():
    """Build domain transactions for pure scoring tests"""
    counter = {"n": 0}

    def _make(
        amount_cents: int = 1_000,
        classification: Classification = Classification.RESPONSIBLE,
        type: TransactionType = TransactionType.DEBIT,
        days_ago: float = 1,
        merchant: str = "Store",
        description: Optional[str] = None,
        now: datetime = NOW,
    ) -> Transaction:
        counter["n"] += 1
        return Transaction(
            id=f"tx_{counter['n']}",
            user_id="user_1",
            account_id="acct_1",
            merchant=merchant,
            amount_cents=amount_cents,
            category="shopping",
            type=type,
            classification=classification,
            original_classification=classification,
            final_classification=classification,
            justification_status=JustificationStatus.NONE,
            occurred_at=now - timedelta(days=days_ago),
            description=description,
        )

    return _make


@pytest.fixture
def client(db: Session, reasoner: ScriptedReasoner) -> TestClient:
    """Create FastAPI test client with test database and scripted reasoner"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_reasoner] = lambda: reasoner
    return TestClient(app)
