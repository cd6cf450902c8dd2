"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from capling_gateway.domain.ports import LedgerStore, Reasoner
from capling_gateway.infrastructure.clients.reasoner import OpenAIReasoner
from capling_gateway.infrastructure.database.repositories import SqlLedgerStore
from capling_gateway.infrastructure.database.session import get_db
from capling_gateway.services.classification import ClassificationService
from capling_gateway.services.insights import InsightsService
from capling_gateway.services.justification import JustificationWorkflow
from capling_gateway.services.transactions import TransactionProcessor


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_reasoner() -> Reasoner:
    """Provide reasoning service client instance"""
    return OpenAIReasoner()


def get_ledger_store(db: Session = Depends(get_db)) -> LedgerStore:
    return SqlLedgerStore(db)


def get_classification_service(reasoner: Reasoner = Depends(get_reasoner)) -> ClassificationService:
    return ClassificationService(reasoner)


def get_transaction_processor(
    store: LedgerStore = Depends(get_ledger_store),
    classifier: ClassificationService = Depends(get_classification_service),
) -> TransactionProcessor:
    return TransactionProcessor(store, classifier)


def get_justification_workflow(
    store: LedgerStore = Depends(get_ledger_store),
    reasoner: Reasoner = Depends(get_reasoner),
) -> JustificationWorkflow:
    return JustificationWorkflow(store, reasoner)


def get_insights_service(store: LedgerStore = Depends(get_ledger_store)) -> InsightsService:
    return InsightsService(store)
