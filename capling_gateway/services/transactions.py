"""Transaction processing - classify, persist and apply to the ledger"""

import logging
from datetime import datetime
from typing import List, Optional

from capling_gateway.domain.classification import (
    ReasonerFailure,
    deposit_classification,
    fallback_classification,
    needs_justification,
    should_show_goal_allocation,
)
from capling_gateway.domain.models import (
    Account,
    ClassificationResult,
    JustificationStatus,
    NewTransaction,
    ProcessedTransaction,
    Transaction,
    TransactionRequest,
    TransactionType,
)
from capling_gateway.domain.ports import LedgerStore
from capling_gateway.domain.progression import xp_for_transaction
from capling_gateway.domain.validation import validate_limit
from capling_gateway.infrastructure.observability.metrics import classifier_fallback_counter, record_transaction
from capling_gateway.services.classification import ClassificationService
from capling_gateway.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """Orchestrates one transaction submission as a single unit of work"""

    def __init__(self, store: LedgerStore, classifier: ClassificationService):
        self.store = store
        self.classifier = classifier

    async def process(self, request: TransactionRequest, now: Optional[datetime] = None) -> ProcessedTransaction:
        """
        Process a validated transaction request.

        Flow:
        1. Resolve (or lazily create) the user's account
        2. Classify: deposits are responsible, spends go to the reasoner
           with the fallback verdict on any failure
        3. Decide whether a justification is required
        4. Insert the transaction and apply the balance change, committed together
        """
        logger.info(
            "Processing transaction",
            extra={
                "user_id": request.user_id,
                "merchant": request.merchant,
                "amount_cents": request.amount_cents,
                "category": request.category.value,
            },
        )

        try:
            account = self.store.get_or_create_account(request.user_id, request.account_id)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        analysis = await self._classify(request, account)

        requires_justification = needs_justification(request.is_deposit, analysis.classification)
        transaction_type = request.transaction_type
        amount_cents = request.transaction_amount_cents

        row = NewTransaction(
            user_id=request.user_id,
            account_id=account.id,
            merchant=request.merchant,
            amount_cents=amount_cents,
            category=request.category.value,
            type=transaction_type,
            classification=analysis.classification,
            justification_status=(
                JustificationStatus.PENDING if requires_justification else JustificationStatus.NONE
            ),
            occurred_at=request.occurred_at or now or utc_now(),
            description=request.description or request.merchant,
            reflection=analysis.reflection,
            improvement_suggestion=analysis.improvement_suggestion,
        )
        delta_cents = amount_cents if transaction_type == TransactionType.CREDIT else -amount_cents

        try:
            transaction = self.store.insert_transaction(row)
            new_balance_cents = self.store.apply_balance_delta(account.id, delta_cents)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        record_transaction(transaction_type.value, analysis.classification.value, requires_justification)

        return ProcessedTransaction(
            transaction=transaction,
            new_balance_cents=new_balance_cents,
            analysis=analysis,
            should_show_goal_allocation=should_show_goal_allocation(amount_cents, analysis.classification),
            xp_awarded=xp_for_transaction(request.is_deposit, analysis.classification),
        )

    async def _classify(self, request: TransactionRequest, account: Account) -> ClassificationResult:
        if request.is_deposit:
            logger.info(
                "Skipping LLM analysis for deposit",
                extra={"merchant": request.merchant, "amount_cents": request.transaction_amount_cents},
            )
            return deposit_classification()

        outcome = await self.classifier.classify(
            request.merchant,
            request.transaction_amount_cents,
            request.description or request.merchant,
            account.balance_cents,
        )

        if isinstance(outcome, ReasonerFailure):
            classifier_fallback_counter.labels(reason=outcome.reason).inc()
            logger.warning(
                "Classification unavailable, using fallback verdict",
                extra={"reason": outcome.reason, "detail": outcome.detail, "merchant": request.merchant},
            )
            return fallback_classification()

        return outcome

    def list_transactions(
        self, user_id: str, account_id: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Transaction]:
        """Most recent transactions, newest first; never creates accounts"""
        return self.store.list_transactions(user_id, validate_limit(limit), account_id)
