"""Justification workflow - re-evaluate flagged transactions"""

import logging
from datetime import datetime
from typing import Optional

from capling_gateway.config import settings
from capling_gateway.domain.classification import ReasonerFailure, parse_justification_verdict
from capling_gateway.domain.exceptions import ConflictError, ExternalServiceError, NotFoundError
from capling_gateway.domain.models import (
    BudgetAdjustment,
    Classification,
    JustificationOutcome,
    JustificationStatus,
    JustificationVerdict,
    Transaction,
)
from capling_gateway.domain.mood import weekly_spending
from capling_gateway.domain.ports import LedgerStore, Reasoner
from capling_gateway.domain.validation import validate_justification_text, validate_required, validate_user_access
from capling_gateway.infrastructure.observability.metrics import justification_outcome_counter
from capling_gateway.services.classification import format_dollars
from capling_gateway.utils.retry import with_retry

logger = logging.getLogger(__name__)

RETRYABLE_FAILURES = {"timeout", "http_status", "network"}

NECESSITY_KEYWORDS = (
    "need", "emergency", "medical", "doctor", "work", "rent", "bill", "gift",
    "school", "repair", "required", "essential", "birthday", "family",
)
MIN_RULE_JUSTIFICATION_LENGTH = 15

JUSTIFICATION_SYSTEM_PROMPT = (
    "You are a fair but supportive financial coach reviewing a user's explanation for a purchase. "
    "Always respond with valid JSON only, using exactly these keys: "
    '"isValid" (true or false), "reasoning" (short explanation), '
    '"newReflection" (one or two sentences addressed to the user).'
)


def build_justification_prompt(transaction: Transaction, justification: str) -> str:
    return (
        "Decide whether this explanation makes the purchase reasonable.\n\n"
        f"Merchant: {transaction.merchant}\n"
        f"Amount: {format_dollars(transaction.amount_cents)}\n"
        f"Category: {transaction.category}\n"
        f"Original classification: {transaction.original_classification.value}\n"
        f"User explanation: {justification}"
    )


def evaluate_justification_by_rule(justification: str) -> JustificationVerdict:
    """Deterministic verdict used when the reasoner cannot answer"""
    text = justification.lower()
    mentions_necessity = any(keyword in text for keyword in NECESSITY_KEYWORDS)

    if len(justification) >= MIN_RULE_JUSTIFICATION_LENGTH and mentions_necessity:
        return JustificationVerdict(
            is_valid=True,
            reasoning="Explanation describes a genuine need",
            new_reflection="Thanks for explaining - that sounds like a necessary expense.",
        )
    return JustificationVerdict(
        is_valid=False,
        reasoning="Explanation does not describe a clear need",
        new_reflection="Thanks for reflecting on this purchase. Try to keep similar spending in check.",
    )


class JustificationWorkflow:
    """Resolves a pending justification exactly once"""

    def __init__(
        self,
        store: LedgerStore,
        reasoner: Reasoner,
        timeout_seconds: Optional[float] = None,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ):
        self.store = store
        self.reasoner = reasoner
        self.timeout_seconds = timeout_seconds or settings.justification_timeout_seconds
        self.max_attempts = max_attempts or settings.retry_max_attempts
        self.retry_delay = settings.retry_delay_seconds if retry_delay is None else retry_delay

    async def justify(
        self,
        user_id: str,
        transaction_id: str,
        justification: str,
        now: Optional[datetime] = None,
    ) -> JustificationOutcome:
        validate_required(user_id, "userId")
        validate_required(transaction_id, "transactionId")
        text = validate_justification_text(justification)

        transaction = self.store.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction")
        validate_user_access(user_id, transaction.user_id)
        if transaction.justification_status != JustificationStatus.PENDING:
            raise ConflictError(
                "Transaction is not awaiting justification",
                {"justification_status": transaction.justification_status.value},
            )

        verdict = await self._evaluate(transaction, text)
        status = JustificationStatus.JUSTIFIED if verdict.is_valid else JustificationStatus.REJECTED
        final_classification = (
            Classification.RESPONSIBLE if verdict.is_valid else transaction.final_classification
        )

        try:
            updated = self.store.resolve_justification(
                transaction_id, status, final_classification, text, verdict.new_reflection
            )
            if updated is None:
                raise ConflictError("Transaction was justified concurrently")
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        justification_outcome_counter.labels(outcome=status.value).inc()

        return JustificationOutcome(
            transaction=updated,
            verdict=verdict,
            budget_adjustment=self._budget_adjustment(updated, verdict, now),
        )

    async def _evaluate(self, transaction: Transaction, justification: str) -> JustificationVerdict:
        prompt = build_justification_prompt(transaction, justification)

        async def attempt() -> Optional[JustificationVerdict]:
            try:
                result = await self.reasoner.complete(prompt, self.timeout_seconds, JUSTIFICATION_SYSTEM_PROMPT)
            except Exception as e:
                logger.error(
                    f"Justification analysis raised: {e}",
                    extra={"transaction_id": transaction.id, "error_type": type(e).__name__},
                )
                return None
            if isinstance(result, ReasonerFailure):
                if result.reason in RETRYABLE_FAILURES:
                    raise ExternalServiceError("Reasoner", result.detail or result.reason, {"reason": result.reason})
                return None
            return parse_justification_verdict(result.text)

        try:
            verdict = await with_retry(attempt, self.max_attempts, self.retry_delay)
        except ExternalServiceError as e:
            logger.warning(
                "Justification analysis failed after retries",
                extra={"transaction_id": transaction.id, "error": e.message},
            )
            verdict = None

        if verdict is None:
            logger.info("Using rule-based justification verdict", extra={"transaction_id": transaction.id})
            return evaluate_justification_by_rule(justification)
        return verdict

    def _budget_adjustment(
        self, transaction: Transaction, verdict: JustificationVerdict, now: Optional[datetime]
    ) -> BudgetAdjustment:
        """Suggest a budget that covers this week's spending; nothing is changed"""
        if not verdict.is_valid:
            return BudgetAdjustment()

        spent = weekly_spending(self.store.list_transactions(transaction.user_id), now)
        budget = self.store.get_weekly_budget(transaction.user_id)
        if spent <= budget:
            return BudgetAdjustment()

        suggested = -(-spent // 100) * 100  # Round up to a whole dollar
        return BudgetAdjustment(
            adjusted=False,
            suggested_budget_cents=suggested,
            reason=(
                f"Weekly spending of {format_dollars(spent)} exceeds your budget of "
                f"{format_dollars(budget)}; consider a budget of {format_dollars(suggested)}"
            ),
        )
