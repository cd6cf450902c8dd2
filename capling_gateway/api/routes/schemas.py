"""Pydantic schemas for API request/response validation"""

from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from capling_gateway.domain.models import Badge, BudgetAdjustment, InsightsSummary, JustificationVerdict, Transaction
from capling_gateway.utils.date_utils import ensure_utc, to_epoch_millis


class CamelModel(BaseModel):
    """Accepts and emits camelCase field names"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def cents_to_dollars(cents: int) -> float:
    return round(cents / 100, 2)


class CreateTransactionRequest(CamelModel):
    """Request body for POST /transactions; amount is signed dollars, negative = deposit"""

    user_id: Optional[str] = None
    account_id: Optional[str] = None
    merchant: Optional[str] = None
    amount: Optional[Decimal] = None
    category: Optional[str] = None
    description: Optional[str] = None
    timestamp: Optional[int] = None  # epoch milliseconds


class TransactionSchema(CamelModel):
    id: str
    user_id: str
    account_id: str
    merchant: str
    amount: float
    category: str
    type: str
    classification: str
    original_classification: str
    final_classification: str
    justification_status: str
    justification: Optional[str] = None
    reflection: Optional[str] = None
    improvement_suggestion: Optional[str] = None
    description: Optional[str] = None
    timestamp: int
    date: str
    created_at: Optional[str] = None


class AnalysisSchema(CamelModel):
    classification: str
    reflection: str


class CreateTransactionResponse(CamelModel):
    """Response for POST /transactions"""

    success: bool = True
    transaction: TransactionSchema
    new_balance: float
    analysis: AnalysisSchema
    should_show_goal_allocation: bool
    xp_awarded: int = 0


class TransactionListResponse(CamelModel):
    """Response for GET /transactions"""

    success: bool = True
    data: List[TransactionSchema]


class JustifyTransactionRequest(CamelModel):
    user_id: Optional[str] = None
    justification: Optional[str] = None


class JustificationAnalysisSchema(CamelModel):
    is_valid: bool
    reasoning: str
    new_reflection: str


class BudgetAdjustmentSchema(CamelModel):
    adjusted: bool
    suggested_budget: Optional[float] = None
    reason: Optional[str] = None


class JustifyTransactionResponse(CamelModel):
    """Response for POST /transactions/{transaction_id}/justification"""

    success: bool = True
    transaction: TransactionSchema
    justification_analysis: JustificationAnalysisSchema
    budget_adjustment: BudgetAdjustmentSchema


class BadgeSchema(CamelModel):
    id: str
    title: str
    description: str
    emoji: str
    category: str
    earned: bool


class InsightsSchema(CamelModel):
    balance: float
    weekly_spending: float
    weekly_budget: float
    mood: str
    mood_score: int
    mood_message: str
    reflection_score: int
    badges: List[BadgeSchema]


class InsightsResponse(CamelModel):
    """Response for GET /insights"""

    success: bool = True
    data: InsightsSchema


class ErrorResponse(CamelModel):
    success: bool = False
    error: str
    code: str
    details: Optional[Any] = None


def to_transaction_schema(transaction: Transaction) -> TransactionSchema:
    occurred_at = ensure_utc(transaction.occurred_at)
    return TransactionSchema(
        id=transaction.id,
        user_id=transaction.user_id,
        account_id=transaction.account_id,
        merchant=transaction.merchant,
        amount=cents_to_dollars(transaction.amount_cents),
        category=transaction.category,
        type=transaction.type.value,
        classification=transaction.classification.value,
        original_classification=transaction.original_classification.value,
        final_classification=transaction.final_classification.value,
        justification_status=transaction.justification_status.value,
        justification=transaction.justification,
        reflection=transaction.reflection,
        improvement_suggestion=transaction.improvement_suggestion,
        description=transaction.description,
        timestamp=to_epoch_millis(occurred_at),
        date=occurred_at.isoformat(),
        created_at=transaction.created_at.isoformat() if transaction.created_at else None,
    )


def to_justification_analysis(verdict: JustificationVerdict) -> JustificationAnalysisSchema:
    return JustificationAnalysisSchema(
        is_valid=verdict.is_valid,
        reasoning=verdict.reasoning,
        new_reflection=verdict.new_reflection,
    )


def to_budget_adjustment(adjustment: BudgetAdjustment) -> BudgetAdjustmentSchema:
    return BudgetAdjustmentSchema(
        adjusted=adjustment.adjusted,
        suggested_budget=(
            cents_to_dollars(adjustment.suggested_budget_cents)
            if adjustment.suggested_budget_cents is not None
            else None
        ),
        reason=adjustment.reason,
    )


def to_badge_schema(badge: Badge) -> BadgeSchema:
    return BadgeSchema(
        id=badge.id,
        title=badge.title,
        description=badge.description,
        emoji=badge.emoji,
        category=badge.category,
        earned=badge.earned,
    )


def to_insights_schema(summary: InsightsSummary) -> InsightsSchema:
    return InsightsSchema(
        balance=cents_to_dollars(summary.balance_cents),
        weekly_spending=cents_to_dollars(summary.weekly_spending_cents),
        weekly_budget=cents_to_dollars(summary.weekly_budget_cents),
        mood=summary.mood.mood.value,
        mood_score=summary.mood.score,
        mood_message=summary.mood.message,
        reflection_score=summary.reflection_score,
        badges=[to_badge_schema(b) for b in summary.badges],
    )
