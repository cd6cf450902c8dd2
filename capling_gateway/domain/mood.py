"""Mood scoring engine - behavioral feedback derived from transaction history"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from capling_gateway.domain.models import Classification, Mood, MoodResult, Transaction, TransactionType
from capling_gateway.utils.date_utils import is_within_window, utc_now

MOOD_MESSAGES = {
    Mood.HAPPY: "Great job! Keep it up!",
    Mood.NEUTRAL: "You're doing okay!",
    Mood.WORRIED: "Let's be more careful!",
    Mood.SAD: "We can do better!",
    Mood.DEPRESSED: "We need to fix this!",
}


@dataclass(frozen=True)
class MoodThresholds:
    """Tunable constants for mood scoring; amounts in cents"""

    baseline_balance_cents: int = 100_000
    lookback_days: int = 7
    large_transaction_cents: int = 10_000

    starting_score: int = 50

    # (upper bound on budget percentage, adjustment); first match wins
    budget_bands: tuple = ((50, 20), (80, 10), (100, -10))
    budget_exceeded_adjustment: int = -30

    # (lower bound on responsible ratio, adjustment); first match wins
    responsibility_bands: tuple = ((0.7, 15), (0.5, 5), (0.3, -10))
    responsibility_floor_adjustment: int = -20

    frequent_irresponsible_count: int = 3
    frequent_irresponsible_adjustment: int = -15
    high_irresponsible_ratio: float = 0.6
    high_irresponsible_adjustment: int = -10
    large_transaction_count: int = 2
    large_transaction_adjustment: int = -10
    over_budget_adjustment: int = -15

    # (minimum score, mood); first match wins, anything lower is sad
    mood_bands: tuple = ((70, Mood.HAPPY), (45, Mood.NEUTRAL), (25, Mood.WORRIED))


DEFAULT_MOOD_THRESHOLDS = MoodThresholds()


@dataclass
class MoodFactors:
    """Signals extracted from history that feed the mood score"""

    budget_percentage: float
    responsible_ratio: float
    irresponsible_count: int
    large_count: int
    over_budget: bool
    high_irresponsible_ratio: bool
    recent_count: int


def running_balance(transactions: Sequence[Transaction], baseline_cents: int) -> int:
    """Fold every transaction onto the baseline balance"""
    return baseline_cents + sum(t.signed_amount_cents for t in transactions)


def recent_transactions(
    transactions: Sequence[Transaction],
    now: Optional[datetime] = None,
    days: int = 7,
) -> List[Transaction]:
    now = now or utc_now()
    return [t for t in transactions if is_within_window(t.occurred_at, days, now)]


def weekly_spending(transactions: Sequence[Transaction], now: Optional[datetime] = None, days: int = 7) -> int:
    """Total debits in the trailing window, in cents"""
    return sum(
        t.amount_cents for t in recent_transactions(transactions, now, days) if t.type == TransactionType.DEBIT
    )


def budget_percentage(weekly_spending_cents: int, weekly_budget_cents: int) -> float:
    if weekly_budget_cents <= 0:
        return math.inf if weekly_spending_cents > 0 else 0.0
    return 100 * weekly_spending_cents / weekly_budget_cents


def reflection_score(transactions: Sequence[Transaction]) -> int:
    """Share of responsible transactions as a 0-100 percentage (75 with no history)"""
    if not transactions:
        return 75
    responsible = sum(1 for t in transactions if t.classification == Classification.RESPONSIBLE)
    return round(100 * responsible / len(transactions))


def analyze_mood_factors(
    transactions: Sequence[Transaction],
    weekly_spending_cents: int,
    weekly_budget_cents: int,
    now: Optional[datetime] = None,
    thresholds: MoodThresholds = DEFAULT_MOOD_THRESHOLDS,
) -> MoodFactors:
    recent = recent_transactions(transactions, now, thresholds.lookback_days)
    total_recent = len(recent)

    responsible_count = sum(1 for t in recent if t.classification == Classification.RESPONSIBLE)
    irresponsible_count = sum(1 for t in recent if t.classification == Classification.IRRESPONSIBLE)
    pct = budget_percentage(weekly_spending_cents, weekly_budget_cents)

    return MoodFactors(
        budget_percentage=pct,
        responsible_ratio=responsible_count / total_recent if total_recent > 0 else 0.5,
        irresponsible_count=irresponsible_count,
        large_count=sum(1 for t in recent if t.amount_cents > thresholds.large_transaction_cents),
        over_budget=pct > 100,
        high_irresponsible_ratio=(
            total_recent > 0 and irresponsible_count / total_recent > thresholds.high_irresponsible_ratio
        ),
        recent_count=total_recent,
    )


def calculate_mood_score(factors: MoodFactors, thresholds: MoodThresholds = DEFAULT_MOOD_THRESHOLDS) -> int:
    """
    Additive mood score, clamped to 0-100.

    Components, applied in order:
    - Budget factor: how much of the weekly budget is used
    - Responsibility factor: share of responsible transactions this week
    - Pattern penalties: each applied independently
    """
    score = thresholds.starting_score

    for upper, adjustment in thresholds.budget_bands:
        if factors.budget_percentage < upper:
            score += adjustment
            break
    else:
        score += thresholds.budget_exceeded_adjustment

    for lower, adjustment in thresholds.responsibility_bands:
        if factors.responsible_ratio > lower:
            score += adjustment
            break
    else:
        score += thresholds.responsibility_floor_adjustment

    if factors.irresponsible_count >= thresholds.frequent_irresponsible_count:
        score += thresholds.frequent_irresponsible_adjustment
    if factors.high_irresponsible_ratio:
        score += thresholds.high_irresponsible_adjustment
    if factors.large_count > thresholds.large_transaction_count:
        score += thresholds.large_transaction_adjustment
    if factors.over_budget:
        score += thresholds.over_budget_adjustment

    return max(0, min(100, score))


def determine_mood(score: int, thresholds: MoodThresholds = DEFAULT_MOOD_THRESHOLDS) -> Mood:
    for minimum, mood in thresholds.mood_bands:
        if score >= minimum:
            return mood
    return Mood.SAD


def calculate_mood(
    transactions: Sequence[Transaction],
    weekly_spending_cents: int,
    weekly_budget_cents: int,
    now: Optional[datetime] = None,
    thresholds: MoodThresholds = DEFAULT_MOOD_THRESHOLDS,
) -> MoodResult:
    """
    Main entry point: derive mood and score from history and weekly budget.

    A negative running balance means depressed, whatever else is going on.
    An empty history is neutral without scoring.
    """
    if not transactions:
        return _result(Mood.NEUTRAL, thresholds.starting_score)

    if running_balance(transactions, thresholds.baseline_balance_cents) < 0:
        return _result(Mood.DEPRESSED, 0)

    factors = analyze_mood_factors(transactions, weekly_spending_cents, weekly_budget_cents, now, thresholds)
    score = calculate_mood_score(factors, thresholds)
    return _result(determine_mood(score, thresholds), score)


def _result(mood: Mood, score: int) -> MoodResult:
    return MoodResult(mood=mood, score=score, message=MOOD_MESSAGES[mood])
