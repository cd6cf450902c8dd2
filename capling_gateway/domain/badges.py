"""Badge rule table and evaluation"""

from dataclasses import dataclass
from typing import List, Sequence

from capling_gateway.domain.models import Badge, BadgeRule, BadgeStats, Classification, Transaction

COFFEE_KEYWORDS = ("coffee", "cafe", "café", "starbucks", "espresso", "latte", "dunkin", "tim hortons")


@dataclass(frozen=True)
class BadgeThresholds:
    """Tunable badge conditions; amounts in cents"""

    first_transaction_count: int = 1
    coffee_purchase_count: int = 5
    responsible_purchase_count: int = 10
    account_balance_cents: int = 100_000
    tracker_transaction_count: int = 25
    budget_master_transaction_count: int = 20
    goal_crusher_transaction_count: int = 15


DEFAULT_BADGE_THRESHOLDS = BadgeThresholds()


def _within_budget(s: BadgeStats) -> bool:
    return s.weekly_spending_cents <= s.weekly_budget_cents


# Ordered; add badges by appending rows
BADGE_RULES: Sequence[BadgeRule] = (
    BadgeRule(
        "first-transaction", "Getting Started", "Made your first transaction", "🎯", "milestone",
        lambda s, t: s.transaction_count >= t.first_transaction_count,
    ),
    BadgeRule(
        "smart-spender", "Smart Spender", "Stayed under budget for a week", "💰", "spending",
        lambda s, t: _within_budget(s),
    ),
    BadgeRule(
        "coffee-lover", "Coffee Lover", "Made 5+ coffee purchases", "☕", "spending",
        lambda s, t: s.coffee_transaction_count >= t.coffee_purchase_count,
    ),
    BadgeRule(
        "responsible-shopper", "Responsible Shopper", "Made 10+ responsible purchases", "🛡️", "spending",
        lambda s, t: s.responsible_transaction_count >= t.responsible_purchase_count,
    ),
    BadgeRule(
        "account-builder", "Account Builder", "Built your account balance to $1000+", "🏦", "saving",
        lambda s, t: s.current_balance_cents >= t.account_balance_cents,
    ),
    BadgeRule(
        "transaction-tracker", "Transaction Tracker", "Tracked 25+ transactions", "📊", "milestone",
        lambda s, t: s.transaction_count >= t.tracker_transaction_count,
    ),
    BadgeRule(
        "budget-master", "Budget Master", "Mastered your budget management", "👑", "spending",
        lambda s, t: s.transaction_count >= t.budget_master_transaction_count and _within_budget(s),
    ),
    BadgeRule(
        "goal-crusher", "Goal Crusher", "Making progress toward your goals", "🎯", "saving",
        lambda s, t: s.transaction_count >= t.goal_crusher_transaction_count,
    ),
)


def is_coffee_transaction(transaction: Transaction) -> bool:
    text = f"{transaction.merchant} {transaction.description or ''}".lower()
    return any(keyword in text for keyword in COFFEE_KEYWORDS)


def build_badge_stats(
    transactions: Sequence[Transaction],
    current_balance_cents: int,
    weekly_spending_cents: int,
    weekly_budget_cents: int,
) -> BadgeStats:
    return BadgeStats(
        transaction_count=len(transactions),
        current_balance_cents=current_balance_cents,
        weekly_spending_cents=weekly_spending_cents,
        weekly_budget_cents=weekly_budget_cents,
        coffee_transaction_count=sum(1 for t in transactions if is_coffee_transaction(t)),
        responsible_transaction_count=sum(
            1 for t in transactions if t.classification == Classification.RESPONSIBLE
        ),
    )


def evaluate_badges(
    stats: BadgeStats,
    rules: Sequence[BadgeRule] = BADGE_RULES,
    thresholds: BadgeThresholds = DEFAULT_BADGE_THRESHOLDS,
) -> List[Badge]:
    """Evaluate every rule against the same stats, preserving table order"""
    return [
        Badge(
            id=rule.id,
            title=rule.title,
            description=rule.description,
            emoji=rule.emoji,
            category=rule.category,
            earned=bool(rule.rule(stats, thresholds)),
        )
        for rule in rules
    ]
