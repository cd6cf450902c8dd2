"""Read-side behavioral insights: mood, reflection score and badges"""

from datetime import datetime
from typing import Optional

from capling_gateway.config import settings
from capling_gateway.domain.badges import DEFAULT_BADGE_THRESHOLDS, BadgeThresholds, build_badge_stats, evaluate_badges
from capling_gateway.domain.models import InsightsSummary
from capling_gateway.domain.mood import MoodThresholds, calculate_mood, reflection_score, weekly_spending
from capling_gateway.domain.ports import LedgerStore
from capling_gateway.utils.date_utils import utc_now


class InsightsService:
    """Pure read path; never writes to the store"""

    def __init__(
        self,
        store: LedgerStore,
        mood_thresholds: Optional[MoodThresholds] = None,
        badge_thresholds: BadgeThresholds = DEFAULT_BADGE_THRESHOLDS,
        starting_balance_cents: Optional[int] = None,
    ):
        self.store = store
        self.mood_thresholds = mood_thresholds or MoodThresholds(
            baseline_balance_cents=settings.mood_baseline_balance_cents
        )
        self.badge_thresholds = badge_thresholds
        self.starting_balance_cents = (
            settings.default_starting_balance_cents if starting_balance_cents is None else starting_balance_cents
        )

    def summarize(
        self, user_id: str, account_id: Optional[str] = None, now: Optional[datetime] = None
    ) -> InsightsSummary:
        now = now or utc_now()
        account = self.store.find_account(user_id, account_id)
        if account is None:
            transactions = []
            balance_cents = self.starting_balance_cents
        else:
            transactions = self.store.list_transactions(user_id, account_id=account.id)
            balance_cents = account.balance_cents

        spent = weekly_spending(transactions, now, self.mood_thresholds.lookback_days)
        budget = self.store.get_weekly_budget(user_id)

        stats = build_badge_stats(transactions, balance_cents, spent, budget)
        return InsightsSummary(
            balance_cents=balance_cents,
            weekly_spending_cents=spent,
            weekly_budget_cents=budget,
            mood=calculate_mood(transactions, spent, budget, now, self.mood_thresholds),
            reflection_score=reflection_score(transactions),
            badges=evaluate_badges(stats, thresholds=self.badge_thresholds),
        )
