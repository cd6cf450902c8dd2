"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional


class Classification(str, Enum):
    RESPONSIBLE = "responsible"
    IRRESPONSIBLE = "irresponsible"
    NEUTRAL = "neutral"


class JustificationStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    JUSTIFIED = "justified"
    REJECTED = "rejected"


class TransactionType(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class Category(str, Enum):
    SHOPPING = "shopping"
    FOOD = "food"
    TRANSPORT = "transport"
    BILLS = "bills"
    DINING = "dining"
    ENTERTAINMENT = "entertainment"
    HEALTH = "health"
    INCOME = "income"


class Mood(str, Enum):
    HAPPY = "happy"
    NEUTRAL = "neutral"
    WORRIED = "worried"
    SAD = "sad"
    DEPRESSED = "depressed"


@dataclass
class Account:
    """Ledger account owned by a single user"""

    id: str
    user_id: str
    account_name: str
    account_type: str
    balance_cents: int
    version: int = 0
    created_at: Optional[datetime] = None


@dataclass
class Transaction:
    """Committed ledger entry with its classification workflow state"""

    id: str
    user_id: str
    account_id: str
    merchant: str
    amount_cents: int  # always positive; direction lives in `type`
    category: str
    type: TransactionType
    classification: Classification
    original_classification: Classification
    final_classification: Classification
    justification_status: JustificationStatus
    occurred_at: datetime
    description: Optional[str] = None
    reflection: Optional[str] = None
    improvement_suggestion: Optional[str] = None
    justification: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def signed_amount_cents(self) -> int:
        return self.amount_cents if self.type == TransactionType.CREDIT else -self.amount_cents


@dataclass
class NewTransaction:
    """Row handed to the ledger store for insertion"""

    user_id: str
    account_id: str
    merchant: str
    amount_cents: int
    category: str
    type: TransactionType
    classification: Classification
    justification_status: JustificationStatus
    occurred_at: datetime
    description: Optional[str] = None
    reflection: Optional[str] = None
    improvement_suggestion: Optional[str] = None


@dataclass
class TransactionRequest:
    """Validated input for the transaction processor"""

    user_id: str
    merchant: str
    amount_cents: int  # signed: negative = deposit
    category: Category
    account_id: Optional[str] = None
    description: Optional[str] = None
    occurred_at: Optional[datetime] = None

    @property
    def is_deposit(self) -> bool:
        return self.amount_cents < 0

    @property
    def transaction_type(self) -> TransactionType:
        return TransactionType.CREDIT if self.is_deposit else TransactionType.DEBIT

    @property
    def transaction_amount_cents(self) -> int:
        return abs(self.amount_cents)


@dataclass
class ClassificationResult:
    """Verdict on a single transaction"""

    classification: Classification
    reflection: str
    confidence: float
    reasoning: str
    improvement_suggestion: Optional[str] = None


@dataclass
class ProcessedTransaction:
    """Output of the transaction processor"""

    transaction: Transaction
    new_balance_cents: int
    analysis: ClassificationResult
    should_show_goal_allocation: bool
    xp_awarded: int = 0


@dataclass
class JustificationVerdict:
    is_valid: bool
    reasoning: str
    new_reflection: str


@dataclass
class BudgetAdjustment:
    """Informational budget suggestion; never applied automatically"""

    adjusted: bool = False
    suggested_budget_cents: Optional[int] = None
    reason: Optional[str] = None


@dataclass
class JustificationOutcome:
    transaction: Transaction
    verdict: JustificationVerdict
    budget_adjustment: BudgetAdjustment


@dataclass
class MoodResult:
    mood: Mood
    score: int
    message: str


@dataclass
class BadgeStats:
    """Aggregate figures badge rules are evaluated against"""

    transaction_count: int
    current_balance_cents: int
    weekly_spending_cents: int
    weekly_budget_cents: int
    coffee_transaction_count: int
    responsible_transaction_count: int


@dataclass(frozen=True)
class BadgeRule:
    """Static badge definition; `rule` decides eligibility"""

    id: str
    title: str
    description: str
    emoji: str
    category: str  # spending | saving | streak | milestone
    rule: Callable[..., bool]


@dataclass
class Badge:
    id: str
    title: str
    description: str
    emoji: str
    category: str
    earned: bool


@dataclass
class LevelInfo:
    level: int
    xp: int  # progress inside the current level
    total_xp: int
    xp_for_next_level: int
    progress_percentage: float
    title: str


@dataclass
class InsightsSummary:
    balance_cents: int
    weekly_spending_cents: int
    weekly_budget_cents: int
    mood: MoodResult
    reflection_score: int
    badges: List[Badge] = field(default_factory=list)
