"""Transaction classification via the external reasoning service"""

import logging
import time
from typing import Optional, Union

from capling_gateway.config import settings
from capling_gateway.domain.classification import ReasonerFailure, parse_classification
from capling_gateway.domain.models import ClassificationResult
from capling_gateway.domain.ports import Reasoner
from capling_gateway.infrastructure.observability.metrics import classifier_latency_histogram

logger = logging.getLogger(__name__)

CLASSIFICATION_SYSTEM_PROMPT = (
    "You are a friendly financial coach judging whether a single purchase was a responsible use of money. "
    "Always respond with valid JSON only, using exactly these keys: "
    '"classification" ("responsible", "irresponsible" or "neutral"), '
    '"reflection" (one or two encouraging sentences addressed to the user), '
    '"confidence" (number between 0 and 1), '
    '"reasoning" (short explanation), '
    '"improvement_suggestion" (short tip, or null).'
)


def format_dollars(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    return f"{sign}${abs(cents) / 100:,.2f}"


def build_classification_prompt(merchant: str, amount_cents: int, description: str, balance_cents: int) -> str:
    return (
        "Classify this transaction.\n\n"
        f"Merchant: {merchant}\n"
        f"Amount: {format_dollars(amount_cents)}\n"
        f"Description: {description}\n"
        f"Account balance before this purchase: {format_dollars(balance_cents)}\n\n"
        "Essential needs (groceries, bills, health, commuting) are usually responsible. "
        "Luxury or impulse purchases that are large relative to the balance are irresponsible. "
        "Use neutral when it is unclear."
    )


class ClassificationService:
    """Produces a verdict for a spend; failures are returned, not raised"""

    def __init__(self, reasoner: Reasoner, timeout_seconds: Optional[float] = None):
        self.reasoner = reasoner
        self.timeout_seconds = timeout_seconds or settings.classification_timeout_seconds

    async def classify(
        self,
        merchant: str,
        amount_cents: int,
        description: str,
        current_balance_cents: int,
    ) -> Union[ClassificationResult, ReasonerFailure]:
        prompt = build_classification_prompt(merchant, amount_cents, description, current_balance_cents)

        start_time = time.time()
        try:
            result = await self.reasoner.complete(prompt, self.timeout_seconds, CLASSIFICATION_SYSTEM_PROMPT)
            if isinstance(result, ReasonerFailure):
                return result
            parsed = parse_classification(result.text)
        except Exception as e:
            logger.error(
                f"Classification raised: {e}",
                extra={"merchant": merchant, "error_type": type(e).__name__},
            )
            return ReasonerFailure("error", str(e))
        finally:
            classifier_latency_histogram.observe(time.time() - start_time)

        if parsed is None:
            return ReasonerFailure("unparseable", f"Could not parse classification: {result.text[:200]}")
        return parsed
