"""Classification verdicts, reasoner result values and output parsing"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from capling_gateway.domain.models import Classification, ClassificationResult, JustificationVerdict


@dataclass(frozen=True)
class ReasonerSuccess:
    text: str


@dataclass(frozen=True)
class ReasonerFailure:
    """Why a reasoner call produced no usable answer"""

    reason: str  # timeout | http_status | network | invalid_response | not_configured | unparseable | error
    detail: str = ""


ReasonerResult = Union[ReasonerSuccess, ReasonerFailure]

NEEDS_JUSTIFICATION = {Classification.IRRESPONSIBLE, Classification.NEUTRAL}

_JSON_DECODER = json.JSONDecoder()


def deposit_classification() -> ClassificationResult:
    """Deposits are always responsible and never sent to the reasoner"""
    return ClassificationResult(
        classification=Classification.RESPONSIBLE,
        reflection="Deposit added to your account",
        confidence=1.0,
        reasoning="Deposit transaction",
    )


def fallback_classification() -> ClassificationResult:
    """Substituted whenever the reasoner fails or times out"""
    return ClassificationResult(
        classification=Classification.NEUTRAL,
        reflection="Transaction processed - analysis unavailable",
        confidence=0.5,
        reasoning="LLM analysis failed",
    )


def needs_justification(is_deposit: bool, classification: Classification) -> bool:
    return not is_deposit and classification in NEEDS_JUSTIFICATION


def should_show_goal_allocation(transaction_amount_cents: int, classification: Classification) -> bool:
    return transaction_amount_cents > 0 and classification == Classification.IRRESPONSIBLE


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Decode the first complete JSON object in free-form model output"""
    text = text or ""
    start = text.find("{")
    while start != -1:
        try:
            parsed, _ = _JSON_DECODER.raw_decode(text, start)
            return parsed
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
    return None


def parse_classification(text: str) -> Optional[ClassificationResult]:
    """Parse a verdict; None when the output is unusable"""
    parsed = extract_json_object(text)
    if parsed is None:
        return None

    try:
        classification = Classification(str(parsed.get("classification", "")).strip().lower())
    except ValueError:
        return None

    try:
        confidence = float(parsed.get("confidence", 0.5))
    except (TypeError, ValueError):
        confidence = 0.5

    suggestion = parsed.get("improvement_suggestion")
    return ClassificationResult(
        classification=classification,
        reflection=str(parsed.get("reflection") or ""),
        confidence=max(0.0, min(1.0, confidence)),
        reasoning=str(parsed.get("reasoning") or ""),
        improvement_suggestion=str(suggestion) if suggestion else None,
    )


def parse_justification_verdict(text: str) -> Optional[JustificationVerdict]:
    parsed = extract_json_object(text)
    if parsed is None:
        return None

    is_valid = parsed.get("isValid", parsed.get("is_valid"))
    if not isinstance(is_valid, bool):
        return None

    return JustificationVerdict(
        is_valid=is_valid,
        reasoning=str(parsed.get("reasoning") or ""),
        new_reflection=str(parsed.get("newReflection") or parsed.get("new_reflection") or ""),
    )
