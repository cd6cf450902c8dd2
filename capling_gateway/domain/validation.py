"""Input validation for transaction and justification requests"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from capling_gateway.domain.exceptions import AuthenticationError, ValidationError
from capling_gateway.domain.models import Category, TransactionRequest
from capling_gateway.utils.date_utils import from_epoch_millis

MIN_TRANSACTION_AMOUNT = Decimal("0.01")
MAX_TRANSACTION_AMOUNT = Decimal("10000")
MAX_MERCHANT_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MAX_JUSTIFICATION_LENGTH = 1000
DEFAULT_LIST_LIMIT = 10
MAX_LIST_LIMIT = 100

VALID_CATEGORIES = [c.value for c in Category]


def validate_required(value: Any, field_name: str) -> None:
    """Reject None and blank strings"""
    if value is None or (isinstance(value, str) and value.strip() == ""):
        raise ValidationError(f"{field_name} is required", field_name)


def validate_string(
    value: Any,
    field_name: str,
    min_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> str:
    """Type and length check for a string field"""
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string", field_name)
    if min_length is not None and len(value) < min_length:
        raise ValidationError(f"{field_name} must be at least {min_length} characters", field_name)
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{field_name} must be at most {max_length} characters", field_name)
    return value


def validate_user_id(user_id: Any) -> str:
    """Caller identity must be a non-empty string"""
    if not isinstance(user_id, str) or not user_id:
        raise AuthenticationError("Valid user ID is required")
    return user_id


def validate_user_access(user_id: str, resource_user_id: str) -> None:
    """Only the owner may touch a resource"""
    if user_id != resource_user_id:
        raise AuthenticationError("Access denied: You can only access your own resources")


def validate_category(category: Any) -> Category:
    """Map a raw category onto the enumerated set"""
    try:
        return Category(category)
    except ValueError:
        raise ValidationError(
            f"Invalid transaction category. Must be one of: {', '.join(VALID_CATEGORIES)}",
            "category",
        )


def parse_amount_cents(amount: Any) -> int:
    """
    Convert a signed dollar amount to signed cents.

    The magnitude must lie in [0.01, 10000] and carry at most two decimal
    places. Zero is rejected by the lower bound.
    """
    if isinstance(amount, bool):
        raise ValidationError("amount must be a valid number", "amount")
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationError("amount must be a valid number", "amount")
    if not value.is_finite():
        raise ValidationError("amount must be a valid number", "amount")

    magnitude = abs(value)
    if magnitude < MIN_TRANSACTION_AMOUNT:
        raise ValidationError(f"amount must be at least {MIN_TRANSACTION_AMOUNT}", "amount")
    if magnitude > MAX_TRANSACTION_AMOUNT:
        raise ValidationError(f"amount must be at most {MAX_TRANSACTION_AMOUNT}", "amount")

    cents = value * 100
    if cents != cents.to_integral_value():
        raise ValidationError("amount must not have more than two decimal places", "amount")
    return int(cents)


def validate_transaction_request(
    user_id: Any,
    merchant: Any,
    amount: Any,
    category: Any,
    account_id: Optional[str] = None,
    description: Optional[str] = None,
    timestamp: Optional[int] = None,
) -> TransactionRequest:
    """Validate raw transaction fields; raises before any side effect"""
    validate_required(user_id, "userId")
    validate_required(merchant, "merchant")
    validate_required(amount, "amount")
    amount_cents = parse_amount_cents(amount)
    validated_category = validate_category(category)
    validate_user_id(user_id)

    merchant = validate_string(merchant, "merchant", max_length=MAX_MERCHANT_LENGTH).strip()
    if description is not None:
        description = validate_string(description, "description", max_length=MAX_DESCRIPTION_LENGTH)
        description = description.strip() or None

    occurred_at = None
    if timestamp is not None:
        try:
            occurred_at = from_epoch_millis(int(timestamp))
        except (TypeError, ValueError, OverflowError, OSError):
            raise ValidationError("timestamp must be epoch milliseconds", "timestamp")

    return TransactionRequest(
        user_id=user_id,
        merchant=merchant,
        amount_cents=amount_cents,
        category=validated_category,
        account_id=account_id or None,
        description=description,
        occurred_at=occurred_at,
    )


def validate_justification_text(justification: Any) -> str:
    """Required, at most 1000 characters, returned trimmed"""
    validate_required(justification, "justification")
    text = validate_string(justification, "justification", max_length=MAX_JUSTIFICATION_LENGTH)
    return text.strip()


def validate_limit(limit: Optional[int]) -> int:
    """Page size for transaction listings, default 10"""
    if limit is None:
        return DEFAULT_LIST_LIMIT
    if limit < 1 or limit > MAX_LIST_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_LIST_LIMIT}", "limit")
    return limit
