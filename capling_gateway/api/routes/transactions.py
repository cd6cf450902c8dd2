"""POST /transactions and GET /transactions - transaction processing endpoints"""

import time
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request

from capling_gateway.api.dependencies import get_request_id, get_transaction_processor
from capling_gateway.api.routes.schemas import (
    AnalysisSchema,
    CreateTransactionRequest,
    CreateTransactionResponse,
    TransactionListResponse,
    cents_to_dollars,
    to_transaction_schema,
)
from capling_gateway.domain.exceptions import CaplingError
from capling_gateway.domain.validation import validate_required, validate_transaction_request, validate_user_id
from capling_gateway.infrastructure.observability.logging import log_transaction_processed
from capling_gateway.services.transactions import TransactionProcessor

router = APIRouter()


@router.post("/transactions", response_model=CreateTransactionResponse)
async def create_transaction(
    request_body: CreateTransactionRequest,
    request: Request,
    processor: TransactionProcessor = Depends(get_transaction_processor),
):
    """
    Record a transaction and classify it.

    Flow:
    1. Validate every field (nothing is written on failure)
    2. Resolve the account, classify, persist and apply the balance change
    3. Return the transaction, new balance and condensed analysis
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        transaction_request = validate_transaction_request(
            user_id=request_body.user_id,
            merchant=request_body.merchant,
            amount=request_body.amount,
            category=request_body.category,
            account_id=request_body.account_id,
            description=request_body.description,
            timestamp=request_body.timestamp,
        )
        result = await processor.process(transaction_request)

    except CaplingError as e:
        logging.warning(
            f"Transaction rejected: {e.message}",
            extra={"request_id": request_id, "code": e.code, "details": e.details},
        )
        raise

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise CaplingError("Internal server error") from e

    duration_ms = (time.time() - start_time) * 1000
    log_transaction_processed(
        request_id,
        result.transaction.user_id,
        result.transaction.id,
        result.transaction.type.value,
        result.analysis.classification.value,
        result.new_balance_cents,
        duration_ms,
    )

    return CreateTransactionResponse(
        transaction=to_transaction_schema(result.transaction),
        new_balance=cents_to_dollars(result.new_balance_cents),
        analysis=AnalysisSchema(
            classification=result.analysis.classification.value,
            reflection=result.analysis.reflection,
        ),
        should_show_goal_allocation=result.should_show_goal_allocation,
        xp_awarded=result.xp_awarded,
    )


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    request: Request,
    user_id: Optional[str] = Query(None, alias="userId", description="User identifier"),
    account_id: Optional[str] = Query(None, alias="accountId", description="Account identifier"),
    limit: Optional[int] = Query(None, description="Maximum number of transactions (default 10)"),
    processor: TransactionProcessor = Depends(get_transaction_processor),
):
    """
    Retrieve recent transactions for a user, newest first.

    Returns:
        Transactions including their classification workflow state
    """
    try:
        validate_required(user_id, "userId")
        validate_user_id(user_id)
        transactions = processor.list_transactions(user_id, account_id, limit)

    except CaplingError:
        raise

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": get_request_id(request)})
        raise CaplingError("Internal server error") from e

    return TransactionListResponse(data=[to_transaction_schema(t) for t in transactions])
