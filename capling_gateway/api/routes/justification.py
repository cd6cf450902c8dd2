"""POST /transactions/{transaction_id}/justification - resolve a flagged transaction"""

import logging
from fastapi import APIRouter, Depends, Request

from capling_gateway.api.dependencies import get_justification_workflow, get_request_id
from capling_gateway.api.routes.schemas import (
    JustifyTransactionRequest,
    JustifyTransactionResponse,
    to_budget_adjustment,
    to_justification_analysis,
    to_transaction_schema,
)
from capling_gateway.domain.exceptions import CaplingError
from capling_gateway.infrastructure.observability.logging import log_justification_resolved
from capling_gateway.services.justification import JustificationWorkflow

router = APIRouter()


@router.post("/transactions/{transaction_id}/justification", response_model=JustifyTransactionResponse)
async def justify_transaction(
    transaction_id: str,
    request_body: JustifyTransactionRequest,
    request: Request,
    workflow: JustificationWorkflow = Depends(get_justification_workflow),
):
    request_id = get_request_id(request)

    try:
        outcome = await workflow.justify(request_body.user_id, transaction_id, request_body.justification)

    except CaplingError as e:
        logging.warning(
            f"Justification rejected: {e.message}",
            extra={"request_id": request_id, "transaction_id": transaction_id, "code": e.code},
        )
        raise

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise CaplingError("Internal server error") from e

    log_justification_resolved(
        request_id,
        outcome.transaction.user_id,
        outcome.transaction.id,
        outcome.transaction.justification_status.value,
    )

    return JustifyTransactionResponse(
        transaction=to_transaction_schema(outcome.transaction),
        justification_analysis=to_justification_analysis(outcome.verdict),
        budget_adjustment=to_budget_adjustment(outcome.budget_adjustment),
    )
