"""GET /insights - mood, reflection score and badges for a user"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from capling_gateway.api.dependencies import get_insights_service
from capling_gateway.api.routes.schemas import InsightsResponse, to_insights_schema
from capling_gateway.domain.validation import validate_required, validate_user_id
from capling_gateway.services.insights import InsightsService

router = APIRouter()


@router.get("/insights", response_model=InsightsResponse)
def get_insights(
    user_id: Optional[str] = Query(None, alias="userId", description="User identifier"),
    account_id: Optional[str] = Query(None, alias="accountId", description="Account identifier"),
    insights: InsightsService = Depends(get_insights_service),
):
    """Recomputed on every call; nothing is cached or stored"""
    validate_required(user_id, "userId")
    validate_user_id(user_id)
    return InsightsResponse(data=to_insights_schema(insights.summarize(user_id, account_id)))
