"""Admin endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status

from analytics import AnalyticsManager
from ..serialize import camelize

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"]
)

@router.get("/analytics")
async def get_analytics():
    """Dashboard aggregates: overview counts, recent activity, top builders."""
    try:
        return camelize(await AnalyticsManager().get_overview())
    except Exception as e:
        logger.error(f"Error fetching analytics: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch analytics"
        )

__all__ = ['router']
