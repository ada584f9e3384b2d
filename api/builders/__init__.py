"""Builder lookup endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status

from profiles import ProfileManager, UserNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/builders",
    tags=["Builders"]
)

@router.get("/{builder_id}/wallet")
async def get_builder_wallet(builder_id: str):
    """Get the wallet address a builder registered in their profile."""
    try:
        wallet_address = await ProfileManager().get_wallet_address(builder_id)
        return {"walletAddress": wallet_address}
    except UserNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Builder not found"
        )
    except Exception as e:
        logger.error(f"Error fetching wallet for builder {builder_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch builder wallet"
        )

__all__ = ['router']
