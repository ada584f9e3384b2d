"""Profile management endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from profiles import ProfileManager, InvalidProfileError
from ..serialize import camelize

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/profile",
    tags=["Profile"]
)

class ProfileUpdate(BaseModel):
    """Model for profile updates. Omitted fields are cleared."""
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    name: Optional[str] = None
    wallet_address: Optional[str] = Field(None, alias='walletAddress')
    bio: Optional[str] = None
    location: Optional[str] = None
    twitter: Optional[str] = None

@router.get("")
async def get_profile(email: Optional[str] = Query(None)):
    """Get a user's profile; unknown emails get a fresh builder profile."""
    try:
        return camelize(await ProfileManager().get_profile(email))
    except InvalidProfileError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error fetching profile: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch profile"
        )

@router.put("")
async def update_profile(update: ProfileUpdate):
    """Update a user's profile."""
    try:
        fields = update.model_dump()
        email = fields.pop('email')
        return camelize(await ProfileManager().update_profile(email, **fields))
    except InvalidProfileError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        logger.error(f"Error updating profile: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile"
        )

__all__ = ['router']
