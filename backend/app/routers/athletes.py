from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.athlete_profile import AthleteProfile
from app.models.user import User
from app.schemas.athlete import AthleteProfileUpdate, AthleteProfileResponse
from app.services.athlete_service import AthleteService
from app.utils.security import get_current_user, get_current_athlete

router = APIRouter()


@router.get("/me", response_model=AthleteProfileResponse)
async def get_my_profile(profile: AthleteProfile = Depends(get_current_athlete)):
    """Get the caller's athlete profile"""
    return profile


@router.put("/me", response_model=AthleteProfileResponse)
async def update_my_profile(
    profile_data: AthleteProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create the caller's athlete profile or replace its details"""
    return await AthleteService(db).upsert_profile(current_user.id, profile_data)
