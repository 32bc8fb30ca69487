from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import uuid

from app.database import get_db
from app.models.athlete_profile import AthleteProfile
from app.schemas.recovery import RecoveryRecommendationResponse
from app.services.injury_service import InjuryService
from app.utils.security import get_current_athlete

router = APIRouter()


@router.get("", response_model=List[RecoveryRecommendationResponse])
async def get_recommendations(
    injury_id: Optional[uuid.UUID] = Query(None, description="Only this injury's recommendations"),
    limit: int = Query(50, ge=1, le=200),
    profile: AthleteProfile = Depends(get_current_athlete),
    db: AsyncSession = Depends(get_db)
):
    """Recovery recommendations for the caller, newest first"""
    return await InjuryService(db).list_recommendations(profile.id, injury_id, limit)


@router.get("/latest", response_model=RecoveryRecommendationResponse)
async def get_latest_recommendation(
    profile: AthleteProfile = Depends(get_current_athlete),
    db: AsyncSession = Depends(get_db)
):
    recommendation = await InjuryService(db).get_latest_recommendation(profile.id)
    if not recommendation:
        raise HTTPException(status_code=404, detail="No recovery recommendations yet")
    return recommendation
