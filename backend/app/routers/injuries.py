from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import uuid

from app.database import get_db
from app.models.athlete_profile import AthleteProfile
from app.schemas.injury import InjuryCreate, InjuryUpdate, InjuryResponse, InjuryHistoryItem
from app.schemas.recovery import RecoveryRecommendationResponse
from app.services.injury_service import InjuryService
from app.utils.security import get_current_athlete

router = APIRouter()


@router.get("", response_model=List[InjuryHistoryItem])
async def get_injury_history(
    profile: AthleteProfile = Depends(get_current_athlete),
    db: AsyncSession = Depends(get_db)
):
    """Injury history, newest first, each with its latest recommendation"""
    injury_service = InjuryService(db)
    injuries = await injury_service.list_injuries(profile.id)
    latest = await injury_service.latest_recommendations_by_injury(profile.id)

    history = []
    for injury in injuries:
        item = InjuryHistoryItem.model_validate(injury)
        recommendation = latest.get(injury.id)
        if recommendation is not None:
            item.latest_recommendation = RecoveryRecommendationResponse.model_validate(recommendation)
        history.append(item)
    return history


@router.post("", response_model=InjuryResponse, status_code=status.HTTP_201_CREATED)
async def create_injury(
    injury_data: InjuryCreate,
    profile: AthleteProfile = Depends(get_current_athlete),
    db: AsyncSession = Depends(get_db)
):
    return await InjuryService(db).create_injury(profile.id, injury_data)


@router.patch("/{injury_id}", response_model=InjuryResponse)
async def update_injury(
    injury_id: uuid.UUID,
    injury_data: InjuryUpdate,
    profile: AthleteProfile = Depends(get_current_athlete),
    db: AsyncSession = Depends(get_db)
):
    """Update an injury's status or details"""
    injury_service = InjuryService(db)
    injury = await injury_service.get_injury(injury_id, athlete_id=profile.id)
    if not injury:
        raise HTTPException(status_code=404, detail="Injury not found")

    return await injury_service.update_injury(injury, injury_data)
