from typing import Optional
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models.athlete_profile import AthleteProfile
from app.schemas.athlete import AthleteProfileUpdate


class AthleteService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_profile_for_user(self, user_id: uuid.UUID) -> Optional[AthleteProfile]:
        """Get the athlete profile owned by a user"""
        result = await self.db.execute(
            select(AthleteProfile).where(AthleteProfile.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def upsert_profile(
        self,
        user_id: uuid.UUID,
        data: AthleteProfileUpdate
    ) -> AthleteProfile:
        """Create the user's profile, or overwrite it when it already exists"""
        profile = await self.get_profile_for_user(user_id)

        if profile is None:
            profile = AthleteProfile(user_id=user_id, **data.model_dump())
            self.db.add(profile)
        else:
            for field, value in data.model_dump().items():
                setattr(profile, field, value)

        await self.db.flush()
        await self.db.refresh(profile)
        return profile
