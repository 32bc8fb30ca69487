"""
Injury and recovery-recommendation queries.

Recommendations are append-only, so "current" always means the row with the
latest ``created_at``.
"""

from typing import List, Optional, Dict
from datetime import datetime
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from sqlalchemy.orm import selectinload

from app.models.injury import Injury
from app.models.recovery_recommendation import RecoveryRecommendation
from app.schemas.injury import InjuryCreate, InjuryUpdate
from app.utils.enums import InjuryStatus


class InjuryService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Injuries ====================

    async def list_injuries(self, athlete_id: uuid.UUID) -> List[Injury]:
        """Injury history, most recent injury date first"""
        result = await self.db.execute(
            select(Injury)
            .where(Injury.athlete_id == athlete_id)
            .order_by(Injury.injury_date.desc(), Injury.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_injury(
        self,
        injury_id: uuid.UUID,
        athlete_id: Optional[uuid.UUID] = None
    ) -> Optional[Injury]:
        """
        Get an injury with its athlete profile loaded.

        When ``athlete_id`` is given the injury must belong to that athlete.
        """
        query = (
            select(Injury)
            .options(selectinload(Injury.athlete))
            .where(Injury.id == injury_id)
            .execution_options(populate_existing=True)
        )
        if athlete_id is not None:
            query = query.where(Injury.athlete_id == athlete_id)

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_active_injury(self, athlete_id: uuid.UUID) -> Optional[Injury]:
        """Most recently recorded injury that is still active"""
        result = await self.db.execute(
            select(Injury)
            .where(and_(
                Injury.athlete_id == athlete_id,
                Injury.status == InjuryStatus.active
            ))
            .order_by(Injury.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_injury(self, athlete_id: uuid.UUID, data: InjuryCreate) -> Injury:
        injury = Injury(athlete_id=athlete_id, **data.model_dump())
        self.db.add(injury)
        await self.db.flush()
        await self.db.refresh(injury)
        return injury

    async def update_injury(self, injury: Injury, data: InjuryUpdate) -> Injury:
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(injury, field, value)
        injury.updated_at = datetime.utcnow()
        await self.db.flush()
        await self.db.refresh(injury)
        return injury

    # ==================== Recommendations ====================

    async def list_recommendations(
        self,
        athlete_id: uuid.UUID,
        injury_id: Optional[uuid.UUID] = None,
        limit: int = 50
    ) -> List[RecoveryRecommendation]:
        """Recommendations for an athlete, newest first"""
        query = select(RecoveryRecommendation).where(
            RecoveryRecommendation.athlete_id == athlete_id
        )
        if injury_id is not None:
            query = query.where(RecoveryRecommendation.injury_id == injury_id)

        query = query.order_by(RecoveryRecommendation.created_at.desc()).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_latest_recommendation(
        self,
        athlete_id: uuid.UUID
    ) -> Optional[RecoveryRecommendation]:
        recommendations = await self.list_recommendations(athlete_id, limit=1)
        return recommendations[0] if recommendations else None

    async def latest_recommendations_by_injury(
        self,
        athlete_id: uuid.UUID
    ) -> Dict[uuid.UUID, RecoveryRecommendation]:
        """Map each injury id to its newest recommendation"""
        result = await self.db.execute(
            select(RecoveryRecommendation)
            .where(RecoveryRecommendation.athlete_id == athlete_id)
            .order_by(RecoveryRecommendation.created_at.desc())
        )

        latest: Dict[uuid.UUID, RecoveryRecommendation] = {}
        for rec in result.scalars().all():
            latest.setdefault(rec.injury_id, rec)
        return latest
