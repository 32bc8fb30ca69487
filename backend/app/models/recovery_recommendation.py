"""Stored recovery plan generated for an injury."""

import uuid
from datetime import datetime
from typing import Optional, List
from sqlalchemy import Integer, Float, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID, JSONB

from app.database import Base


# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


class RecoveryRecommendation(Base):
    """
    Predicted return-to-play window, nutrition targets and rehabilitation
    breakdown for a single injury.

    Rows are append-only: every analysis run inserts a new recommendation and
    readers take the most recent one.
    """
    __tablename__ = "recovery_recommendations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    athlete_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("athlete_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    injury_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("injuries.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Return to play window
    predicted_rtp_days_min: Mapped[int] = mapped_column(Integer, nullable=False)
    predicted_rtp_days_max: Mapped[int] = mapped_column(Integer, nullable=False)
    rest_days_recommended: Mapped[int] = mapped_column(Integer, nullable=False)

    # Nutrition targets
    daily_calories: Mapped[int] = mapped_column(Integer, nullable=False)
    daily_protein_grams: Mapped[int] = mapped_column(Integer, nullable=False)

    confidence_score: Mapped[float] = mapped_column(Float, nullable=False)
    key_risk_factors: Mapped[Optional[List[dict]]] = mapped_column(JSONType, nullable=True)
    rehabilitation_phases: Mapped[Optional[List[dict]]] = mapped_column(JSONType, nullable=True)
    clinical_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    generated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True
    )

    # Relationships
    athlete = relationship("AthleteProfile", back_populates="recovery_recommendations")
    injury = relationship("Injury", back_populates="recovery_recommendations")

    def __repr__(self) -> str:
        return (
            f"<RecoveryRecommendation(id={self.id}, injury_id={self.injury_id}, "
            f"rtp={self.predicted_rtp_days_min}-{self.predicted_rtp_days_max})>"
        )
