import uuid
from datetime import datetime, date
from typing import Optional
from sqlalchemy import String, Date, DateTime, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base
from app.utils.enums import InjurySeverity, InjuryStatus


class Injury(Base):
    __tablename__ = "injuries"

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
    injury_type: Mapped[str] = mapped_column(String(100), nullable=False)
    injury_location: Mapped[str] = mapped_column(String(255), nullable=False)
    severity: Mapped[InjurySeverity] = mapped_column(
        SQLEnum(InjurySeverity),
        nullable=False
    )
    injury_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[InjuryStatus] = mapped_column(
        SQLEnum(InjuryStatus),
        default=InjuryStatus.active,
        nullable=False
    )
    mechanism: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    symptoms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    imaging_results: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    # Relationships
    athlete = relationship("AthleteProfile", back_populates="injuries")
    medical_reports = relationship("MedicalReport", back_populates="injury", cascade="all, delete-orphan")
    recovery_recommendations = relationship(
        "RecoveryRecommendation",
        back_populates="injury",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Injury(id={self.id}, type={self.injury_type}, severity={self.severity})>"
