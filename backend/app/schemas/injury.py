from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import date, datetime
import uuid

from app.schemas.recovery import RecoveryRecommendationResponse
from app.utils.enums import InjurySeverity, InjuryStatus


class InjuryCreate(BaseModel):
    injury_type: str = Field(..., min_length=1, max_length=100)
    injury_location: str = Field(..., min_length=1, max_length=255)
    severity: InjurySeverity
    injury_date: date
    status: InjuryStatus = InjuryStatus.active
    mechanism: Optional[str] = None
    symptoms: Optional[str] = None
    imaging_results: Optional[str] = None


class InjuryUpdate(BaseModel):
    injury_type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    injury_location: Optional[str] = Field(default=None, min_length=1, max_length=255)
    severity: Optional[InjurySeverity] = None
    injury_date: Optional[date] = None
    status: Optional[InjuryStatus] = None
    mechanism: Optional[str] = None
    symptoms: Optional[str] = None
    imaging_results: Optional[str] = None

    @field_validator("injury_type", "injury_location", "severity", "injury_date", "status")
    @classmethod
    def not_null(cls, v):
        # May be omitted but not cleared
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class InjuryResponse(BaseModel):
    id: uuid.UUID
    athlete_id: uuid.UUID
    injury_type: str
    injury_location: str
    severity: InjurySeverity
    injury_date: date
    status: InjuryStatus
    mechanism: Optional[str]
    symptoms: Optional[str]
    imaging_results: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InjuryHistoryItem(InjuryResponse):
    """Injury with its most recent recovery recommendation"""
    latest_recommendation: Optional[RecoveryRecommendationResponse] = None
