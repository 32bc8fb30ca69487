from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
import uuid


class AthleteProfileUpdate(BaseModel):
    """Create-or-update payload for the caller's athlete profile."""
    full_name: str = Field(..., min_length=1, max_length=255)
    sport: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date
    position: Optional[str] = Field(default=None, max_length=100)
    height_cm: Optional[float] = Field(default=None, gt=0)
    weight_kg: Optional[float] = Field(default=None, gt=0)
    phone_number: Optional[str] = Field(default=None, max_length=50)
    emergency_contact: Optional[str] = Field(default=None, max_length=255)
    emergency_phone: Optional[str] = Field(default=None, max_length=50)


class AthleteProfileResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    full_name: str
    sport: str
    position: Optional[str]
    date_of_birth: date
    height_cm: Optional[float]
    weight_kg: Optional[float]
    phone_number: Optional[str]
    emergency_contact: Optional[str]
    emergency_phone: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
