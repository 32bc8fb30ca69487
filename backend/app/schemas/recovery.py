"""Schemas for recovery recommendations and analysis results"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
import uuid


class RiskFactorSchema(BaseModel):
    factor: str
    importance: float = Field(..., ge=0, le=1)
    impact_days: int


class RehabilitationPhaseSchema(BaseModel):
    phase: str
    duration_days: int
    activities: List[str] = Field(default_factory=list)


class RecoveryRecommendationResponse(BaseModel):
    id: uuid.UUID
    athlete_id: uuid.UUID
    injury_id: uuid.UUID
    predicted_rtp_days_min: int
    predicted_rtp_days_max: int
    rest_days_recommended: int
    daily_calories: int
    daily_protein_grams: int
    confidence_score: float = Field(..., ge=0, le=1)
    key_risk_factors: Optional[List[RiskFactorSchema]] = None
    rehabilitation_phases: Optional[List[RehabilitationPhaseSchema]] = None
    clinical_notes: Optional[str] = None
    generated_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class RecoveryPredictions(BaseModel):
    """Headline numbers returned after an analysis run"""
    minDays: int
    maxDays: int
    restDays: int
    dailyCalories: int
    dailyProtein: int


class AnalyzeReportRequest(BaseModel):
    """Accepts both camelCase (web client) and snake_case keys."""
    injuryId: Optional[uuid.UUID] = Field(default=None)
    filePath: Optional[str] = Field(default=None)
    injury_id: Optional[uuid.UUID] = Field(default=None)
    file_path: Optional[str] = Field(default=None)

    def resolved(self) -> tuple[Optional[uuid.UUID], Optional[str]]:
        return self.injuryId or self.injury_id, self.filePath or self.file_path


class AnalyzeReportResponse(BaseModel):
    success: bool = True
    message: str = "Medical report analyzed successfully"
    predictions: RecoveryPredictions
