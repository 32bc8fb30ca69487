from pydantic import BaseModel
from typing import Optional
from datetime import datetime
import uuid

from app.schemas.injury import InjuryResponse
from app.schemas.recovery import RecoveryPredictions
from app.utils.enums import ReportType, AnalysisStatus


class MedicalReportResponse(BaseModel):
    id: uuid.UUID
    athlete_id: uuid.UUID
    injury_id: uuid.UUID
    file_name: str
    file_path: str
    file_size: Optional[int]
    report_type: ReportType
    uploaded_by: uuid.UUID
    analysis_status: AnalysisStatus
    created_at: datetime

    class Config:
        from_attributes = True


class SignedUrlResponse(BaseModel):
    signed_url: str
    expires_in: int


class ReportUploadResponse(BaseModel):
    """Result of uploading a report for a new injury and analysing it"""
    injury: InjuryResponse
    report: MedicalReportResponse
    predictions: Optional[RecoveryPredictions] = None
    analysis_error: Optional[str] = None
