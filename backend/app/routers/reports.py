"""
Medical report upload and retrieval.

``POST /upload`` is the main intake flow: it records a new injury from the
upload form, stores the file and immediately runs the report analysis.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query, UploadFile, File, Form
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging
import uuid

from app.config import settings
from app.database import get_db
from app.integrations.ai_gateway import AIGatewayClient, get_ai_client
from app.models.athlete_profile import AthleteProfile
from app.models.user import User
from app.schemas.injury import InjuryResponse
from app.schemas.recovery import RecoveryPredictions
from app.schemas.report import MedicalReportResponse, SignedUrlResponse, ReportUploadResponse
from app.services.analysis_service import ReportAnalysisService, AnalysisError
from app.services.injury_service import InjuryService
from app.services.report_service import ReportService
from app.storage import S3BlobStore, BlobStoreError, ObjectNotFoundError, get_blob_store
from app.utils.enums import InjurySeverity, ReportType
from app.utils.security import get_current_user, get_current_athlete

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_upload(file: UploadFile) -> bytes:
    """Read an upload, enforcing the size limit without buffering past it"""
    data = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Maximum file size is {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB"
        )
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    return data


@router.post("/upload", response_model=ReportUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_report(
    file: UploadFile = File(...),
    report_type: ReportType = Form(...),
    injury_type: str = Form(..., min_length=1, max_length=100),
    severity: InjurySeverity = Form(...),
    current_user: User = Depends(get_current_user),
    profile: AthleteProfile = Depends(get_current_athlete),
    db: AsyncSession = Depends(get_db),
    blob_store: S3BlobStore = Depends(get_blob_store),
    ai_client: AIGatewayClient = Depends(get_ai_client)
):
    """
    Upload a medical report for a new injury and analyze it.

    The injury and report are committed before the analysis runs, so a failed
    analysis still leaves them in place (with the report marked failed).
    """
    data = await _read_upload(file)
    report_service = ReportService(db, blob_store)

    try:
        injury, report = await report_service.upload_for_new_injury(
            user_id=current_user.id,
            profile=profile,
            file_name=file.filename,
            data=data,
            report_type=report_type,
            injury_type=injury_type,
            severity=severity,
            content_type=file.content_type,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BlobStoreError as e:
        logger.error(f"Upload failed for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Upload failed: {e}")

    await db.commit()

    predictions: Optional[RecoveryPredictions] = None
    analysis_error: Optional[str] = None
    try:
        result = await ReportAnalysisService(db, blob_store, ai_client).analyze(
            injury.id, report.file_path, athlete_id=profile.id
        )
        predictions = RecoveryPredictions(**result.plan.predictions())
    except AnalysisError as e:
        analysis_error = e.message

    await db.refresh(injury)
    await db.refresh(report)

    return ReportUploadResponse(
        injury=InjuryResponse.model_validate(injury),
        report=MedicalReportResponse.model_validate(report),
        predictions=predictions,
        analysis_error=analysis_error,
    )


@router.post("", response_model=MedicalReportResponse, status_code=status.HTTP_201_CREATED)
async def attach_report(
    file: UploadFile = File(...),
    injury_id: uuid.UUID = Form(...),
    report_type: ReportType = Form(...),
    current_user: User = Depends(get_current_user),
    profile: AthleteProfile = Depends(get_current_athlete),
    db: AsyncSession = Depends(get_db),
    blob_store: S3BlobStore = Depends(get_blob_store)
):
    """Attach another report to an existing injury"""
    injury = await InjuryService(db).get_injury(injury_id, athlete_id=profile.id)
    if not injury:
        raise HTTPException(status_code=404, detail="Injury not found")

    data = await _read_upload(file)
    try:
        return await ReportService(db, blob_store).attach_to_injury(
            user_id=current_user.id,
            profile=profile,
            injury=injury,
            file_name=file.filename,
            data=data,
            report_type=report_type,
            content_type=file.content_type,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BlobStoreError as e:
        logger.error(f"Upload failed for injury {injury.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Upload failed: {e}")


@router.get("", response_model=List[MedicalReportResponse])
async def get_reports(
    injury_id: Optional[uuid.UUID] = Query(None, description="Only this injury's reports"),
    profile: AthleteProfile = Depends(get_current_athlete),
    db: AsyncSession = Depends(get_db),
    blob_store: S3BlobStore = Depends(get_blob_store)
):
    return await ReportService(db, blob_store).list_reports(profile.id, injury_id)


@router.get("/{report_id}/signed-url", response_model=SignedUrlResponse)
async def get_report_signed_url(
    report_id: uuid.UUID,
    expires_in: int = Query(settings.SIGNED_URL_EXPIRE_SECONDS, ge=1, le=7 * 24 * 3600),
    profile: AthleteProfile = Depends(get_current_athlete),
    db: AsyncSession = Depends(get_db),
    blob_store: S3BlobStore = Depends(get_blob_store)
):
    """Time-limited download link for one of the caller's reports"""
    report_service = ReportService(db, blob_store)
    report = await report_service.get_report(report_id, profile.id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")

    try:
        signed_url = await report_service.create_signed_url(report, expires_in)
    except ObjectNotFoundError:
        raise HTTPException(status_code=404, detail="Report file not found")
    except BlobStoreError as e:
        logger.error(f"Signed URL failed for report {report.id}: {e}")
        raise HTTPException(status_code=502, detail="Storage unavailable")

    return SignedUrlResponse(signed_url=signed_url, expires_in=expires_in)
