"""
Medical Report Service

Stores uploaded medical files in the reports bucket and tracks them as
``MedicalReport`` rows.
"""

import logging
import time
import uuid
from datetime import date
from pathlib import PurePosixPath
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, update

from app.config import settings
from app.models.athlete_profile import AthleteProfile
from app.models.injury import Injury
from app.models.medical_report import MedicalReport
from app.storage.blob_store import S3BlobStore
from app.utils.enums import AnalysisStatus, InjurySeverity, InjuryStatus, ReportType


logger = logging.getLogger(__name__)

PENDING_LOCATION = "To be analyzed"


def _safe_file_name(file_name: str) -> str:
    """Strip directory components a browser may send along with the name."""
    name = PurePosixPath((file_name or "").replace("\\", "/")).name
    if not name or name in (".", ".."):
        raise ValueError("A file name is required")
    return name


def _timestamp_ms(now: Optional[float] = None) -> int:
    return int((now if now is not None else time.time()) * 1000)


class ReportService:
    def __init__(self, db: AsyncSession, blob_store: S3BlobStore):
        self.db = db
        self.blob_store = blob_store
        self.bucket = settings.REPORTS_BUCKET

    # ==================== Uploads ====================

    async def upload_for_new_injury(
        self,
        user_id: uuid.UUID,
        profile: AthleteProfile,
        file_name: str,
        data: bytes,
        report_type: ReportType,
        injury_type: str,
        severity: InjurySeverity,
        content_type: Optional[str] = None,
        now: Optional[float] = None
    ) -> Tuple[Injury, MedicalReport]:
        """
        Record a new active injury and store its first medical report.

        The file lands at ``<user_id>/<epoch ms>-<file name>``; the report
        starts in ``pending`` analysis status.
        """
        file_name = _safe_file_name(file_name)

        injury = Injury(
            athlete_id=profile.id,
            injury_type=injury_type,
            injury_location=PENDING_LOCATION,
            severity=severity,
            injury_date=date.today(),
            status=InjuryStatus.active,
        )
        self.db.add(injury)
        await self.db.flush()

        file_path = f"{user_id}/{_timestamp_ms(now)}-{file_name}"
        await self.blob_store.upload(self.bucket, file_path, data, content_type=content_type)

        report = await self._create_report(
            profile=profile,
            injury_id=injury.id,
            uploaded_by=user_id,
            file_name=file_name,
            file_path=file_path,
            file_size=len(data),
            report_type=report_type,
        )
        await self.db.refresh(injury)
        return injury, report

    async def attach_to_injury(
        self,
        user_id: uuid.UUID,
        profile: AthleteProfile,
        injury: Injury,
        file_name: str,
        data: bytes,
        report_type: ReportType,
        content_type: Optional[str] = None,
        now: Optional[float] = None
    ) -> MedicalReport:
        """Store an additional file for an existing injury at ``<athlete_id>/<injury_id>-<epoch ms>.<ext>``"""
        file_name = _safe_file_name(file_name)
        extension = file_name.rsplit(".", 1)[-1]

        file_path = f"{profile.id}/{injury.id}-{_timestamp_ms(now)}.{extension}"
        await self.blob_store.upload(self.bucket, file_path, data, content_type=content_type)

        return await self._create_report(
            profile=profile,
            injury_id=injury.id,
            uploaded_by=user_id,
            file_name=file_name,
            file_path=file_path,
            file_size=len(data),
            report_type=report_type,
        )

    async def _create_report(
        self,
        profile: AthleteProfile,
        injury_id: uuid.UUID,
        uploaded_by: uuid.UUID,
        file_name: str,
        file_path: str,
        file_size: int,
        report_type: ReportType,
    ) -> MedicalReport:
        report = MedicalReport(
            athlete_id=profile.id,
            injury_id=injury_id,
            file_name=file_name,
            file_path=file_path,
            file_size=file_size,
            report_type=report_type,
            uploaded_by=uploaded_by,
            analysis_status=AnalysisStatus.pending,
        )
        self.db.add(report)
        await self.db.flush()
        await self.db.refresh(report)
        logger.info(f"Medical report {report.id} stored at {file_path}")
        return report

    # ==================== Queries ====================

    async def list_reports(
        self,
        athlete_id: uuid.UUID,
        injury_id: Optional[uuid.UUID] = None
    ) -> List[MedicalReport]:
        """Reports for an athlete, newest first"""
        query = select(MedicalReport).where(MedicalReport.athlete_id == athlete_id)
        if injury_id is not None:
            query = query.where(MedicalReport.injury_id == injury_id)

        result = await self.db.execute(query.order_by(MedicalReport.created_at.desc()))
        return list(result.scalars().all())

    async def get_report(
        self,
        report_id: uuid.UUID,
        athlete_id: uuid.UUID
    ) -> Optional[MedicalReport]:
        result = await self.db.execute(
            select(MedicalReport).where(and_(
                MedicalReport.id == report_id,
                MedicalReport.athlete_id == athlete_id
            ))
        )
        return result.scalar_one_or_none()

    async def create_signed_url(self, report: MedicalReport, expires_in: Optional[int] = None) -> str:
        return await self.blob_store.create_signed_url(self.bucket, report.file_path, expires_in)

    # ==================== Analysis status ====================

    async def set_analysis_status(
        self,
        injury_id: uuid.UUID,
        file_path: str,
        analysis_status: AnalysisStatus,
        extracted_text: Optional[str] = None
    ) -> None:
        """Update every report row matching the injury and file path"""
        values = {"analysis_status": analysis_status}
        if extracted_text is not None:
            values["extracted_text"] = extracted_text

        await self.db.execute(
            update(MedicalReport)
            .where(and_(
                MedicalReport.injury_id == injury_id,
                MedicalReport.file_path == file_path
            ))
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
