"""
Medical Report Analysis Service

Generates a recovery recommendation for an injury from its uploaded report:
1. Load the injury and athlete profile
2. Read the report from blob storage (text files are passed through,
   binary files are described)
3. Ask the AI gateway for a clinical analysis when it is configured
4. Compute the structured plan with the rule-based estimator
5. Store the recommendation and mark the report as analyzed

AI failures never fail the run: the stored plan then carries a templated
clinical note instead of the model's analysis.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.integrations.ai_gateway import AIGatewayClient, AIGatewayError
from app.ml.prediction.recovery import RecoveryPlan, estimate_recovery
from app.models.athlete_profile import AthleteProfile
from app.models.injury import Injury
from app.models.recovery_recommendation import RecoveryRecommendation
from app.services.injury_service import InjuryService
from app.services.prompt_builder import RecoveryPromptBuilder
from app.services.report_service import ReportService
from app.storage.blob_store import S3BlobStore, BlobStoreError
from app.utils.enums import AnalysisStatus


logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = (".txt", ".json")
UNPARSEABLE_CONTENT = "[File content could not be parsed]"


class AnalysisError(Exception):
    """Analysis could not produce a recommendation."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class AnalysisResult:
    recommendation: RecoveryRecommendation
    plan: RecoveryPlan
    ai_generated: bool


class ReportAnalysisService:
    """Turns an injury plus its medical report into a stored recovery plan."""

    def __init__(
        self,
        db: AsyncSession,
        blob_store: S3BlobStore,
        ai_client: Optional[AIGatewayClient] = None,
        prompt_builder: Optional[RecoveryPromptBuilder] = None,
    ):
        self.db = db
        self.blob_store = blob_store
        self.ai_client = ai_client or AIGatewayClient()
        self.prompt_builder = prompt_builder or RecoveryPromptBuilder()
        self.injuries = InjuryService(db)
        self.reports = ReportService(db, blob_store)

    async def analyze(
        self,
        injury_id: uuid.UUID,
        file_path: str,
        athlete_id: Optional[uuid.UUID] = None,
        today: Optional[date] = None
    ) -> AnalysisResult:
        """
        Analyze a stored report and insert a recovery recommendation.

        When ``athlete_id`` is given, injuries of other athletes are
        treated as unknown.

        Raises:
            AnalysisError: 400 for a missing argument, 404 for an unknown
                injury, 500 when storing the result fails
        """
        if not injury_id or not file_path:
            raise AnalysisError("Missing injuryId or filePath", status_code=400)

        today = today or date.today()

        injury = await self.injuries.get_injury(injury_id, athlete_id=athlete_id)
        if injury is None:
            raise AnalysisError(f"Injury {injury_id} not found", status_code=404)
        profile = injury.athlete

        await self.reports.set_analysis_status(injury.id, file_path, AnalysisStatus.processing)

        try:
            file_content, extracted_text = await self._read_report(file_path)
            analysis_text = await self._generate_clinical_analysis(
                injury, profile, file_content, today
            )

            plan = estimate_recovery(
                injury.injury_type,
                injury.severity,
                profile.age_in(today.year)
            )

            recommendation = RecoveryRecommendation(
                athlete_id=injury.athlete_id,
                injury_id=injury.id,
                predicted_rtp_days_min=plan.min_days,
                predicted_rtp_days_max=plan.max_days,
                rest_days_recommended=plan.rest_days,
                daily_calories=plan.daily_calories,
                daily_protein_grams=plan.daily_protein_grams,
                confidence_score=plan.confidence,
                key_risk_factors=plan.risk_factors_json(),
                rehabilitation_phases=plan.phases_json(),
                clinical_notes=analysis_text or self.prompt_builder.fallback_clinical_note(
                    injury.injury_type, injury.severity, bool(file_content)
                ),
            )
            self.db.add(recommendation)
            await self.db.flush()

            await self.reports.set_analysis_status(
                injury.id,
                file_path,
                AnalysisStatus.completed,
                extracted_text=extracted_text
            )
        except Exception as e:
            logger.error(f"Error in analyze-medical-report: {e}", exc_info=True)
            await self._mark_failed(injury.id, file_path)
            raise AnalysisError(str(e), status_code=500) from e

        logger.info(
            f"Recovery plan {recommendation.id} stored for injury {injury.id} "
            f"({plan.min_days}-{plan.max_days} days, ai={bool(analysis_text)})"
        )
        return AnalysisResult(
            recommendation=recommendation,
            plan=plan,
            ai_generated=bool(analysis_text)
        )

    async def _read_report(self, file_path: str) -> Tuple[str, Optional[str]]:
        """
        Load report content for the prompt.

        Returns:
            (content for the prompt, extracted text to store or None)
        """
        try:
            stored = await self.blob_store.download(settings.REPORTS_BUCKET, file_path)
        except (BlobStoreError, ValueError, OSError) as e:
            logger.error(f"File download error: {e}")
            return "", None

        logger.info(f"File downloaded successfully, size: {stored.size}")

        if not file_path.lower().endswith(TEXT_EXTENSIONS):
            return f"[Binary file content available for analysis - {stored.content_type}]", None

        try:
            text = stored.text()
        except UnicodeDecodeError as e:
            logger.error(f"Error parsing file: {e}")
            return UNPARSEABLE_CONTENT, None
        return text, text

    async def _generate_clinical_analysis(
        self,
        injury: Injury,
        profile: AthleteProfile,
        file_content: str,
        today: date
    ) -> str:
        """Model-written clinical notes, or an empty string when unavailable."""
        if not self.ai_client.is_configured:
            logger.info("AI gateway not configured, using fallback clinical notes")
            return ""

        messages = self.prompt_builder.build_analysis_messages(
            injury, profile, file_content, today
        )
        try:
            return await self.ai_client.complete(messages) or ""
        except AIGatewayError as e:
            logger.error(f"AI analysis error: {e}")
            return ""

    async def _mark_failed(self, injury_id: uuid.UUID, file_path: str) -> None:
        try:
            await self.db.rollback()
            await self.reports.set_analysis_status(injury_id, file_path, AnalysisStatus.failed)
        except Exception as e:
            logger.error(f"Could not mark report {file_path} as failed: {e}")
