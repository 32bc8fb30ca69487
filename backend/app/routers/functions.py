"""
Handlers called directly by the web client.

Errors are answered with a JSON body carrying an ``error`` key (and, for
chat, a displayable ``response``) rather than FastAPI's ``detail`` envelope.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from app.database import get_db
from app.integrations.ai_gateway import AIGatewayClient, get_ai_client
from app.schemas.chat import HealthcareChatRequest, HealthcareChatResponse, ErrorResponse
from app.schemas.recovery import AnalyzeReportRequest, AnalyzeReportResponse, RecoveryPredictions
from app.services.athlete_service import AthleteService
from app.services.analysis_service import ReportAnalysisService, AnalysisError
from app.services.chat_service import HealthcareChatService, ChatServiceError
from app.storage import S3BlobStore, get_blob_store
from app.utils.security import get_user_from_token

logger = logging.getLogger(__name__)

router = APIRouter()

bearer_scheme = HTTPBearer(auto_error=False)


def _chat_error(message: str, status_code: int) -> JSONResponse:
    body = ErrorResponse(error=message, response=HealthcareChatService.ERROR_RESPONSE)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.post(
    "/healthcare-chat",
    response_model=HealthcareChatResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse},
               502: {"model": ErrorResponse}, 503: {"model": ErrorResponse}}
)
async def healthcare_chat(
    request: HealthcareChatRequest,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
    ai_client: AIGatewayClient = Depends(get_ai_client)
):
    """Answer an athlete's question about their recovery plan"""
    user = await get_user_from_token(credentials.credentials if credentials else None, db)
    if user is None:
        return _chat_error("Unauthorized", 401)

    logger.info(f"Authenticated user: {user.id}")

    history = [turn.model_dump() for turn in request.messages]
    try:
        answer = await HealthcareChatService(db, ai_client).respond(
            user, request.message, history
        )
    except ChatServiceError as e:
        return _chat_error(e.message, e.status_code)
    except Exception as e:
        logger.error(f"Error in healthcare-chat function: {e}", exc_info=True)
        return _chat_error(str(e), 500)

    return HealthcareChatResponse(response=answer)


@router.post(
    "/analyze-medical-report",
    response_model=AnalyzeReportResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse},
               404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def analyze_medical_report(
    request: AnalyzeReportRequest,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
    blob_store: S3BlobStore = Depends(get_blob_store),
    ai_client: AIGatewayClient = Depends(get_ai_client)
):
    """Analyze an uploaded report and store a new recovery recommendation"""
    user = await get_user_from_token(credentials.credentials if credentials else None, db)
    if user is None:
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    profile = await AthleteService(db).get_profile_for_user(user.id)
    if profile is None:
        return JSONResponse(status_code=404, content={"error": "Profile not found"})

    injury_id, file_path = request.resolved()
    logger.info(f"Analyzing medical report: {file_path} for injury: {injury_id}")

    try:
        result = await ReportAnalysisService(db, blob_store, ai_client).analyze(
            injury_id, file_path, athlete_id=profile.id
        )
    except AnalysisError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.message})

    return AnalyzeReportResponse(predictions=RecoveryPredictions(**result.plan.predictions()))
