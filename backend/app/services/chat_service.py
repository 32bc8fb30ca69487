"""
Healthcare Chat Service.

Answers an athlete's questions about their recovery plan. Each request is
self-contained: the client sends its transcript, and the service grounds the
model in the caller's profile, active injury and latest recommendation.
"""

import logging
from datetime import date
from typing import List, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.integrations.ai_gateway import AIGatewayClient, AIGatewayError
from app.models.user import User
from app.services.athlete_service import AthleteService
from app.services.injury_service import InjuryService
from app.services.prompt_builder import RecoveryPromptBuilder


logger = logging.getLogger(__name__)


class ChatServiceError(Exception):
    """Chat request could not be answered."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class HealthcareChatService:
    """Service for recovery-plan conversations."""

    NO_RECOMMENDATIONS_RESPONSE = (
        "I don't have any recovery recommendations to discuss yet. "
        "Please upload a medical report to get started."
    )
    EMPTY_RESPONSE = "I apologize, but I couldn't generate a response."
    ERROR_RESPONSE = "I encountered an error processing your request. Please try again."

    def __init__(
        self,
        db: AsyncSession,
        ai_client: Optional[AIGatewayClient] = None,
        prompt_builder: Optional[RecoveryPromptBuilder] = None,
    ):
        self.db = db
        self.ai_client = ai_client or AIGatewayClient()
        self.prompt_builder = prompt_builder or RecoveryPromptBuilder()
        self.athletes = AthleteService(db)
        self.injuries = InjuryService(db)

    async def respond(
        self,
        user: User,
        message: str,
        conversation_history: Optional[List[Dict[str, str]]] = None,
        today: Optional[date] = None
    ) -> str:
        """
        Generate the assistant's answer to ``message``.

        Args:
            user: Authenticated caller
            message: The question being asked
            conversation_history: Client transcript ending with ``message``
            today: Reference date for the athlete's age

        Returns:
            Assistant response text

        Raises:
            ChatServiceError: 404 without a profile, 503 when the gateway is
                not configured, 502 when the gateway call fails
        """
        logger.info(f"Received message from user {user.id}: {message[:100]}")

        profile = await self.athletes.get_profile_for_user(user.id)
        if profile is None:
            logger.error(f"Profile not found for user {user.id}")
            raise ChatServiceError("Profile not found", status_code=404)

        logger.info(f"Profile found: {profile.id}")

        injury = await self.injuries.get_active_injury(profile.id)
        recommendation = await self.injuries.get_latest_recommendation(profile.id)

        if recommendation is None:
            return self.NO_RECOMMENDATIONS_RESPONSE

        context = self.prompt_builder.build_chat_context(profile, injury, recommendation, today)
        prompt_messages = self.prompt_builder.build_chat_messages(
            context, message, conversation_history
        )

        if not self.ai_client.is_configured:
            raise ChatServiceError("AI gateway not configured", status_code=503)

        logger.info("Calling AI gateway...")
        try:
            answer = await self.ai_client.complete(
                prompt_messages,
                temperature=settings.CHAT_TEMPERATURE,
                max_tokens=settings.CHAT_MAX_TOKENS
            )
        except AIGatewayError as e:
            raise ChatServiceError(str(e), status_code=502) from e

        logger.info("AI response received")
        return answer or self.EMPTY_RESPONSE
