"""
Prompt Builder for the recovery assistant and report analysis.

Handles:
- System context for the healthcare chat (athlete, injury, recovery plan)
- Conversation history formatting
- Report analysis prompt with a bounded report excerpt
"""

import json
from typing import List, Dict, Any, Optional
from datetime import date

from app.config import settings
from app.ml.prediction.recovery import round_half_up
from app.models.athlete_profile import AthleteProfile
from app.models.injury import Injury
from app.models.recovery_recommendation import RecoveryRecommendation


def _value(field: Any) -> Any:
    """Plain value for enum-typed columns."""
    return getattr(field, "value", field)


class RecoveryPromptBuilder:
    """Builds chat-completion messages from database rows."""

    CHAT_INSTRUCTIONS = """Instructions:
- Answer questions about the recovery plan, clinical notes, and recommendations
- Be empathetic and supportive
- Provide clear, actionable advice based on the data
- If asked about something not in the data, be honest about limitations
- Always remind the user to consult with their healthcare provider for medical decisions
- Keep responses concise but informative"""

    ANALYSIS_SYSTEM_PROMPT = """You are an expert sports medicine AI analyzing injury data to predict recovery times.
Provide brief clinical insights based on injury type, severity, athlete age, and sport demands."""

    ANALYSIS_REQUESTS = """Based on the medical report and injury details, provide:
1. Predicted recovery timeline (min/max days)
2. Key risk factors that could affect recovery
3. Specific rehabilitation recommendations
4. Nutritional requirements (calories and protein)
5. Critical warnings or concerns from the medical report

Provide a detailed clinical analysis."""

    def __init__(self, excerpt_chars: Optional[int] = None):
        self.excerpt_chars = excerpt_chars or settings.REPORT_EXCERPT_CHARS

    # ==================== Healthcare Chat ====================

    def build_chat_context(
        self,
        profile: AthleteProfile,
        injury: Optional[Injury],
        recommendation: RecoveryRecommendation,
        today: Optional[date] = None
    ) -> str:
        """
        Build the system prompt describing the athlete's recovery situation.

        Args:
            profile: Athlete profile of the caller
            injury: Most recent active injury, if any
            recommendation: Most recent recovery recommendation
            today: Reference date for the age calculation

        Returns:
            System prompt text
        """
        today = today or date.today()
        parts = [
            "You are a healthcare AI assistant helping an athlete understand their recovery plan.",
            "",
            "ATHLETE INFORMATION:",
            f"- Name: {profile.full_name}",
            f"- Sport: {profile.sport}",
            f"- Age: {profile.age_in(today.year)} years",
        ]

        if injury:
            parts.extend([
                "",
                "CURRENT INJURY:",
                f"- Type: {injury.injury_type}",
                f"- Location: {injury.injury_location}",
                f"- Severity: {_value(injury.severity)}",
                f"- Date: {injury.injury_date.isoformat()}",
                f"- Mechanism: {injury.mechanism or 'Not specified'}",
                f"- Symptoms: {injury.symptoms or 'Not specified'}",
            ])

        confidence_pct = round_half_up(recommendation.confidence_score * 100)
        parts.extend([
            "",
            "RECOVERY RECOMMENDATIONS:",
            f"- Predicted Return-to-Play: "
            f"{recommendation.predicted_rtp_days_min}-{recommendation.predicted_rtp_days_max} days",
            f"- Rest Days Recommended: {recommendation.rest_days_recommended}",
            f"- Daily Calories: {recommendation.daily_calories}",
            f"- Daily Protein: {recommendation.daily_protein_grams}g",
            f"- Model Confidence: {confidence_pct}%",
        ])

        if recommendation.key_risk_factors:
            parts.extend([
                "",
                "KEY RISK FACTORS:",
                json.dumps(recommendation.key_risk_factors, indent=2),
            ])

        if recommendation.rehabilitation_phases:
            parts.extend([
                "",
                "REHABILITATION PHASES:",
                json.dumps(recommendation.rehabilitation_phases, indent=2),
            ])

        parts.extend([
            "",
            "CLINICAL NOTES:",
            recommendation.clinical_notes or "No clinical notes available",
            "",
            self.CHAT_INSTRUCTIONS,
        ])

        return "\n".join(parts)

    def build_chat_messages(
        self,
        context: str,
        user_message: str,
        conversation_history: Optional[List[Dict[str, str]]] = None
    ) -> List[Dict[str, str]]:
        """
        Assemble system context, prior turns and the new user message.

        The client sends its full transcript including the message being
        asked, so the last history entry is dropped in favour of
        ``user_message``.
        """
        messages = [{"role": "system", "content": context}]

        for msg in (conversation_history or [])[:-1]:
            messages.append({
                "role": msg["role"],
                "content": msg["content"]
            })

        messages.append({"role": "user", "content": user_message})
        return messages

    # ==================== Report Analysis ====================

    def build_analysis_messages(
        self,
        injury: Injury,
        profile: AthleteProfile,
        report_content: str = "",
        today: Optional[date] = None
    ) -> List[Dict[str, str]]:
        """Build the prompt asking for a clinical analysis of a report."""
        today = today or date.today()

        lines = [
            "Analyze this sports injury and medical report:",
            "",
            f"Injury Type: {injury.injury_type}",
            f"Severity: {_value(injury.severity)}",
            f"Athlete Age: {profile.age_in(today.year)} years",
            f"Sport: {profile.sport}",
            "",
        ]
        if report_content:
            lines.extend([
                "Medical Report Content:",
                report_content[:self.excerpt_chars],
                "",
            ])
        lines.append(self.ANALYSIS_REQUESTS)

        return [
            {"role": "system", "content": self.ANALYSIS_SYSTEM_PROMPT},
            {"role": "user", "content": "\n".join(lines)},
        ]

    @staticmethod
    def fallback_clinical_note(injury_type: str, severity: Any, report_analyzed: bool) -> str:
        """Clinical note stored when no AI analysis is available."""
        return (
            f"AI-generated recovery plan based on {injury_type} ({_value(severity)} severity). "
            f"Medical report analyzed: {'Yes' if report_analyzed else 'No'}. "
            "Recommendations include structured rehabilitation phases with progressive loading. "
            "Monitor pain levels and functional performance throughout recovery."
        )
