import pytest

from app.integrations.ai_gateway import AIGatewayError
from app.models.recovery_recommendation import RecoveryRecommendation
from app.models.user import User
from app.services.chat_service import HealthcareChatService, ChatServiceError
from app.utils.security import get_password_hash

from conftest import FakeAIClient, TODAY


@pytest.fixture
async def user(db, athlete):
    return await db.get(User, athlete.user_id)


@pytest.fixture
async def recommendation(db, athlete, injury):
    rec = RecoveryRecommendation(
        athlete_id=athlete.id,
        injury_id=injury.id,
        predicted_rtp_days_min=24,
        predicted_rtp_days_max=36,
        rest_days_recommended=4,
        daily_calories=2800,
        daily_protein_grams=175,
        confidence_score=0.85,
        key_risk_factors=[{"factor": "Injury severity", "importance": 0.9, "impact_days": 5}],
        rehabilitation_phases=[{"phase": "Acute Protection", "duration_days": 4, "activities": ["Rest"]}],
        clinical_notes="Grade 1 sprain.",
    )
    db.add(rec)
    await db.flush()
    return rec


async def test_answer_grounded_in_recovery_plan(db, user, recommendation):
    ai = FakeAIClient(reply="You can start pool therapy next week.")
    history = [
        {"role": "user", "content": "When can I run?"},
        {"role": "assistant", "content": "In about three weeks."},
        {"role": "user", "content": "Can I swim?"},
    ]

    answer = await HealthcareChatService(db, ai_client=ai).respond(
        user, "Can I swim?", history, today=TODAY
    )

    assert answer == "You can start pool therapy next week."
    call = ai.calls[0]
    assert call["temperature"] == 0.7
    assert call["max_tokens"] == 500

    system, *rest = call["messages"]
    assert "- Name: Jordan Lee" in system["content"]
    assert "- Type: ankle-sprain" in system["content"]
    assert "- Predicted Return-to-Play: 24-36 days" in system["content"]
    assert "Grade 1 sprain." in system["content"]
    assert [m["role"] for m in rest] == ["user", "assistant", "user"]
    assert rest[-1]["content"] == "Can I swim?"


async def test_no_recommendation_skips_ai(db, user, injury):
    ai = FakeAIClient()

    answer = await HealthcareChatService(db, ai_client=ai).respond(user, "Hello")

    assert answer == HealthcareChatService.NO_RECOMMENDATIONS_RESPONSE
    assert ai.calls == []


async def test_user_without_profile(db):
    user = User(email="nobody@example.com", hashed_password=get_password_hash("secret123"))
    db.add(user)
    await db.flush()

    with pytest.raises(ChatServiceError) as exc_info:
        await HealthcareChatService(db, ai_client=FakeAIClient()).respond(user, "Hello")

    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "Profile not found"


async def test_unconfigured_gateway(db, user, recommendation):
    ai = FakeAIClient()
    ai.is_configured = False

    with pytest.raises(ChatServiceError) as exc_info:
        await HealthcareChatService(db, ai_client=ai).respond(user, "Hello")

    assert exc_info.value.status_code == 503


async def test_gateway_error(db, user, recommendation):
    ai = FakeAIClient(error=AIGatewayError("AI API error: 429", status_code=429))

    with pytest.raises(ChatServiceError) as exc_info:
        await HealthcareChatService(db, ai_client=ai).respond(user, "Hello")

    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "AI API error: 429"


async def test_empty_completion(db, user, recommendation):
    ai = FakeAIClient(reply=None)

    answer = await HealthcareChatService(db, ai_client=ai).respond(user, "Hello")

    assert answer == HealthcareChatService.EMPTY_RESPONSE
