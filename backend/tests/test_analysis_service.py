import uuid

import pytest
from sqlalchemy import select

from app.integrations.ai_gateway import AIGatewayError
from app.models.medical_report import MedicalReport
from app.services.analysis_service import ReportAnalysisService, AnalysisError
from app.utils.enums import AnalysisStatus, ReportType

from conftest import FakeAIClient, TODAY


async def test_analysis_stores_plan_with_ai_notes(db, blob_store, injury, stored_report):
    ai = FakeAIClient(reply="Grade 1 ATFL sprain; expect a quick return.")
    service = ReportAnalysisService(db, blob_store, ai_client=ai)

    result = await service.analyze(injury.id, stored_report.file_path, today=TODAY)

    rec = result.recommendation
    assert result.ai_generated
    assert (rec.predicted_rtp_days_min, rec.predicted_rtp_days_max) == (24, 36)
    assert rec.rest_days_recommended == 4
    assert rec.daily_calories == 2800
    assert rec.daily_protein_grams == 175
    assert rec.confidence_score == 0.85
    assert rec.clinical_notes == "Grade 1 ATFL sprain; expect a quick return."
    assert [p["phase"] for p in rec.rehabilitation_phases] == [
        "Acute Protection", "Early Mobilization", "Strength Building", "Return to Sport"
    ]

    # The report text reaches the model
    user_prompt = ai.calls[0]["messages"][1]["content"]
    assert "anterior talofibular ligament" in user_prompt

    await db.refresh(stored_report)
    assert stored_report.analysis_status == AnalysisStatus.completed
    assert stored_report.extracted_text.startswith("MRI: grade 1 sprain")


async def test_ai_failure_falls_back_to_templated_note(db, blob_store, injury, stored_report):
    ai = FakeAIClient(error=AIGatewayError("AI API error: 500", status_code=500))
    service = ReportAnalysisService(db, blob_store, ai_client=ai)

    result = await service.analyze(injury.id, stored_report.file_path, today=TODAY)

    assert not result.ai_generated
    assert result.recommendation.clinical_notes.startswith(
        "AI-generated recovery plan based on ankle-sprain (mild severity)."
    )
    assert "Medical report analyzed: Yes." in result.recommendation.clinical_notes


async def test_unconfigured_ai_is_not_called(db, blob_store, injury, stored_report):
    ai = FakeAIClient()
    ai.is_configured = False

    result = await ReportAnalysisService(db, blob_store, ai_client=ai).analyze(
        injury.id, stored_report.file_path, today=TODAY
    )

    assert ai.calls == []
    assert result.plan.min_days == 24


async def test_binary_report_is_described_not_parsed(db, blob_store, athlete, injury):
    path = f"{athlete.id}/{injury.id}-1700000000000.pdf"
    await blob_store.upload("medical-reports", path, b"%PDF-1.7 binary", content_type="application/pdf")
    db.add(MedicalReport(
        athlete_id=athlete.id, injury_id=injury.id, file_name="scan.pdf", file_path=path,
        file_size=15, report_type=ReportType.xray, uploaded_by=athlete.user_id,
    ))
    await db.flush()

    ai = FakeAIClient()
    await ReportAnalysisService(db, blob_store, ai_client=ai).analyze(injury.id, path, today=TODAY)

    user_prompt = ai.calls[0]["messages"][1]["content"]
    assert "[Binary file content available for analysis - application/pdf]" in user_prompt

    report = (await db.execute(
        select(MedicalReport).where(MedicalReport.file_path == path)
    )).scalar_one()
    assert report.analysis_status == AnalysisStatus.completed
    assert report.extracted_text is None


async def test_missing_file_still_produces_plan(db, blob_store, injury):
    ai = FakeAIClient()

    result = await ReportAnalysisService(db, blob_store, ai_client=ai).analyze(
        injury.id, "nobody/missing.txt", today=TODAY
    )

    assert "Medical Report Content" not in ai.calls[0]["messages"][1]["content"]
    assert result.plan.max_days == 36


async def test_unreadable_storage_still_produces_plan(db, blob_store, injury, stored_report, monkeypatch):
    async def denied(bucket, path):
        raise PermissionError("permission denied")

    monkeypatch.setattr(blob_store, "download", denied)
    ai = FakeAIClient()

    result = await ReportAnalysisService(db, blob_store, ai_client=ai).analyze(
        injury.id, stored_report.file_path, today=TODAY
    )

    assert "Medical Report Content" not in ai.calls[0]["messages"][1]["content"]
    assert result.plan.max_days == 36
    await db.refresh(stored_report)
    assert stored_report.analysis_status == AnalysisStatus.completed
    assert stored_report.extracted_text is None


async def test_undecodable_text_report(db, blob_store, athlete, injury):
    path = f"{athlete.user_id}/1700000000000-notes.txt"
    await blob_store.upload("medical-reports", path, b"\xff\xfe\xfa")

    ai = FakeAIClient()
    await ReportAnalysisService(db, blob_store, ai_client=ai).analyze(injury.id, path, today=TODAY)

    assert "[File content could not be parsed]" in ai.calls[0]["messages"][1]["content"]


async def test_missing_arguments(db, blob_store):
    service = ReportAnalysisService(db, blob_store, ai_client=FakeAIClient())

    with pytest.raises(AnalysisError) as exc_info:
        await service.analyze(None, "a/b.txt")
    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "Missing injuryId or filePath"


async def test_unknown_injury(db, blob_store, athlete):
    service = ReportAnalysisService(db, blob_store, ai_client=FakeAIClient())

    with pytest.raises(AnalysisError) as exc_info:
        await service.analyze(uuid.uuid4(), "a/b.txt")
    assert exc_info.value.status_code == 404


async def test_injury_of_another_athlete_is_not_found(db, blob_store, injury, stored_report):
    service = ReportAnalysisService(db, blob_store, ai_client=FakeAIClient())

    with pytest.raises(AnalysisError) as exc_info:
        await service.analyze(injury.id, stored_report.file_path, athlete_id=uuid.uuid4())
    assert exc_info.value.status_code == 404


async def test_storage_failure_marks_report_failed(db, blob_store, injury, stored_report, monkeypatch):
    await db.commit()

    def broken_estimate(*args, **kwargs):
        raise RuntimeError("estimator unavailable")

    monkeypatch.setattr("app.services.analysis_service.estimate_recovery", broken_estimate)
    service = ReportAnalysisService(db, blob_store, ai_client=FakeAIClient())

    with pytest.raises(AnalysisError) as exc_info:
        await service.analyze(injury.id, stored_report.file_path, today=TODAY)

    assert exc_info.value.status_code == 500
    assert "estimator unavailable" in exc_info.value.message

    await db.refresh(stored_report)
    assert stored_report.analysis_status == AnalysisStatus.failed
