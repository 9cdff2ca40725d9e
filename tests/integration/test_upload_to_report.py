"""Integration tests for a full upload-to-report run in the in-memory environment.

Only the outbound HTTP call is patched; storage, database, adapters and
report assembly all run for real.
"""

from unittest.mock import patch

import pytest
from sqlalchemy.orm import Session

from src.models import ApiKey, AudioUpload, InsightReport, SpeechProvider, TextProvider
from src.services.transcription import AudioFile


class TestUploadToReport:
    """End-to-end runs of run_pipeline with mocked provider endpoints."""

    def test_openai_run_produces_two_section_report(
        self,
        environment,
        owner_id,
        seeded_prompts,
        openai_key,
        make_response,
        db_session: Session,
    ) -> None:
        from src.services.pipeline import PipelineConfig, run_pipeline
        from src.services.reports import list_reports

        responses = [
            make_response({"text": "Customer: I love the new cut."}),
            make_response({"choices": [{"message": {"content": "Good service."}}]}),
            make_response({"choices": [{"message": {"content": "Happy customer."}}]}),
        ]
        progress: list[int] = []

        with patch("src.services.http.requests.post", side_effect=responses) as mock_post:
            report = run_pipeline(
                environment,
                AudioFile(filename="demo.mp3", data=b"\x01" * 10 * 1024),
                PipelineConfig(
                    owner_id=owner_id,
                    speech_provider=SpeechProvider.OPENAI,
                    text_provider=TextProvider.OPENAI,
                    on_progress=lambda percent, stage: progress.append(percent),
                ),
            )

        assert report.report_md == (
            "# Service Evaluation\nGood service.\n\n# Customer Insight\nHappy customer.\n"
        )
        assert report.provider == "openai"
        assert progress[-1] == 100
        assert progress == sorted(progress)

        urls = [call.args[0] for call in mock_post.call_args_list]
        assert urls == [
            "https://openai.test/v1/audio/transcriptions",
            "https://openai.test/v1/chat/completions",
            "https://openai.test/v1/chat/completions",
        ]
        chat_body = mock_post.call_args_list[1].kwargs["json"]
        assert chat_body["messages"][1]["content"] == "Customer: I love the new cut."

        reports = list_reports(db_session, owner_id)
        assert [r.id for r in reports] == [report.id]
        assert db_session.query(AudioUpload).one().duration_sec == 0

    def test_groq_run_transcribes_with_openai_key(
        self,
        environment,
        owner_id,
        seeded_prompts,
        openai_key,
        make_response,
        db_session: Session,
    ) -> None:
        from src.services.pipeline import PipelineConfig, run_pipeline

        db_session.add(ApiKey(created_by=owner_id, provider="groq", key_hash="gsk-test"))
        db_session.commit()

        responses = [
            make_response({"text": "transcript"}),
            make_response({"choices": [{"message": {"content": "A"}}]}),
            make_response({"choices": [{"message": {"content": "B"}}]}),
        ]

        with patch("src.services.http.requests.post", side_effect=responses) as mock_post:
            report = run_pipeline(
                environment,
                AudioFile(filename="visit.wav", data=b"\x01" * 2048),
                PipelineConfig(
                    owner_id=owner_id,
                    speech_provider=SpeechProvider.GROQ,
                    text_provider=TextProvider.GROQ,
                ),
            )

        transcription_call, chat_call, _ = mock_post.call_args_list
        assert transcription_call.args[0] == "https://openai.test/v1/audio/transcriptions"
        assert transcription_call.kwargs["headers"] == {"Authorization": "Bearer sk-test-openai"}
        assert chat_call.args[0] == "https://groq.test/openai/v1/chat/completions"
        assert chat_call.kwargs["headers"] == {"Authorization": "Bearer gsk-test"}
        assert report.provider == "groq"

    def test_provider_error_leaves_upload_without_report(
        self,
        environment,
        owner_id,
        seeded_prompts,
        openai_key,
        make_response,
        db_session: Session,
    ) -> None:
        from src.services.pipeline import CompletionFailure, PipelineConfig, run_pipeline

        responses = [
            make_response({"text": "transcript"}),
            make_response({"choices": [{"message": {"content": "A"}}]}),
            make_response({"error": {"message": "Rate limit reached"}}, status_code=429),
        ]

        with patch("src.services.http.requests.post", side_effect=responses):
            with pytest.raises(CompletionFailure) as exc_info:
                run_pipeline(
                    environment,
                    AudioFile(filename="visit.wav", data=b"\x01" * 2048),
                    PipelineConfig(
                        owner_id=owner_id,
                        speech_provider=SpeechProvider.OPENAI,
                        text_provider=TextProvider.OPENAI,
                    ),
                )

        assert "Rate limit reached" in str(exc_info.value)
        assert db_session.query(AudioUpload).count() == 1
        assert db_session.query(InsightReport).count() == 0


class TestMemoryEnvironment:
    """Tests for the environment built from APP_ENVIRONMENT=memory."""

    def test_memory_environment_from_settings(self, test_settings) -> None:
        from src.services.environment import InMemoryStorage, get_environment

        environment = get_environment()

        assert environment.name == "memory"
        assert isinstance(environment.storage, InMemoryStorage)
        assert environment.default_user_id == "demo-user"

    def test_memory_environment_has_tables(self, test_settings) -> None:
        from src.services.environment import get_environment

        session = get_environment().session_factory()
        try:
            assert session.query(InsightReport).count() == 0
        finally:
            session.close()
