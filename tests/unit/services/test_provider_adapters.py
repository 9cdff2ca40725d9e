"""Unit tests for the HTTP helper and the speech and text provider adapters.

requests.post is patched in src.services.http, the only module that sends
provider requests.
"""

from unittest.mock import patch

import pytest
import requests

from src.models import SpeechProvider, TextProvider
from src.services.http import (
    MissingCredentialError,
    ProviderRejectedError,
    ProviderTransportError,
)
from src.services.transcription import AudioFile


@pytest.fixture
def audio() -> AudioFile:
    return AudioFile(filename="visit.mp3", data=b"\x02" * 1024)


class TestPostJson:
    """Tests for post_json() error classification."""

    def test_returns_decoded_body(self, make_response) -> None:
        from src.services.http import post_json

        with patch("src.services.http.requests.post", return_value=make_response({"ok": 1})):
            body = post_json("OpenAI", "https://openai.test/v1/x", headers={})

        assert body == {"ok": 1}

    def test_applies_configured_timeout(self, make_response) -> None:
        from src.services.http import post_json

        with patch(
            "src.services.http.requests.post", return_value=make_response({})
        ) as mock_post:
            post_json("OpenAI", "https://openai.test/v1/x", headers={})

        assert mock_post.call_args.kwargs["timeout"] == 5

    def test_transport_failure(self) -> None:
        from src.services.http import post_json

        with patch(
            "src.services.http.requests.post",
            side_effect=requests.ConnectionError("connection refused"),
        ):
            with pytest.raises(ProviderTransportError) as exc_info:
                post_json("Gemini", "https://gemini.test", headers={})

        assert exc_info.value.provider == "Gemini"
        assert "connection refused" in str(exc_info.value)

    def test_timeout_is_transport_failure(self) -> None:
        from src.services.http import post_json

        with patch("src.services.http.requests.post", side_effect=requests.Timeout()):
            with pytest.raises(ProviderTransportError):
                post_json("Groq", "https://groq.test", headers={})

    def test_non_json_body_is_transport_failure(self, make_response) -> None:
        from src.services.http import post_json

        response = make_response({}, status_code=502)
        response.json.side_effect = ValueError("not json")

        with patch("src.services.http.requests.post", return_value=response):
            with pytest.raises(ProviderTransportError) as exc_info:
                post_json("OpenAI", "https://openai.test", headers={})

        assert "502" in str(exc_info.value)

    def test_error_payload_message_is_surfaced(self, make_response) -> None:
        from src.services.http import post_json

        response = make_response({"error": {"message": "Invalid API key"}}, status_code=401)

        with patch("src.services.http.requests.post", return_value=response):
            with pytest.raises(ProviderRejectedError) as exc_info:
                post_json("OpenAI", "https://openai.test", headers={})

        assert str(exc_info.value) == "OpenAI API error: Invalid API key"

    def test_error_payload_with_ok_status_is_rejected(self, make_response) -> None:
        from src.services.http import post_json

        response = make_response({"error": "bad request"})

        with patch("src.services.http.requests.post", return_value=response):
            with pytest.raises(ProviderRejectedError):
                post_json("OpenAI", "https://openai.test", headers={})

    def test_non_ok_status_without_error_payload(self, make_response) -> None:
        from src.services.http import post_json

        with patch(
            "src.services.http.requests.post",
            return_value=make_response({}, status_code=500),
        ):
            with pytest.raises(ProviderRejectedError) as exc_info:
                post_json("OpenAI", "https://openai.test", headers={})

        assert "HTTP 500" in str(exc_info.value)

    def test_body_that_is_not_an_object_is_transport_failure(self, make_response) -> None:
        from src.services.http import post_json

        with patch(
            "src.services.http.requests.post",
            return_value=make_response(["not", "an", "object"]),
        ):
            with pytest.raises(ProviderTransportError) as exc_info:
                post_json("OpenAI", "https://openai.test", headers={})

        assert "unreadable response" in str(exc_info.value)


class TestRequireCredential:
    """Tests for require_credential()."""

    @pytest.mark.parametrize("credential", [None, "", "   "])
    def test_blank_credential_raises(self, credential) -> None:
        from src.services.http import require_credential

        with pytest.raises(MissingCredentialError) as exc_info:
            require_credential("OpenAI", credential)

        assert exc_info.value.provider == "OpenAI"

    def test_returns_credential(self) -> None:
        from src.services.http import require_credential

        assert require_credential("OpenAI", "sk-1") == "sk-1"


class TestTranscribe:
    """Tests for transcribe() and the TRANSCRIBERS registry."""

    def test_every_speech_provider_is_registered(self) -> None:
        from src.services.transcription import TRANSCRIBERS

        assert set(TRANSCRIBERS) == set(SpeechProvider)

    def test_whisper_request(self, audio, make_response) -> None:
        from src.services.transcription import transcribe

        with patch(
            "src.services.http.requests.post",
            return_value=make_response({"text": "こんにちは"}),
        ) as mock_post:
            text = transcribe(audio, SpeechProvider.OPENAI, {"openai": "sk-test"})

        assert text == "こんにちは"
        call = mock_post.call_args
        assert call.args[0] == "https://openai.test/v1/audio/transcriptions"
        assert call.kwargs["headers"] == {"Authorization": "Bearer sk-test"}
        assert call.kwargs["data"] == {"model": "whisper-1", "language": "ja"}
        filename, data, content_type = call.kwargs["files"]["file"]
        assert filename == "visit.mp3"
        assert data == audio.data
        assert content_type == "audio/mpeg"

    def test_groq_uses_openai_endpoint_and_key(self, audio, make_response) -> None:
        from src.services.transcription import transcribe

        with patch(
            "src.services.http.requests.post",
            return_value=make_response({"text": "transcript"}),
        ) as mock_post:
            transcribe(audio, SpeechProvider.GROQ, {"openai": "sk-test", "groq": "gsk-test"})

        call = mock_post.call_args
        assert call.args[0] == "https://openai.test/v1/audio/transcriptions"
        assert call.kwargs["headers"] == {"Authorization": "Bearer sk-test"}

    def test_groq_without_openai_key(self, audio) -> None:
        from src.services.transcription import transcribe

        with pytest.raises(MissingCredentialError) as exc_info:
            transcribe(audio, SpeechProvider.GROQ, {"groq": "gsk-test"})

        assert exc_info.value.provider == "OpenAI"

    def test_missing_text_field(self, audio, make_response) -> None:
        from src.services.transcription import transcribe

        with patch("src.services.http.requests.post", return_value=make_response({})):
            with pytest.raises(ProviderRejectedError):
                transcribe(audio, SpeechProvider.OPENAI, {"openai": "sk-test"})

    def test_null_text_is_rejected(self, audio, make_response) -> None:
        from src.services.transcription import transcribe

        with patch(
            "src.services.http.requests.post",
            return_value=make_response({"text": None}),
        ):
            with pytest.raises(ProviderRejectedError) as exc_info:
                transcribe(audio, SpeechProvider.OPENAI, {"openai": "sk-test"})

        assert "'text'" in str(exc_info.value)

    def test_unknown_file_type_falls_back_to_octet_stream(self) -> None:
        assert AudioFile("recording", b"").content_type == "application/octet-stream"


class TestComplete:
    """Tests for complete() and the COMPLETERS registry."""

    def test_every_text_provider_is_registered(self) -> None:
        from src.services.completion import COMPLETERS, CREDENTIAL_FOR

        assert set(COMPLETERS) == set(TextProvider)
        assert set(CREDENTIAL_FOR) == set(TextProvider)

    def test_openai_request(self, make_response) -> None:
        from src.services.completion import complete

        response = make_response({"choices": [{"message": {"content": "Great cut."}}]})

        with patch("src.services.http.requests.post", return_value=response) as mock_post:
            text = complete("transcript", "Evaluate.", TextProvider.OPENAI, "sk-test")

        assert text == "Great cut."
        call = mock_post.call_args
        assert call.args[0] == "https://openai.test/v1/chat/completions"
        assert call.kwargs["headers"] == {"Authorization": "Bearer sk-test"}
        assert call.kwargs["json"] == {
            "model": "gpt-4o",
            "messages": [
                {"role": "system", "content": "Evaluate."},
                {"role": "user", "content": "transcript"},
            ],
            "temperature": 0.7,
        }

    def test_gemini_request(self, make_response) -> None:
        from src.services.completion import complete

        response = make_response(
            {"candidates": [{"content": {"parts": [{"text": "Loyal customer."}]}}]}
        )

        with patch("src.services.http.requests.post", return_value=response) as mock_post:
            text = complete("transcript", "Describe.", TextProvider.GEMINI, "gm-test")

        assert text == "Loyal customer."
        call = mock_post.call_args
        assert call.args[0] == "https://gemini.test/v1beta/models/gemini-1.5-pro:generateContent"
        assert call.kwargs["headers"] == {"x-goog-api-key": "gm-test"}
        body = call.kwargs["json"]
        assert body["systemInstruction"] == {"parts": [{"text": "Describe."}]}
        assert body["contents"] == [{"role": "user", "parts": [{"text": "transcript"}]}]
        assert body["generationConfig"] == {"temperature": 0.7}

    def test_groq_request(self, make_response) -> None:
        from src.services.completion import complete

        response = make_response({"choices": [{"message": {"content": "ok"}}]})

        with patch("src.services.http.requests.post", return_value=response) as mock_post:
            complete("transcript", "Evaluate.", TextProvider.GROQ, "gsk-test")

        call = mock_post.call_args
        assert call.args[0] == "https://groq.test/openai/v1/chat/completions"
        assert call.kwargs["json"]["model"] == "llama3-8b-8192"

    @pytest.mark.parametrize("provider", list(TextProvider))
    def test_missing_credential(self, provider) -> None:
        from src.services.completion import complete

        with patch("src.services.http.requests.post") as mock_post:
            with pytest.raises(MissingCredentialError):
                complete("transcript", "prompt", provider, None)

        mock_post.assert_not_called()

    def test_empty_choices_is_rejected(self, make_response) -> None:
        from src.services.completion import complete

        with patch(
            "src.services.http.requests.post",
            return_value=make_response({"choices": []}),
        ):
            with pytest.raises(ProviderRejectedError):
                complete("transcript", "prompt", TextProvider.OPENAI, "sk-test")

    def test_gemini_without_candidates_is_rejected(self, make_response) -> None:
        from src.services.completion import complete

        with patch(
            "src.services.http.requests.post",
            return_value=make_response({"promptFeedback": {"blockReason": "SAFETY"}}),
        ):
            with pytest.raises(ProviderRejectedError):
                complete("transcript", "prompt", TextProvider.GEMINI, "gm-test")

    @pytest.mark.parametrize("provider", [TextProvider.OPENAI, TextProvider.GROQ])
    def test_null_chat_content_is_rejected(self, provider, make_response) -> None:
        from src.services.completion import complete

        response = make_response(
            {"choices": [{"message": {"content": None, "refusal": "I can't help with that."}}]}
        )

        with patch("src.services.http.requests.post", return_value=response):
            with pytest.raises(ProviderRejectedError) as exc_info:
                complete("transcript", "prompt", provider, "sk-test")

        assert "'content'" in str(exc_info.value)

    def test_gemini_null_text_is_rejected(self, make_response) -> None:
        from src.services.completion import complete

        response = make_response({"candidates": [{"content": {"parts": [{"text": None}]}}]})

        with patch("src.services.http.requests.post", return_value=response):
            with pytest.raises(ProviderRejectedError) as exc_info:
                complete("transcript", "prompt", TextProvider.GEMINI, "gm-test")

        assert "'text'" in str(exc_info.value)
