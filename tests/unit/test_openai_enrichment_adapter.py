from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from fieldreport.enrichment.exceptions import EnrichmentError, EnrichmentNetworkError
from fieldreport.enrichment.openai_adapter import OpenAIEnrichmentAdapter


def _make_mock_response(content: str | None) -> MagicMock:
    choice = MagicMock()
    choice.message.content = content
    response = MagicMock()
    response.choices = [choice]
    return response


def _make_adapter(mock_client: MagicMock) -> OpenAIEnrichmentAdapter:
    with patch(
        "fieldreport.enrichment.openai_adapter.openai.OpenAI",
        return_value=mock_client,
    ):
        return OpenAIEnrichmentAdapter(
            api_key="k",
            model="m",
            transcription_model="whisper-1",
            temperature=0.2,
            timeout_seconds=30,
        )


class TestGenerateText:
    def test_returns_content(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = _make_mock_response("Summary.")

        assert _make_adapter(mock_client).generate_text("prompt") == "Summary."
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "m"
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]

    def test_raises_error_for_empty_content(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = _make_mock_response(None)
        with pytest.raises(EnrichmentError, match="empty response"):
            _make_adapter(mock_client).generate_text("prompt")

    def test_raises_error_for_no_choices(self) -> None:
        mock_client = MagicMock()
        response = MagicMock()
        response.choices = []
        mock_client.chat.completions.create.return_value = response
        with pytest.raises(EnrichmentError, match="no choices"):
            _make_adapter(mock_client).generate_text("prompt")

    def test_raises_network_error_on_connection_failure(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=MagicMock()
        )
        with pytest.raises(EnrichmentNetworkError, match="network error"):
            _make_adapter(mock_client).generate_text("prompt")

    def test_raises_network_error_on_timeout(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.side_effect = httpx.TimeoutException("slow")
        with pytest.raises(EnrichmentNetworkError, match="network error"):
            _make_adapter(mock_client).generate_text("prompt")


class TestTranscribe:
    def test_sends_audio_as_named_file(self) -> None:
        mock_client = MagicMock()
        mock_client.audio.transcriptions.create.return_value = MagicMock(text="Hello")

        text = _make_adapter(mock_client).transcribe(b"ogg-bytes", "audio/ogg")

        assert text == "Hello"
        kwargs = mock_client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["model"] == "whisper-1"
        assert kwargs["file"] == ("dictation.ogg", b"ogg-bytes", "audio/ogg")


class TestExtractStructuredFields:
    def test_parses_json_object(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = _make_mock_response(
            '{"serialNumber": "SN-9"}'
        )

        result = _make_adapter(mock_client).extract_structured_fields(
            b"img", "image/png", "read it"
        )

        assert result == {"serialNumber": "SN-9"}
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        image_part = kwargs["messages"][0]["content"][1]
        assert image_part["image_url"]["url"].startswith("data:image/png;base64,")

    def test_invalid_json_raises(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = _make_mock_response("not json")
        with pytest.raises(EnrichmentError, match="Invalid JSON"):
            _make_adapter(mock_client).extract_structured_fields(b"img", "image/png", "p")

    def test_non_object_json_raises(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = _make_mock_response("[1, 2]")
        with pytest.raises(EnrichmentError, match="not a JSON object"):
            _make_adapter(mock_client).extract_structured_fields(b"img", "image/png", "p")
