import base64
import json
from collections.abc import Generator
from contextlib import contextmanager

import httpx
import openai

from fieldreport.enrichment.base import BaseEnrichmentClient
from fieldreport.enrichment.exceptions import EnrichmentError, EnrichmentNetworkError

_AUDIO_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp4": "m4a",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
}


class OpenAIEnrichmentAdapter(BaseEnrichmentClient):
    """Enrichment client built on the OpenAI chat and audio APIs."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        transcription_model: str,
        temperature: float,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )
        self._model = model
        self._transcription_model = transcription_model
        self._temperature = temperature

    def generate_text(self, prompt: str) -> str:
        with _provider_errors():
            response = self._client.chat.completions.create(
                model=self._model,
                temperature=self._temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        return _first_content(response)

    def transcribe(self, audio: bytes, mime_type: str) -> str:
        extension = _AUDIO_EXTENSIONS.get(mime_type.lower(), "webm")
        with _provider_errors():
            result = self._client.audio.transcriptions.create(
                model=self._transcription_model,
                file=(f"dictation.{extension}", audio, mime_type),
            )
        return result.text or ""

    def extract_structured_fields(
        self, image: bytes, mime_type: str, prompt: str
    ) -> dict[str, object]:
        data_uri = f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"
        with _provider_errors():
            response = self._client.chat.completions.create(
                model=self._model,
                temperature=self._temperature,
                response_format={"type": "json_object"},
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {"type": "image_url", "image_url": {"url": data_uri}},
                        ],
                    }
                ],
            )
        content = _first_content(response)
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            raise EnrichmentError(f"Invalid JSON response: {exc}") from exc
        if not isinstance(parsed, dict):
            raise EnrichmentError("AI response is not a JSON object")
        return parsed


@contextmanager
def _provider_errors() -> Generator[None, None, None]:
    try:
        yield
    except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
        raise EnrichmentNetworkError(f"AI provider network error: {exc}") from exc
    except openai.APIError as exc:
        raise EnrichmentNetworkError(f"AI provider API error: {exc}") from exc


def _first_content(response: object) -> str:
    choices = getattr(response, "choices", None)
    if not choices:
        raise EnrichmentError("AI returned no choices")
    content = choices[0].message.content
    if content is None:
        raise EnrichmentError("AI returned empty response")
    return content
