"""Recognition and synthesis through the OpenAI audio endpoints.

Used by the `openai` pipeline provider. Both calls fall back to stub
results when OPENAI_API_KEY is unset so local runs work offline.
"""

import base64
import logging
from dataclasses import dataclass

from services.api.src.helpline.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transcript:
    text: str
    model: str
    language: str


@dataclass(frozen=True)
class SpokenText:
    audio_base64: str
    model: str
    content_type: str = "audio/wav"


def _client():
    import openai

    return openai.OpenAI(api_key=settings.openai_api_key, timeout=settings.pipeline_timeout_s)


def transcribe(audio_bytes: bytes, language: str | None = None) -> Transcript:
    """Speech to text in the caller's language."""
    language = language or settings.source_language
    if not settings.openai_api_key:
        logger.warning("openai_api_key not set, returning stub transcript")
        return Transcript(text="[stub transcript - set OPENAI_API_KEY]", model="stub", language=language)

    result = _client().audio.transcriptions.create(
        model=settings.openai_model_stt,
        file=("recording.wav", audio_bytes),
        language=language,
    )
    logger.info("openai_transcribed", extra={"language": language, "chars": len(result.text)})
    return Transcript(text=result.text, model=settings.openai_model_stt, language=language)


def synthesize(text: str) -> SpokenText:
    """Text to wav audio, base64 encoded like the HTTPS pipeline's output."""
    if not settings.openai_api_key:
        logger.warning("openai_api_key not set, returning empty speech stub")
        return SpokenText(audio_base64="", model="stub")

    response = _client().audio.speech.create(
        model=settings.openai_model_tts,
        voice=settings.openai_tts_voice,
        input=text,
        response_format="wav",
    )
    return SpokenText(
        audio_base64=base64.b64encode(response.content).decode("ascii"),
        model=settings.openai_model_tts,
    )
