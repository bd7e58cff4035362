"""Three-stage speech pipeline composed from the OpenAI adapters."""

import base64
import logging

from services.api.src.helpline.adapters.openai_llm import translate
from services.api.src.helpline.adapters.openai_speech import synthesize, transcribe
from services.api.src.helpline.adapters.speech_pipeline import PipelineOutput, SpeechPipelineError

logger = logging.getLogger(__name__)


def process_audio(base64_audio: str) -> PipelineOutput:
    """Same contract as the HTTPS pipeline: base64 audio in, three results out."""
    try:
        audio_bytes = base64.b64decode(base64_audio, validate=True)
    except ValueError as exc:
        raise SpeechPipelineError(f"Audio is not valid base64: {exc}") from exc

    try:
        stt = transcribe(audio_bytes)
        translation = translate(stt.text)
        tts = synthesize(translation.text) if translation.text else None
    except Exception as exc:
        logger.error("openai_pipeline_failed", extra={"error": str(exc)})
        raise SpeechPipelineError(f"OpenAI pipeline failed: {exc}") from exc

    return PipelineOutput(
        transcription_text=stt.text,
        translated_text=translation.text,
        audio_base64=tts.audio_base64 if tts else "",
        model=f"{stt.model}+{translation.model}",
    )
