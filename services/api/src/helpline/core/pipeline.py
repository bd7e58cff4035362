"""Message processing pipeline.

Runs one stored recording through the speech pipeline (recognition →
translation → synthesis) and records the outcome on the message. A failure
flips the message to `error` and is returned, not raised.
"""

import base64
import logging
import time
from dataclasses import dataclass
from typing import Callable

from services.api.src.helpline.adapters.speech_pipeline import PipelineOutput
from services.api.src.helpline.config import settings
from services.api.src.helpline.core.storage import AudioStorage, StorageError, synthesized_key
from services.api.src.helpline.db.repository import MessageRepository

logger = logging.getLogger(__name__)

PROCESSING_FAILED_MESSAGE = "Failed to process audio"

ProcessFn = Callable[[str], PipelineOutput]


@dataclass
class PipelineResult:
    """Result of processing one recording."""

    message_id: str = ""
    transcription_text: str = ""
    translated_text: str = ""
    translated_audio_url: str | None = None
    model: str = ""
    latency_ms: int = 0
    error: str | None = None


def get_process_fn() -> ProcessFn:
    """Pick the speech pipeline implementation from settings."""
    if settings.pipeline_provider == "openai":
        from services.api.src.helpline.adapters.openai_pipeline import process_audio
    else:
        from services.api.src.helpline.adapters.speech_pipeline import process_audio
    return process_audio


def run_message_pipeline(
    message_id: str,
    audio_bytes: bytes,
    engine,
    *,
    process_fn: ProcessFn | None = None,
    storage: AudioStorage | None = None,
) -> PipelineResult:
    """Transcribe and translate a recording, then mark the message processed.

    The pipeline function is injectable for testing. When None, the
    configured provider is used.
    """
    from services.api.src.helpline.core.storage import get_storage

    process_fn = process_fn or get_process_fn()
    storage = storage or get_storage()
    msg_repo = MessageRepository(engine)
    result = PipelineResult(message_id=message_id)

    # --------------- Step 1: speech pipeline ---------------
    t0 = time.monotonic()
    try:
        output = process_fn(base64.b64encode(audio_bytes).decode("ascii"))
    except Exception as exc:
        result.latency_ms = int((time.monotonic() - t0) * 1000)
        logger.error("pipeline_process_failed", extra={
            "message_id": message_id, "error": str(exc), "latency_ms": result.latency_ms,
        })
        msg_repo.set_error(message_id, PROCESSING_FAILED_MESSAGE)
        result.error = f"{PROCESSING_FAILED_MESSAGE}: {exc}"
        return result
    result.latency_ms = int((time.monotonic() - t0) * 1000)

    result.transcription_text = output.transcription_text
    result.translated_text = output.translated_text
    result.model = output.model

    logger.info("pipeline_processed", extra={
        "message_id": message_id,
        "model": output.model,
        "latency_ms": result.latency_ms,
        "transcript_length": len(output.transcription_text),
    })

    # --------------- Step 2: store synthesized audio ---------------
    if output.audio_base64:
        try:
            synth_bytes = base64.b64decode(output.audio_base64)
            result.translated_audio_url = storage.put(synthesized_key(message_id), synth_bytes)
        except (ValueError, OSError, StorageError) as exc:
            # Text results are kept even when the spoken version is lost.
            logger.warning("pipeline_synth_store_failed", extra={
                "message_id": message_id, "error": str(exc),
            })

    # --------------- Step 3: record results ---------------
    msg_repo.set_processed(
        message_id,
        transcription_text=output.transcription_text,
        translated_text=output.translated_text,
        translated_audio_url=result.translated_audio_url,
    )

    return result
