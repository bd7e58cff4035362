"""Audio download and raw speech-pipeline proxy."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from starlette.concurrency import run_in_threadpool

from services.api.src.helpline.adapters.speech_pipeline import PipelineOutput, SpeechPipelineError
from services.api.src.helpline.core.pipeline import ProcessFn
from services.api.src.helpline.core.storage import AudioStorage, BlobNotFoundError, StorageError
from services.api.src.helpline.routes.deps import _process_fn, _storage, get_current_user
from services.api.src.helpline.schemas.responses import ProcessAudioRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/audio/{key:path}")
def download_audio(key: str, storage: AudioStorage = Depends(_storage)) -> Response:
    """Serve a stored blob by key."""
    try:
        data = storage.get(key)
    except BlobNotFoundError:
        raise HTTPException(404, "Audio not found")
    except StorageError:
        raise HTTPException(400, "Invalid audio key")
    return Response(content=data, media_type="audio/wav")


def _pipeline_response(output: PipelineOutput) -> dict:
    """Raw pipeline body, or the same shape rebuilt for non-HTTPS providers."""
    if output.raw:
        return output.raw
    return {
        "pipelineResponse": [
            {"taskType": "asr", "output": [{"source": output.transcription_text}]},
            {"taskType": "translation", "output": [{"target": output.translated_text}]},
            {"taskType": "tts", "audio": [{"audioContent": output.audio_base64}]},
        ]
    }


@router.post("/process-audio")
async def process_audio(
    body: ProcessAudioRequest,
    user: dict = Depends(get_current_user),
    process_fn: ProcessFn = Depends(_process_fn),
) -> dict:
    """Forward base64 audio to the speech pipeline and return its response."""
    if not body.base64Audio:
        raise HTTPException(400, "No audio data received")

    try:
        output = await run_in_threadpool(process_fn, body.base64Audio)
    except SpeechPipelineError as exc:
        logger.error("process_audio_failed", extra={"user_id": user["id"], "error": str(exc)})
        raise HTTPException(500, f"Failed to process audio: {exc}")

    return _pipeline_response(output)
