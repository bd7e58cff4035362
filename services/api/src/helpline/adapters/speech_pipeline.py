"""Speech pipeline adapter: recognition → translation → synthesis over HTTPS.

The remote service takes one request describing all three stages and
returns one result per stage in `pipelineResponse`.
"""

import logging
from dataclasses import dataclass, field

import httpx

from services.api.src.helpline.config import settings

logger = logging.getLogger(__name__)


class SpeechPipelineError(Exception):
    """The remote pipeline could not be reached or rejected the request."""


@dataclass(frozen=True)
class PipelineOutput:
    transcription_text: str
    translated_text: str
    audio_base64: str
    model: str
    raw: dict = field(default_factory=dict, repr=False)


def build_pipeline_payload(base64_audio: str) -> dict:
    source = settings.source_language
    target = settings.target_language
    return {
        "pipelineTasks": [
            {
                "taskType": "asr",
                "config": {
                    "language": {"sourceLanguage": source},
                    "serviceId": "",
                    "audioFormat": "flac",
                    "samplingRate": 16000,
                },
            },
            {
                "taskType": "translation",
                "config": {
                    "language": {"sourceLanguage": source, "targetLanguage": target},
                    "serviceId": "",
                },
            },
            {
                "taskType": "tts",
                "config": {
                    "language": {"sourceLanguage": target},
                    "serviceId": "",
                    "gender": "female",
                    "samplingRate": 8000,
                },
            },
        ],
        "inputData": {"audio": [{"audioContent": base64_audio}]},
    }


def _stage(data: dict, index: int) -> dict:
    stages = (data or {}).get("pipelineResponse") or []
    if index < len(stages) and isinstance(stages[index], dict):
        return stages[index]
    return {}


def _first(items) -> dict:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return {}


def extract_transcription_text(data: dict) -> str:
    return _first(_stage(data, 0).get("output")).get("source") or ""


def extract_translated_text(data: dict) -> str:
    return _first(_stage(data, 1).get("output")).get("target") or ""


def extract_audio_content(data: dict) -> str:
    return _first(_stage(data, 2).get("audio")).get("audioContent") or ""


def call_pipeline(base64_audio: str, client: httpx.Client | None = None) -> dict:
    """POST the three-stage request and return the raw JSON body.

    Single attempt; transport and HTTP errors raise SpeechPipelineError.
    """
    headers = {
        "Accept": "*/*",
        "User-Agent": "HelplineVoiceAPI",
        "Authorization": settings.pipeline_api_key,
        "Content-Type": "application/json",
    }
    payload = build_pipeline_payload(base64_audio)

    owns_client = client is None
    client = client or httpx.Client(timeout=settings.pipeline_timeout_s)
    try:
        resp = client.post(settings.pipeline_url, json=payload, headers=headers)
        resp.raise_for_status()
        return resp.json()
    except httpx.HTTPStatusError as exc:
        logger.error("speech_pipeline_rejected", extra={
            "status_code": exc.response.status_code, "body": exc.response.text[:500],
        })
        raise SpeechPipelineError(
            f"Pipeline returned {exc.response.status_code}"
        ) from exc
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("speech_pipeline_unreachable", extra={"error": str(exc)})
        raise SpeechPipelineError(f"Pipeline request failed: {exc}") from exc
    finally:
        if owns_client:
            client.close()


def process_audio(base64_audio: str, client: httpx.Client | None = None) -> PipelineOutput:
    """Transcribe, translate and synthesize one recording.

    If the pipeline credential is not set, returns a stub result for local dev.
    """
    if not settings.pipeline_api_key:
        logger.warning("pipeline_api_key not set, returning stub pipeline result")
        return PipelineOutput(
            transcription_text="[stub transcription - set PIPELINE_API_KEY]",
            translated_text="[stub translation - set PIPELINE_API_KEY]",
            audio_base64="",
            model="stub",
        )

    data = call_pipeline(base64_audio, client=client)
    logger.info("speech_pipeline_response_received")

    return PipelineOutput(
        transcription_text=extract_transcription_text(data),
        translated_text=extract_translated_text(data),
        audio_base64=extract_audio_content(data),
        model="bhashini",
        raw=data,
    )
