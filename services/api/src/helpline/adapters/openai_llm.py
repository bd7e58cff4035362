"""Translation adapter using the OpenAI chat model."""

import logging
from dataclasses import dataclass, field

from services.api.src.helpline.config import settings

logger = logging.getLogger(__name__)

TRANSLATION_SYSTEM_PROMPT = (
    "You translate messages sent to a helpline. Translate the user's text from "
    "language '{source}' to language '{target}'. Reply with the translation only, "
    "preserving names, places and numbers exactly."
)


@dataclass(frozen=True)
class TranslationResult:
    text: str
    model: str
    token_usage: dict = field(default_factory=dict)


def translate(text: str, source: str | None = None, target: str | None = None) -> TranslationResult:
    """Translate text between the configured source and target languages.

    If OPENAI_API_KEY is not set, returns a stub translation.
    """
    source = source or settings.source_language
    target = target or settings.target_language

    if not settings.openai_api_key:
        logger.warning("openai_api_key not set, returning stub translation")
        return TranslationResult(text="[stub translation - set OPENAI_API_KEY]", model="stub")

    if not text.strip():
        return TranslationResult(text="", model=settings.openai_model_text)

    import openai

    client = openai.OpenAI(api_key=settings.openai_api_key)

    response = client.chat.completions.create(
        model=settings.openai_model_text,
        messages=[
            {"role": "system", "content": TRANSLATION_SYSTEM_PROMPT.format(source=source, target=target)},
            {"role": "user", "content": text},
        ],
    )

    usage = {}
    if response.usage:
        usage = {
            "prompt_tokens": response.usage.prompt_tokens,
            "completion_tokens": response.usage.completion_tokens,
            "total_tokens": response.usage.total_tokens,
        }

    return TranslationResult(
        text=(response.choices[0].message.content or "").strip(),
        model=settings.openai_model_text,
        token_usage=usage,
    )
