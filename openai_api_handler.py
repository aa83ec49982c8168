# openai_api_handler.py
import os
import logging

from openai import OpenAI

import settings

log = logging.getLogger(__name__)

_client_instance = None


def get_client() -> OpenAI:
    global _client_instance
    if _client_instance is None:
        if not settings.OPENAI_API_KEY:
            raise RuntimeError("OPENAI_API_KEY is not set")
        _client_instance = OpenAI(
            api_key=settings.OPENAI_API_KEY,
            organization=os.getenv("OPENAI_ORGANIZATION") or os.getenv("OPENAI_ORG"),
            project=os.getenv("OPENAI_PROJECT"),
        )
    return _client_instance


def call_openai_api(prompt: str, model: str, max_completion_tokens: int, temperature: float = 0.7,
                    system: str | None = None) -> str:
    """
    Call Chat Completions with one user message. Raises RuntimeError when the
    call fails (e.g. network off, quota) or comes back empty.
    """
    client = get_client()
    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})

    try:
        response = client.chat.completions.create(
            model=model,
            max_completion_tokens=max_completion_tokens,
            temperature=temperature,
            messages=messages,
        )
    except Exception as e:
        raise RuntimeError(f"OpenAI request failed: {e}") from e

    if not response.choices:
        raise RuntimeError("OpenAI returned no choices")

    text = response.choices[0].message.content or ""
    if not text:
        raise RuntimeError(f"OpenAI returned no text (finish_reason={response.choices[0].finish_reason})")
    log.info("OpenAI %s answered %d chars", model, len(text))
    return text
