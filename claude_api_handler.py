# claude_api_handler.py
import logging

from anthropic import Anthropic

import settings

log = logging.getLogger(__name__)

_client = None


def get_client() -> Anthropic:
    """Get or create the Anthropic client."""
    global _client
    if _client is None:
        if not settings.ANTHROPIC_API_KEY:
            raise RuntimeError("ANTHROPIC_API_KEY is not set")
        _client = Anthropic(api_key=settings.ANTHROPIC_API_KEY)
    return _client


def call_claude_api(prompt: str, model: str, max_tokens: int, temperature: float = 0.7,
                    system: str | None = None) -> str:
    """
    Send a single user message to the Messages API and return the text answer.
    Transport, quota and auth failures are re-raised as RuntimeError so the
    caller can surface or fall back.
    """
    client = get_client()
    kwargs = {
        "model": model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": [{"role": "user", "content": prompt}],
    }
    if system:
        kwargs["system"] = system

    try:
        response = client.messages.create(**kwargs)
    except Exception as e:
        raise RuntimeError(f"Claude API error: {e}") from e

    text = "".join(getattr(block, "text", "") for block in (response.content or []))
    if not text:
        raise RuntimeError(f"Claude returned no text (stop_reason={getattr(response, 'stop_reason', None)})")
    log.info("Claude %s answered %d chars", model, len(text))
    return text
