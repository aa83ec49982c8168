# gemini_api_handler.py
import logging

import google.generativeai as genai

import settings

log = logging.getLogger(__name__)


def call_gemini_api(prompt: str, model: str, max_output_tokens: int, temperature: float = 0.7,
                    system: str | None = None) -> str:
    """
    Returns the raw text response or raises a detailed RuntimeError that
    upstream can surface to the user.
    """
    if not settings.GOOGLE_API_KEY:
        raise RuntimeError("GOOGLE_API_KEY is not set")

    genai.configure(api_key=settings.GOOGLE_API_KEY)
    model_name = (model or "gemini-1.5-flash").strip()

    try:
        mdl = genai.GenerativeModel(model_name, system_instruction=system) if system else genai.GenerativeModel(model_name)
    except Exception as e:
        raise RuntimeError(f"Failed to init model '{model_name}': {e}") from e

    try:
        resp = mdl.generate_content(
            prompt,
            generation_config={
                "max_output_tokens": max_output_tokens,
                "temperature": temperature,
            },
        )
    except Exception as e:
        # transport / quota / auth errors
        raise RuntimeError(f"Gemini request failed: {e}") from e

    # resp.text raises when the candidate was blocked
    try:
        text = resp.text
    except ValueError:
        text = ""
    if not text:
        diag = []
        if getattr(resp, "prompt_feedback", None):
            diag.append(f"prompt_feedback={resp.prompt_feedback}")
        if getattr(resp, "candidates", None):
            diag.append(f"candidates={resp.candidates}")
        raise RuntimeError("Gemini returned no text. " + " ".join(diag))

    log.info("Gemini %s answered %d chars", model_name, len(text))
    return text
