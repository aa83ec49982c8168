# settings.py
import os
import logging
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()  # loads .env into environment variables

APP_ROOT = Path(__file__).parent.resolve()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logging.warning("Ignoring non-integer %s=%r", name, raw)
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logging.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


# --- LLM providers ---
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY") or os.getenv("CLAUDE_API_KEY")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")

DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "claude-3-7-sonnet-20250219")
MAX_OUTPUT_TOKENS = _int_env("MAX_OUTPUT_TOKENS", 4096)
CODE_TEMPERATURE = _float_env("CODE_TEMPERATURE", 0.1)
IMPROVE_TEMPERATURE = _float_env("IMPROVE_TEMPERATURE", 0.7)

# Short names accepted from the frontend model selector
MODEL_ALIASES = {
    "claude-4-sonnet": "claude-3-7-sonnet-20250219",
    "claude-sonnet-4": "claude-3-7-sonnet-20250219",
    "claude-3-sonnet": "claude-3-sonnet-20240229",
    "gemini-2.0-flash": "gemini-2.0-flash-exp",
}

# --- filesystem ---
OUTPUT_ROOT = Path(os.getenv("OUTPUT_ROOT", APP_ROOT / "output"))
STORAGE_ROOT = Path(os.getenv("STORAGE_ROOT", APP_ROOT / "storage"))
STORAGE_CACHE_SIZE = _int_env("STORAGE_CACHE_SIZE", 256)

# --- security ---
FLASK_SECRET = os.environ.get("FLASK_SECRET", "prompt-market-secret")
DEBUG = os.getenv("FLASK_DEBUG", "").lower() in {"1", "true", "yes"}

RATE_LIMITS = {
    "GENERAL": {
        "max_requests": _int_env("RATE_LIMIT_MAX", 100),
        "window_ms": _int_env("RATE_LIMIT_WINDOW_MS", 15 * 60 * 1000),
    },
    "AUTH": {"max_requests": 10, "window_ms": 15 * 60 * 1000},
    "AI": {"max_requests": 50, "window_ms": 60 * 60 * 1000},
}

CORS_ALLOWED_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "CORS_ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
    ).split(",")
    if o.strip()
]

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}
if os.getenv("FLASK_ENV") == "production":
    SECURITY_HEADERS["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains; preload"

# --- logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def configure_logging() -> None:
    logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO), format=LOG_FORMAT)
