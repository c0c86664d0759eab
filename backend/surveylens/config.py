"""
SurveyLens Backend — Central Configuration

All environment variables and LLM settings live here.
Import `settings`, `LLM_CONFIG`, `log`, and `generate_error_code` from this module.
Do not read `os.environ` anywhere else.
"""

import uuid
from datetime import datetime, timezone

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All environment variables. Loaded from .env or the host environment."""

    # LLM Providers (at least one is needed for AI output; fallbacks are used otherwise)
    groq_api_key: str = ""
    openai_api_key: str = ""

    # App
    environment: str = "development"  # "development" | "production" | "test"
    cors_origins: str = "http://localhost:3000"  # Comma-separated for multiple origins
    rate_limit: str = "120/minute"                # slowapi limit string, per client IP

    # Result cache
    result_cache_ttl_seconds: int = 3600
    result_cache_max_entries: int = 1000

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton, import this everywhere
settings = Settings()


# ──────────────────────────────────────────────────────
# Logging Utilities
# ──────────────────────────────────────────────────────

def generate_error_code() -> str:
    """Generate a short, user-friendly error reference code.

    Format: 'SL-' followed by 6 uppercase hex characters.
    Example: 'SL-3F8A2C'

    The same code is logged on the backend AND returned to the caller
    (in warnings or error details), so the user can quote it and the team
    can grep logs for it.
    """
    return f"SL-{uuid.uuid4().hex[:6].upper()}"


def log(level: str, message: str, **context) -> None:
    """Structured print-based logger.

    Every log line follows the format:
        [ISO_TIMESTAMP] [LEVEL] message | key1=value1 key2=value2

    Args:
        level: One of "INFO", "WARN", "ERROR".
        message: Human-readable description of what happened.
        **context: Arbitrary key-value pairs. Always include test_id when available.

    Usage:
        log("INFO", "analysis started", test_id="abc-123", responses=500)
        log("ERROR", "llm call failed", test_id="abc-123", provider="groq",
            error_code="SL-3F8A2C", error=str(e))
    """
    ts = datetime.now(timezone.utc).isoformat()
    ctx = " ".join(f"{k}={v}" for k, v in context.items())
    print(f"[{ts}] [{level}] {message} | {ctx}", flush=True)


# ──────────────────────────────────────────────────────
# LLM Configuration
# ──────────────────────────────────────────────────────

LLM_CONFIG = {
    "persona": {
        "name": "SurveyLens",
        "system_prompt": (
            "You are SurveyLens, a senior market research analyst. "
            "You help founders and marketers design product validation surveys, "
            "interpret survey results, and turn them into launch decisions.\n\n"
            "Guidelines:\n"
            "- Ground every claim in the survey data you are given. Never invent numbers.\n"
            "- Be concise and specific. Prefer segment-level findings over generic advice.\n"
            "- Output strictly valid JSON when instructed. No markdown code fences, no explanation text outside the JSON.\n"
            "- Methodology names (Van Westendorp, MaxDiff, Kano) are vocabulary only; "
            "do not claim to have run those analyses unless the data says so.\n"
            "- Treat significance flags as directional signals, not publication-grade statistics."
        ),
    },
    "temperature": 0.7,
    "max_tokens": 2000,
    "fallback_chain": [
        "groq/llama-3.3-70b-versatile",   # Primary, best quality on Groq
        "groq/llama-3.1-8b-instant",      # Fallback 1, fastest
        "openai/gpt-4o-mini",             # Fallback 2, non-Groq
    ],
}


def provider_api_key(provider: str) -> str:
    """Return the API key for a litellm model id ("groq/...", "openai/..."), or "" if unset."""
    if provider.startswith("groq/"):
        return settings.groq_api_key
    if provider.startswith("openai/"):
        return settings.openai_api_key
    return ""
