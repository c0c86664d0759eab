"""
SurveyLens Backend — LLM Interactions

All LLM calls via litellm: completion with a provider fallback chain,
rate-limit cooldowns, and the JSON parse boundary for model output.
"""

import json
import re
import time
from dataclasses import dataclass
from typing import TypeVar, Union

import litellm
from pydantic import BaseModel, ValidationError

from surveylens.config import LLM_CONFIG, generate_error_code, log, provider_api_key

litellm.suppress_debug_info = True
litellm.drop_params = True  # Prevent unsupported-param errors across providers

ModelT = TypeVar("ModelT", bound=BaseModel)

# ── Rate-limit cooldown cache ────────────────────────────────────────────────
# Maps provider name → time.monotonic() deadline until which it is skipped.
_rate_limited_until: dict[str, float] = {}
RATE_LIMIT_COOLDOWN_SECONDS = 600
LLM_CALL_TIMEOUT_SECONDS = 60


def _is_rate_limit_error(error: Exception) -> bool:
    """Check if an error is a rate-limit / quota error (transient)."""
    error_str = str(error).lower()
    return any(kw in error_str for kw in (
        "rate_limit", "ratelimit", "429", "quota", "resource_exhausted",
        "timeout", "timed out",
    ))


def _mark_rate_limited(provider: str) -> None:
    """Record that a provider just hit a rate limit."""
    _rate_limited_until[provider] = time.monotonic() + RATE_LIMIT_COOLDOWN_SECONDS
    log("WARN", "provider rate-limited, will skip for cooldown",
        provider=provider, cooldown_seconds=RATE_LIMIT_COOLDOWN_SECONDS)


def _is_in_cooldown(provider: str) -> bool:
    """Return True if the provider is still in rate-limit cooldown."""
    deadline = _rate_limited_until.get(provider)
    if deadline is None:
        return False
    if time.monotonic() >= deadline:
        del _rate_limited_until[provider]
        return False
    return True


# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions
# ─────────────────────────────────────────────────────────────────────────────


class LLMError(Exception):
    """All providers in the fallback chain failed, or none is configured."""

    pass


class LLMValidationError(Exception):
    """LLM output failed Pydantic validation even after retry."""

    def __init__(self, raw_output: str, expected_schema: str, error: str):
        self.raw_output = raw_output
        self.expected_schema = expected_schema
        super().__init__(f"LLM validation failed: {error}")


@dataclass
class ParseFailure:
    """Result of parse_llm_json when the text is not valid JSON for the schema."""

    raw: str
    error: str


# ─────────────────────────────────────────────────────────────────────────────
# Core Functions
# ─────────────────────────────────────────────────────────────────────────────


async def call_llm(messages: list[dict], test_id: str | None = None) -> str:
    """
    Call the LLM with automatic per-request fallback through the chain.

    Providers without an API key are skipped. Rate-limit errors put a
    provider into cooldown so later requests skip it immediately.

    Args:
        messages: List of message dicts (without system prompt; it is injected here).
        test_id: Optional test ID for logging correlation.

    Returns:
        Raw response content string from the LLM.

    Raises:
        LLMError: If no provider is configured or every provider fails.
    """
    full_messages = _inject_system_prompt(messages)
    chain = [p for p in LLM_CONFIG["fallback_chain"] if provider_api_key(p)]
    if not chain:
        raise LLMError("No LLM provider configured")

    tried_any = False

    for idx, provider in enumerate(chain):
        if _is_in_cooldown(provider):
            log("INFO", "skipping rate-limited provider", test_id=test_id, provider=provider)
            continue

        tried_any = True
        log("INFO", "llm call started", test_id=test_id, provider=provider)
        start = time.perf_counter()

        try:
            response = await litellm.acompletion(
                model=provider,
                messages=full_messages,
                temperature=LLM_CONFIG["temperature"],
                max_tokens=LLM_CONFIG["max_tokens"],
                timeout=LLM_CALL_TIMEOUT_SECONDS,
                api_key=provider_api_key(provider),
            )
            duration_ms = int((time.perf_counter() - start) * 1000)

            content = ""
            if response.choices:
                msg = response.choices[0].message
                if msg.content:
                    content = msg.content
                elif getattr(msg, "reasoning_content", None):
                    content = msg.reasoning_content

            tokens_used = None
            if getattr(response, "usage", None):
                tokens_used = getattr(response.usage, "total_tokens", None)

            if not content:
                log(
                    "WARN",
                    "llm returned empty content, will try next provider",
                    test_id=test_id,
                    provider=provider,
                    duration_ms=duration_ms,
                )
                raise ValueError(f"Provider {provider} returned empty content")

            log(
                "INFO",
                "llm call succeeded",
                test_id=test_id,
                provider=provider,
                duration_ms=duration_ms,
                tokens_used=tokens_used,
            )
            return content

        except Exception as e:
            code = generate_error_code()
            log(
                "ERROR",
                "llm call failed",
                test_id=test_id,
                provider=provider,
                error=str(e),
                error_code=code,
            )

            if _is_rate_limit_error(e):
                _mark_rate_limited(provider)

            next_provider = next((p for p in chain[idx + 1:] if not _is_in_cooldown(p)), None)
            if next_provider:
                log(
                    "WARN",
                    "llm provider fallback",
                    test_id=test_id,
                    from_provider=provider,
                    to_provider=next_provider,
                    reason=str(e),
                )
            continue

    # Every provider was in cooldown: clear and retry once from the top.
    if not tried_any:
        log("WARN", "all providers in cooldown, clearing cooldowns for retry", test_id=test_id)
        _rate_limited_until.clear()
        return await call_llm(messages, test_id=test_id)

    raise LLMError("All LLM providers failed")


async def call_llm_structured(
    messages: list[dict],
    response_model: type[ModelT],
    test_id: str | None = None,
) -> ModelT:
    """
    Call LLM and validate the response against a Pydantic model.

    Steps:
        1. call_llm(messages)
        2. parse_llm_json(raw, response_model)
        3. On ParseFailure: retry once with the fix-JSON instructions appended
        4. If the retry also fails: raise LLMValidationError

    Raises:
        LLMError: If every provider fails.
        LLMValidationError: If validation fails after retry.
    """
    from surveylens.prompts import build_fix_json_prompt

    raw = await call_llm(messages, test_id=test_id)
    parsed = parse_llm_json(raw, response_model)
    if not isinstance(parsed, ParseFailure):
        return parsed

    log(
        "ERROR",
        "llm output validation failed",
        test_id=test_id,
        raw_output=raw[:500] + "..." if len(raw) > 500 else raw,
        schema=response_model.__name__,
        validation_error=parsed.error[:300],
        error_code=generate_error_code(),
    )

    retry_messages = build_fix_json_prompt(
        messages, raw, parsed.error, response_model.model_json_schema()
    )
    retry_raw = await call_llm(retry_messages, test_id=test_id)
    retry_parsed = parse_llm_json(retry_raw, response_model)
    if isinstance(retry_parsed, ParseFailure):
        raise LLMValidationError(
            raw_output=retry_raw,
            expected_schema=json.dumps(response_model.model_json_schema(), indent=2),
            error=retry_parsed.error,
        )
    return retry_parsed


def parse_llm_json(raw: str, response_model: type[ModelT]) -> Union[ModelT, ParseFailure]:
    """
    The single parse boundary for model output.

    Strips markdown fences, tries the whole text as JSON, then falls back to
    the first {...} or [...] block found in it. Returns a validated model or
    a ParseFailure; never raises.
    """
    if not raw or not isinstance(raw, str):
        return ParseFailure(raw=raw or "", error="empty output")

    stripped = _strip_code_fences(raw)
    candidates = [stripped]
    block = _extract_json_block(stripped)
    if block and block != stripped:
        candidates.append(block)

    last_error = "no JSON found"
    for candidate in candidates:
        try:
            return response_model.model_validate(json.loads(candidate))
        except (json.JSONDecodeError, ValidationError) as e:
            last_error = str(e)
    return ParseFailure(raw=raw, error=last_error)


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions
# ─────────────────────────────────────────────────────────────────────────────


def _inject_system_prompt(messages: list[dict]) -> list[dict]:
    """
    Prepend the persona system prompt unless the caller supplied its own.
    Returns a new list (does not mutate the input).
    """
    if messages and messages[0].get("role") == "system":
        return list(messages)
    system_msg = {
        "role": "system",
        "content": LLM_CONFIG["persona"]["system_prompt"],
    }
    return [system_msg] + list(messages)


def _strip_code_fences(text: str) -> str:
    """
    Remove markdown code fences from LLM output.
    Handles: ```json\\n...\\n```, ```\\n...\\n```, and plain text.
    """
    if not text or not isinstance(text, str):
        return text
    stripped = text.strip()
    match = re.match(r"^```(?:json)?\s*\n?(.*?)\n?```\s*$", stripped, re.DOTALL)
    if match:
        return match.group(1).strip()
    return stripped


def _extract_json_block(text: str) -> str | None:
    """Return the outermost {...} or [...] span starting at the first bracket, if any."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return None
    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end <= start:
        return None
    return text[start:end + 1]
