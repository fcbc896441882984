"""LLM client — multi-provider support (OpenAI, Anthropic, Google).

Every hook stage can use a different provider + model; config decides which.
This layer makes exactly one request per call. Retry and fallback policy
belong to the hook pipeline, which walks its fallback ladder instead.

Error handling:
  - Every provider/SDK failure is converted into an LLMError with a clean,
    readable message.
  - ``LLMError.transient`` tells callers whether the failure was a rate
    limit, server error, timeout or connection problem.
"""

from __future__ import annotations

import logging
import time as _time

import config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Cost estimation (logging only)
# ---------------------------------------------------------------------------

# Pricing per 1M tokens: { model_prefix: (input_$/1M, output_$/1M) }
# Models are matched longest-prefix-first, so "gpt-4o-mini" matches before "gpt-4o".
MODEL_PRICING: dict[str, tuple[float, float]] = {
    # OpenAI
    "gpt-4o-mini":      (0.15,   0.60),
    "gpt-4o":           (2.50,  10.00),
    "gpt-4.1-mini":     (0.40,   1.60),
    "gpt-4.1":          (2.00,   8.00),
    # Anthropic
    "claude-sonnet-4":  (3.00,  15.00),
    "claude-haiku-4":   (1.00,   5.00),
    # Google
    "gemini-2.5-pro":   (1.25,  10.00),
    "gemini-2.5-flash": (0.15,   0.60),
}

# Fallback pricing if a model isn't in the table (conservative estimate)
_FALLBACK_PRICING = (2.50, 10.00)


def get_model_pricing(model: str) -> tuple[float, float]:
    """Find pricing for a model by longest-prefix match."""
    best_match = ""
    for prefix in MODEL_PRICING:
        if model.startswith(prefix) and len(prefix) > len(best_match):
            best_match = prefix
    if best_match:
        return MODEL_PRICING[best_match]
    return _FALLBACK_PRICING


def _log_usage(provider: str, model: str, input_tokens: int, output_tokens: int, elapsed: float):
    in_price, out_price = get_model_pricing(model)
    cost = (input_tokens * in_price + output_tokens * out_price) / 1_000_000
    logger.info(
        "Token usage: %s/%s in=%d out=%d cost=$%.4f latency=%.2fs",
        provider, model, input_tokens, output_tokens, cost, elapsed,
    )


# ---------------------------------------------------------------------------
# Error helpers
# ---------------------------------------------------------------------------

class LLMError(Exception):
    """Clean error from an LLM call with a human-readable message."""

    def __init__(
        self,
        message: str,
        provider: str = "",
        model: str = "",
        cause: Exception | None = None,
        transient: bool = False,
    ):
        self.provider = provider
        self.model = model
        self.cause = cause
        self.transient = transient
        super().__init__(message)


def _is_transient(exc: BaseException) -> bool:
    """Return True for rate limits, server errors, timeouts and connection drops."""
    try:
        from openai import (
            APIConnectionError,
            APITimeoutError,
            InternalServerError,
            RateLimitError,
        )
        if isinstance(exc, (RateLimitError, InternalServerError, APIConnectionError, APITimeoutError)):
            return True
    except ImportError:
        pass

    try:
        from anthropic import (
            APIConnectionError as AnthropicConnError,
            APITimeoutError as AnthropicTimeout,
            InternalServerError as AnthropicInternal,
            RateLimitError as AnthropicRateLimit,
        )
        if isinstance(exc, (AnthropicRateLimit, AnthropicInternal, AnthropicConnError, AnthropicTimeout)):
            return True
    except ImportError:
        pass

    import socket
    if isinstance(exc, (ConnectionError, TimeoutError, socket.timeout)):
        return True

    return False


def _extract_error_message(exc: Exception, provider: str, model: str) -> str:
    """Pull out a clean, human-readable error message from an API exception."""

    msg = str(exc)

    try:
        from openai import BadRequestError, AuthenticationError, NotFoundError, PermissionDeniedError
        if isinstance(exc, BadRequestError):
            body = getattr(exc, "body", None)
            if isinstance(body, dict):
                inner = body.get("error", {})
                if isinstance(inner, dict):
                    msg = inner.get("message", msg)
            return f"[{provider}/{model}] Bad request: {msg}"
        if isinstance(exc, AuthenticationError):
            return f"[{provider}] Authentication failed. Check your OPENAI_API_KEY."
        if isinstance(exc, NotFoundError):
            return f"[{provider}] Model '{model}' not found. Check the model name in config.py or .env."
        if isinstance(exc, PermissionDeniedError):
            return f"[{provider}] Permission denied. Your API key may not have access to '{model}'."
    except ImportError:
        pass

    try:
        from anthropic import BadRequestError as AnthropicBadReq, AuthenticationError as AnthropicAuth, NotFoundError as AnthropicNotFound
        if isinstance(exc, AnthropicBadReq):
            return f"[{provider}/{model}] Bad request: {msg}"
        if isinstance(exc, AnthropicAuth):
            return f"[{provider}] Authentication failed. Check your ANTHROPIC_API_KEY."
        if isinstance(exc, AnthropicNotFound):
            return f"[{provider}] Model '{model}' not found."
    except ImportError:
        pass

    if len(msg) > 300:
        msg = msg[:300] + "..."
    return f"[{provider}/{model}] {msg}"


# ---------------------------------------------------------------------------
# Provider clients (lazy-init singletons)
# ---------------------------------------------------------------------------

_openai_client = None
_anthropic_client = None
_google_client = None


def _get_openai():
    global _openai_client
    if _openai_client is None:
        if not config.OPENAI_API_KEY:
            raise LLMError(
                "OPENAI_API_KEY is not set. Add it to your .env file.",
                provider="openai",
            )
        from openai import OpenAI
        _openai_client = OpenAI(api_key=config.OPENAI_API_KEY, max_retries=0)
    return _openai_client


def _get_anthropic():
    global _anthropic_client
    if _anthropic_client is None:
        if not config.ANTHROPIC_API_KEY:
            raise LLMError(
                "ANTHROPIC_API_KEY is not set. Add it to your .env file.",
                provider="anthropic",
            )
        import anthropic
        _anthropic_client = anthropic.Anthropic(api_key=config.ANTHROPIC_API_KEY, max_retries=0)
    return _anthropic_client


def _get_google():
    global _google_client
    if _google_client is None:
        if not config.GOOGLE_API_KEY:
            raise LLMError(
                "GOOGLE_API_KEY is not set. Add it to your .env file.",
                provider="google",
            )
        from google import genai
        _google_client = genai.Client(api_key=config.GOOGLE_API_KEY)
    return _google_client


# ---------------------------------------------------------------------------
# Provider-specific call implementations
# ---------------------------------------------------------------------------

def _call_openai(
    system_prompt: str,
    user_prompt: str,
    model: str,
    temperature: float,
    max_tokens: int,
    json_mode: bool,
    timeout: float | None,
) -> str:
    client = _get_openai()
    kwargs: dict = {
        "model": model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}
    if timeout is not None:
        kwargs["timeout"] = timeout

    started = _time.time()
    response = client.chat.completions.create(**kwargs)
    content = response.choices[0].message.content or ""
    usage = getattr(response, "usage", None)
    if usage:
        _log_usage("openai", model, usage.prompt_tokens or 0, usage.completion_tokens or 0, _time.time() - started)
    return content


def _call_anthropic(
    system_prompt: str,
    user_prompt: str,
    model: str,
    temperature: float,
    max_tokens: int,
    json_mode: bool,
    timeout: float | None,
) -> str:
    client = _get_anthropic()

    effective_system = system_prompt
    if json_mode:
        effective_system += (
            "\n\nIMPORTANT: Respond ONLY with a valid JSON object. No markdown fences, no explanation, no preamble."
            " Start your response with the opening brace '{' of the JSON object immediately."
        )

    kwargs: dict = {
        "model": model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "system": effective_system,
        "messages": [{"role": "user", "content": user_prompt}],
    }
    if timeout is not None:
        kwargs["timeout"] = timeout

    started = _time.time()
    response = client.messages.create(**kwargs)
    content = "".join(
        getattr(block, "text", "") for block in (response.content or [])
    )
    _log_usage(
        "anthropic",
        model,
        response.usage.input_tokens or 0,
        response.usage.output_tokens or 0,
        _time.time() - started,
    )
    return content


def _call_google(
    system_prompt: str,
    user_prompt: str,
    model: str,
    temperature: float,
    max_tokens: int,
    json_mode: bool,
    timeout: float | None,
) -> str:
    from google.genai import types

    client = _get_google()
    cfg = types.GenerateContentConfig(
        system_instruction=system_prompt,
        temperature=temperature,
        max_output_tokens=max_tokens,
    )
    if json_mode:
        cfg.response_mime_type = "application/json"
    if timeout is not None:
        # google-genai takes the HTTP timeout in milliseconds.
        cfg.http_options = types.HttpOptions(timeout=int(timeout * 1000))

    started = _time.time()
    response = client.models.generate_content(model=model, contents=user_prompt, config=cfg)
    content = response.text or ""
    usage = getattr(response, "usage_metadata", None)
    if usage:
        _log_usage(
            "google",
            model,
            int(getattr(usage, "prompt_token_count", 0) or 0),
            int(getattr(usage, "candidates_token_count", 0) or 0),
            _time.time() - started,
        )
    return content


_PROVIDERS = {
    "openai": _call_openai,
    "anthropic": _call_anthropic,
    "google": _call_google,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def call_llm(
    system_prompt: str,
    user_prompt: str,
    provider: str = "openai",
    model: str | None = None,
    temperature: float = 0.7,
    max_tokens: int = 2_500,
    json_mode: bool = False,
    timeout: float | None = None,
) -> str:
    """Call an LLM once and return raw text. Provider-agnostic.

    Raises LLMError for every failure; ``transient`` marks the ones a
    caller might reasonably try again.
    """
    model = model or config.HOOK_MODEL_PRIMARY
    call_fn = _PROVIDERS.get(provider)
    if not call_fn:
        raise LLMError(
            f"Unknown provider: '{provider}'. Available: {list(_PROVIDERS.keys())}",
            provider=provider,
            model=model,
        )

    logger.info(
        "LLM call: provider=%s, model=%s, temp=%.1f, json=%s, timeout=%s",
        provider, model, temperature, json_mode, timeout,
    )
    try:
        return call_fn(system_prompt, user_prompt, model, temperature, max_tokens, json_mode, timeout)
    except LLMError:
        raise
    except Exception as exc:
        clean_msg = _extract_error_message(exc, provider, model)
        logger.error("LLM call failed: %s", clean_msg)
        raise LLMError(
            clean_msg,
            provider=provider,
            model=model,
            cause=exc,
            transient=_is_transient(exc),
        ) from exc
