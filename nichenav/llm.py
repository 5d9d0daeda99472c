"""
NicheNav Backend: LLM Interactions

One litellm completion per request, configured by the ModelConfig the caller
passes in. No retries and no fallback chain: a failed call surfaces as
UpstreamFailure and the user resubmits.
"""

import time
import warnings

import litellm

from nichenav.config import LLM_CALL_TIMEOUT_SECONDS, generate_error_code, log, settings
from nichenav.errors import UpstreamFailure
from nichenav.models import ModelConfig

# ── Suppress noisy litellm warnings ──────────────────────────────────────────
# litellm internally creates VertexLLM coroutines that sometimes go un-awaited
# when the gemini/ prefix routes through a code path that raises before awaiting.
warnings.filterwarnings(
    "ignore",
    message="coroutine 'VertexLLM.async_completion' was never awaited",
)
litellm.suppress_debug_info = True
litellm.drop_params = True  # Prevent unsupported-param errors across providers


async def call_llm(
    messages: list[dict],
    model_config: ModelConfig,
    user_id: str | None = None,
) -> str:
    """
    Call the configured model once and return its raw text.

    Args:
        messages: List of message dicts (without system prompt: injected here).
        model_config: Model name, sampling parameters, system instruction, optional api key.
        user_id: Optional user ID for logging correlation.

    Returns:
        Raw response content string from the LLM.

    Raises:
        UpstreamFailure: the provider call raised or returned no content.
    """
    full_messages = _inject_system_prompt(messages, model_config)
    model = model_config.model

    log("INFO", "llm call started", user_id=user_id, model=model)
    start = time.perf_counter()

    completion_kwargs = {
        "model": model,
        "messages": full_messages,
        "temperature": model_config.temperature,
        "top_p": model_config.top_p,
        "top_k": model_config.top_k,
        "max_tokens": model_config.max_tokens,
        "timeout": LLM_CALL_TIMEOUT_SECONDS,
        "api_key": model_config.api_key or settings.gemini_api_key,
    }
    # Gemini 2.5 models may need explicit JSON mode to avoid empty content
    # when the model uses "thinking" internally
    if "gemini-2.5" in model:
        completion_kwargs["response_format"] = {"type": "json_object"}

    try:
        response = await litellm.acompletion(**completion_kwargs)
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "llm call failed", user_id=user_id, model=model, error=str(e), error_code=code)
        raise UpstreamFailure(f"LLM call failed: {e}") from e

    duration_ms = int((time.perf_counter() - start) * 1000)
    content = _extract_content(response)

    tokens_used = None
    if hasattr(response, "usage") and response.usage:
        tokens_used = getattr(response.usage, "total_tokens", None)

    if not content:
        log(
            "WARN",
            "llm returned empty content",
            user_id=user_id,
            model=model,
            duration_ms=duration_ms,
            tokens_used=tokens_used,
        )
        raise UpstreamFailure(f"Model {model} returned empty content")

    log(
        "INFO",
        "llm call succeeded",
        user_id=user_id,
        model=model,
        duration_ms=duration_ms,
        tokens_used=tokens_used,
    )
    return content


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions
# ─────────────────────────────────────────────────────────────────────────────


def _inject_system_prompt(messages: list[dict], model_config: ModelConfig) -> list[dict]:
    """
    Prepend the configured system instruction to the message list.
    Returns a new list (does not mutate the input).
    """
    system_msg = {"role": "system", "content": model_config.system_instruction}
    return [system_msg] + list(messages)


def _extract_content(response) -> str:
    if not getattr(response, "choices", None):
        return ""
    msg = response.choices[0].message
    if msg.content:
        return msg.content
    # Gemini 2.5 "thinking" models may return reasoning separately
    if getattr(msg, "reasoning_content", None):
        return msg.reasoning_content
    return ""
