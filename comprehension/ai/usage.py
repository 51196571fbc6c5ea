"""Structured usage logging for LLM calls.

Emits one structured log line per Gateway call with all fields needed for
cost analysis. Machine-parseable via the ``extra`` dict: standard JSON
log formatters (e.g., python-json-logger) pick these up automatically.

Logger name: ``comprehension.ai.usage``

Tier 2 service: imports only stdlib.
"""

import logging

logger = logging.getLogger("comprehension.ai.usage")


def log_ai_call(
    *,
    model_id: str,
    prompt_tokens: int,
    completion_tokens: int,
    latency_ms: float,
    call_type: str,
) -> None:
    """Emits a structured INFO log for a completed LLM call.

    Args:
        model_id: The model identifier used for this call.
        prompt_tokens: Number of input tokens consumed (0 if unknown).
        completion_tokens: Number of output tokens generated (0 if unknown).
        latency_ms: Wall-clock duration of the call in milliseconds.
        call_type: "assessment", "evaluation" or "final_feedback".
    """
    logger.info(
        "AI call: %s %s tokens_in=%d tokens_out=%d latency=%.0fms",
        call_type,
        model_id,
        prompt_tokens,
        completion_tokens,
        latency_ms,
        extra={
            "model_id": model_id,
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "latency_ms": latency_ms,
            "call_type": call_type,
        },
    )
