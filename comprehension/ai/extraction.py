"""Response extraction: turns whatever an LLM client returns into text/JSON.

Clients are opaque: the Gemini SDK returns a GenerateContentResponse, older
SDK wrappers nest it under ``response``, REST payloads arrive as dicts, and
the mock returns plain strings. ``extract_text`` normalizes all of them.
When nothing textual is found it returns ``"{}"`` so that JSON parsing still
yields an empty object instead of failing.

Tier 1 leaf: stdlib plus the provider value types.
"""

from __future__ import annotations

import json
from typing import Any

from comprehension.ai.providers.base import UsageInfo

EMPTY_JSON = "{}"


def _field(obj: Any, name: str) -> Any:
    """Reads ``name`` from a mapping key or an attribute, else None."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _first(seq: Any) -> Any:
    if isinstance(seq, (list, tuple)) and seq:
        return seq[0]
    return None


def _nested_response_text(response: Any) -> str | None:
    """Handles ``response.response.text()`` (and a plain string ``text``)."""
    inner = _field(response, "response")
    if inner is None:
        return None
    text = _field(inner, "text")
    if callable(text):
        text = text()
    return text if isinstance(text, str) else None


def _candidate_text(response: Any) -> str | None:
    """Handles ``candidates[0].content.parts[0].text``."""
    candidate = _first(_field(response, "candidates"))
    if candidate is None:
        return None
    content = _field(candidate, "content")
    if content is None:
        return None
    part = _first(_field(content, "parts"))
    if part is None:
        return None
    text = _field(part, "text")
    return text if isinstance(text, str) else None


def extract_text(response: Any) -> str:
    """Returns the text carried by a raw LLM response.

    Shapes tried, in order: plain string, ``output_text``, nested
    ``response.text()``, top-level ``text``, then
    ``candidates[0].content.parts[0].text``.

    Args:
        response: Raw response object, dict, or string.

    Returns:
        The response text, or ``"{}"`` when no text is present.
    """
    if response is None:
        return EMPTY_JSON
    if isinstance(response, str):
        return response

    output_text = _field(response, "output_text")
    if isinstance(output_text, str):
        return output_text

    nested = _nested_response_text(response)
    if nested is not None:
        return nested

    text = _field(response, "text")
    if isinstance(text, str):
        return text

    candidate = _candidate_text(response)
    if candidate is not None:
        return candidate

    return EMPTY_JSON


def _strip_fences(raw: str) -> str:
    """Removes a surrounding ```json ... ``` Markdown block, if any."""
    s = raw.strip()
    if s.startswith("```"):
        s = s.strip("`").strip()
        if s.lower().startswith("json"):
            s = s[4:].strip()
    return s


def parse_json_object(raw: str) -> dict[str, Any]:
    """Parses a JSON object out of model text.

    Accepts pure JSON, JSON wrapped in a Markdown code fence, or JSON with
    chatter around it (the outermost ``{...}`` is used).

    Raises:
        ValueError: If no JSON object can be decoded. ``json.JSONDecodeError``
            is a subclass, so callers catch one type.
    """
    s = _strip_fences(raw)
    if not (s.startswith("{") and s.endswith("}")):
        first = s.find("{")
        last = s.rfind("}")
        if first != -1 and last > first:
            s = s[first : last + 1]

    data = json.loads(s)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def usage_counts(response: Any) -> UsageInfo:
    """Returns the token usage carried by a response, zeros when absent."""
    usage = _field(response, "usage_metadata")
    if usage is None:
        return UsageInfo(prompt_tokens=0, completion_tokens=0)
    prompt = _field(usage, "prompt_token_count")
    completion = _field(usage, "candidates_token_count")
    return UsageInfo(
        prompt_tokens=prompt if isinstance(prompt, int) else 0,
        completion_tokens=completion if isinstance(completion, int) else 0,
    )
