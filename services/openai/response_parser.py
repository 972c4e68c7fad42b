"""Helpers to read replies out of Assistants and Responses API payloads."""

from typing import Any, Iterable, Optional


def message_text(message: Any) -> str:
    """Join the text blocks of a thread message."""
    parts = []
    for block in getattr(message, "content", None) or []:
        if getattr(block, "type", None) != "text":
            continue
        text = getattr(block, "text", None)
        value = getattr(text, "value", None)
        if value:
            parts.append(value)
    return "\n".join(parts)


def latest_reply_for_run(messages: Iterable[Any], run_id: str) -> Optional[Any]:
    """Return the newest assistant message produced by `run_id`, if any."""
    candidates = [
        msg
        for msg in messages
        if getattr(msg, "run_id", None) == run_id and getattr(msg, "role", "assistant") == "assistant"
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda msg: getattr(msg, "created_at", 0) or 0)


def extract_text(response: Any) -> str:
    """Extract the output text from a Responses API payload."""
    text = getattr(response, "output_text", None)
    if text:
        return text
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for content in getattr(item, "content", None) or []:
            if getattr(content, "type", None) == "output_text":
                return getattr(content, "text", "") or ""
    return ""
