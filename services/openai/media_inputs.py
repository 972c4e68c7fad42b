"""Utilities to build the text and multimodal payloads sent to OpenAI."""

import base64
from typing import Any, Dict, List, Optional

from models.turn_models import Transcript

DEFAULT_IMAGE_PROMPT = "Describe this image."


def to_image_data_url(image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
    """Convert raw image bytes into a data URL suitable for vision input."""
    if not image_bytes:
        raise ValueError("Image bytes are required for vision input.")
    b64_str = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type};base64,{b64_str}"


def build_turn_text(message: str, transcript: Optional[Transcript] = None) -> str:
    """Compose the text submitted for a turn.

    With a transcript the model gets grounding context before the question,
    one field per line: title, author, source URL, transcript, user query.
    Unknown title, author, or URL lines are left out.
    """
    query = (message or "").strip()
    if transcript is None:
        return query

    lines: List[str] = []
    if transcript.title:
        lines.append(f"Title: {transcript.title}")
    if transcript.author:
        lines.append(f"Author: {transcript.author}")
    if transcript.source_url:
        lines.append(f"URL: {transcript.source_url}")
    lines.append(f"Transcript: {transcript.text.strip()}")
    lines.append(f"User query: {query}")
    return "\n".join(lines)


def build_vision_input(text: Optional[str], image_url: str) -> List[Dict[str, Any]]:
    """Build the Responses API input with the user text and one inline image."""
    prompt = (text or "").strip() or DEFAULT_IMAGE_PROMPT
    return [
        {
            "type": "message",
            "role": "user",
            "content": [
                {"type": "input_text", "text": prompt},
                {"type": "input_image", "image_url": image_url},
            ],
        }
    ]
