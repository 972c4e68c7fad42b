"""Shared contract for media transcription backends."""

from typing import Protocol
from urllib.parse import urlparse

from models.turn_models import Transcript
from services.errors import UnsupportedSource


class TranscriptionProvider(Protocol):
    """Turn a media URL into transcript text plus optional title/author."""

    name: str

    async def transcribe(self, media_url: str) -> Transcript:
        ...


def validate_media_url(media_url: str) -> str:
    """Return the trimmed URL or raise UnsupportedSource for unusable references."""
    cleaned = (media_url or "").strip()
    if not cleaned:
        raise UnsupportedSource("Media URL is empty")
    parsed = urlparse(cleaned)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise UnsupportedSource(f"Not an http(s) media URL: {cleaned!r}")
    return cleaned
