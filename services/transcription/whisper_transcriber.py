"""Best-effort direct transcription: download the media and send it to OpenAI."""

import asyncio
import io
import logging
import os
from typing import Optional
from urllib.parse import urlparse

import aiohttp
import openai
from openai import AsyncOpenAI

from models.turn_models import Transcript
from services.errors import UnsupportedSource, UpstreamUnavailable
from services.transcription.base import validate_media_url

logger = logging.getLogger(__name__)

TRANSCRIBE_MODEL = "whisper-1"

# OpenAI rejects transcription uploads above 25 MB.
MAX_MEDIA_BYTES = 25 * 1024 * 1024

_EXTENSIONS = {"flac", "m4a", "mp3", "mp4", "mpeg", "mpga", "oga", "ogg", "wav", "webm"}

_MIME_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mp4": "mp4",
    "audio/aac": "m4a",
    "audio/ogg": "oga",
    "audio/flac": "flac",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/mpeg": "mpeg",
}


def _filename_for(media_url: str, content_type: Optional[str]) -> str:
    """Pick an upload filename whose extension the transcription API accepts."""
    mime = (content_type or "").lower().split(";", 1)[0].strip()
    if mime in _MIME_EXTENSIONS:
        return f"media.{_MIME_EXTENSIONS[mime]}"
    suffix = os.path.splitext(urlparse(media_url).path)[1].lstrip(".").lower()
    if suffix in _EXTENSIONS:
        return f"media.{suffix}"
    raise UnsupportedSource(f"Unsupported media type '{content_type}' at {media_url}")


class WhisperTranscriber:
    """Transcribe directly downloadable audio/video files."""

    name = "whisper"

    def __init__(
        self,
        client: AsyncOpenAI,
        session: aiohttp.ClientSession,
        *,
        model: str = TRANSCRIBE_MODEL,
        max_bytes: int = MAX_MEDIA_BYTES,
        download_timeout: float = 120.0,
    ) -> None:
        if client is None:
            raise ValueError("OpenAI client is required for transcription.")
        self.client = client
        self.session = session
        self.model = model
        self.max_bytes = max_bytes
        self.download_timeout = aiohttp.ClientTimeout(total=download_timeout)

    async def transcribe(self, media_url: str) -> Transcript:
        media_url = validate_media_url(media_url)
        media, filename = await self._download(media_url)

        audio_file = io.BytesIO(media)
        audio_file.name = filename
        try:
            response = await self.client.audio.transcriptions.create(model=self.model, file=audio_file)
        except openai.BadRequestError as exc:
            raise UnsupportedSource(f"Transcription rejected {media_url}: {exc}") from exc
        except openai.APIError as exc:
            raise UpstreamUnavailable(f"OpenAI transcription request failed: {exc}", backend=self.name) from exc

        transcript = (getattr(response, "text", None) or "").strip()
        if not transcript:
            raise UnsupportedSource(f"No speech found in {media_url}")
        return Transcript(text=transcript, source_url=media_url)

    async def _download(self, media_url: str):
        try:
            async with self.session.get(media_url, timeout=self.download_timeout) as response:
                if response.status >= 400 and response.status < 500:
                    raise UnsupportedSource(f"Media URL answered HTTP {response.status}")
                response.raise_for_status()
                content_type = response.headers.get("Content-Type")
                if content_type and content_type.lower().startswith("text/"):
                    raise UnsupportedSource(f"{media_url} is a web page, not a media file")
                filename = _filename_for(media_url, content_type)

                buffer = bytearray()
                async for chunk in response.content.iter_chunked(64 * 1024):
                    buffer.extend(chunk)
                    if len(buffer) > self.max_bytes:
                        raise UnsupportedSource(f"Media at {media_url} exceeds {self.max_bytes} bytes")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise UpstreamUnavailable(f"Downloading {media_url} failed: {exc}", backend=self.name) from exc
        return bytes(buffer), filename
