"""Client for an asynchronous transcription job service.

The service accepts `{"audio_url": ...}`, answers with a job id, and is then
polled until the job reports `completed` (with `text`) or `error`.
"""

import asyncio
import logging
from typing import Any, Dict

import aiohttp

from models.turn_models import Transcript
from services.errors import UnsupportedSource, UpstreamUnavailable
from services.relay.polling import poll_until
from services.transcription.base import validate_media_url

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = {"completed", "error"}


class RemoteJobTranscriber:
    """Submit a media URL for transcription and poll the job to completion."""

    name = "job-service"

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        endpoint: str,
        api_key: str,
        poll_interval: float = 5.0,
        timeout: float = 600.0,
        request_timeout: float = 30.0,
    ) -> None:
        if not endpoint or not api_key:
            raise ValueError("Transcription endpoint and API key are required.")
        self.session = session
        self.endpoint = endpoint.rstrip("/")
        self.headers = {"authorization": api_key, "content-type": "application/json"}
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.request_timeout = aiohttp.ClientTimeout(total=request_timeout)

    async def transcribe(self, media_url: str) -> Transcript:
        media_url = validate_media_url(media_url)
        job = await self._request("POST", self.endpoint, json={"audio_url": media_url})
        job_id = job.get("id")
        if not job_id:
            raise UpstreamUnavailable("Transcription service returned no job id", backend=self.name)
        logger.debug("Transcription job %s submitted for %s", job_id, media_url)

        result = await poll_until(
            lambda: self._request("GET", f"{self.endpoint}/{job_id}"),
            lambda payload: payload.get("status") in TERMINAL_STATUSES,
            interval=self.poll_interval,
            ceiling=self.timeout,
            describe=lambda payload: str(payload.get("status")),
            label=f"transcription job {job_id}",
        )
        if result.get("status") == "error":
            raise UpstreamUnavailable(
                f"Transcription job {job_id} failed: {result.get('error') or 'unknown error'}",
                backend=self.name,
            )
        text = (result.get("text") or "").strip()
        if not text:
            raise UnsupportedSource(f"No speech found in {media_url}")
        return Transcript(text=text, source_url=media_url)

    async def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            async with self.session.request(
                method, url, headers=self.headers, timeout=self.request_timeout, **kwargs
            ) as response:
                if response.status in (400, 404, 422):
                    detail = await response.text()
                    raise UnsupportedSource(f"Transcription service rejected the media: {detail[:200]}")
                response.raise_for_status()
                return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise UpstreamUnavailable(f"Transcription service unreachable: {exc}", backend=self.name) from exc
