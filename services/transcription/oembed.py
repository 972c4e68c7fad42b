"""Title/author lookup through public oEmbed endpoints."""

import asyncio
import logging
from typing import Optional, Tuple

import aiohttp

from services.transcription.platforms import Platform, oembed_endpoint

logger = logging.getLogger(__name__)


class OEmbedMetadata:
    """Fetch media title and author; failures degrade to `(None, None)`."""

    def __init__(self, session: aiohttp.ClientSession, timeout: float = 10.0) -> None:
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def lookup(self, platform: Platform, media_url: str) -> Tuple[Optional[str], Optional[str]]:
        endpoint = oembed_endpoint(platform, media_url)
        if endpoint is None:
            return None, None
        try:
            async with self.session.get(endpoint, timeout=self.timeout) as response:
                response.raise_for_status()
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.debug("oEmbed lookup for %s failed: %s", media_url, exc)
            return None, None
        return data.get("title") or None, data.get("author_name") or None
