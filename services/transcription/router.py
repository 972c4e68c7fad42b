"""Pick a transcription backend for a media URL, with one fallback hop."""

import logging
from typing import Dict, Optional, Sequence

from models.turn_models import Transcript
from services.errors import UnsupportedSource, UpstreamUnavailable
from services.transcription.base import TranscriptionProvider, validate_media_url
from services.transcription.oembed import OEmbedMetadata
from services.transcription.platforms import Platform, classify_url

logger = logging.getLogger(__name__)


class TranscriptionRouter:
    """Route media URLs to platform-specific transcription backends.

    Each platform maps to a chain of at most two providers: the primary and
    one fallback tried only when the primary reports `UpstreamUnavailable`.
    URLs on unknown platforms go to `default` when one is registered.
    """

    def __init__(
        self,
        routes: Dict[Platform, Sequence[TranscriptionProvider]],
        *,
        default: Optional[TranscriptionProvider] = None,
        metadata: Optional[OEmbedMetadata] = None,
    ) -> None:
        self.routes = {platform: list(chain)[:2] for platform, chain in routes.items() if chain}
        self.default = default
        self.metadata = metadata

    @property
    def backends(self) -> Dict[str, list]:
        names = {platform.value: [p.name for p in chain] for platform, chain in self.routes.items()}
        if self.default is not None:
            names.setdefault(Platform.GENERIC.value, [self.default.name])
        return names

    def chain_for(self, platform: Platform) -> Sequence[TranscriptionProvider]:
        chain = self.routes.get(platform)
        if chain:
            return chain
        return [self.default] if self.default is not None else []

    async def transcribe(self, media_url: str) -> Transcript:
        media_url = validate_media_url(media_url)
        platform = classify_url(media_url)
        chain = self.chain_for(platform)
        if not chain:
            raise UnsupportedSource(f"No transcription backend for {platform.value} URL {media_url}")

        primary = chain[0]
        try:
            transcript = await primary.transcribe(media_url)
        except UpstreamUnavailable as exc:
            if len(chain) < 2:
                raise
            fallback = chain[1]
            logger.warning(
                "Transcription backend %s failed for %s (%s); falling back to %s",
                primary.name,
                media_url,
                exc,
                fallback.name,
            )
            transcript = await fallback.transcribe(media_url)

        if self.metadata is not None and not (transcript.title and transcript.author):
            title, author = await self.metadata.lookup(platform, media_url)
            transcript.title = transcript.title or title
            transcript.author = transcript.author or author
        transcript.source_url = transcript.source_url or media_url
        return transcript
