"""Recognize which hosting platform a media URL belongs to."""

import re
from enum import Enum
from typing import Optional
from urllib.parse import quote


class Platform(str, Enum):
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    GENERIC = "generic"


_PATTERNS = [
    (Platform.YOUTUBE, re.compile(r"^https?://(www\.|m\.)?(youtube\.com/(watch\?|shorts/|live/)|youtu\.be/)", re.I)),
    (Platform.TIKTOK, re.compile(r"^https?://([a-z]+\.)?tiktok\.com/", re.I)),
    (Platform.INSTAGRAM, re.compile(r"^https?://(www\.)?instagram\.com/(reel|reels|p)/", re.I)),
]

_OEMBED_ENDPOINTS = {
    Platform.YOUTUBE: "https://www.youtube.com/oembed?format=json&url={url}",
    Platform.TIKTOK: "https://www.tiktok.com/oembed?url={url}",
}


def classify_url(media_url: str) -> Platform:
    for platform, pattern in _PATTERNS:
        if pattern.match(media_url):
            return platform
    return Platform.GENERIC


def oembed_endpoint(platform: Platform, media_url: str) -> Optional[str]:
    template = _OEMBED_ENDPOINTS.get(platform)
    if template is None:
        return None
    return template.format(url=quote(media_url, safe=""))
