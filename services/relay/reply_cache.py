"""Short-lived in-process cache of completed replies."""

from __future__ import annotations

import hashlib
import time
from typing import Dict, Iterable, Optional, Tuple

from models.turn_models import Attachment

CacheKey = Tuple[str, str, str, Tuple[Tuple[str, str], ...], str]


def _digest(data: bytes) -> str:
	return hashlib.sha256(data).hexdigest()


class ReplyCache:
	"""TTL cache keyed by session, message, media URL, attachments, and transcript.

	Attachments and supplied transcripts enter the key as content digests, so a
	same-named upload with different bytes or a new transcript never hits. A
	ttl of 0 disables the cache. Expired entries are purged on access.
	"""

	def __init__(self, ttl: float = 300.0, max_entries: int = 1024) -> None:
		self.ttl = ttl
		self.max_entries = max_entries
		self._entries: Dict[CacheKey, Tuple[float, str]] = {}

	@property
	def enabled(self) -> bool:
		return self.ttl > 0

	@staticmethod
	def key(
		session_id: str,
		message: str,
		media_url: Optional[str],
		attachments: Iterable[Attachment],
		transcript: Optional[str] = None,
	) -> CacheKey:
		files = tuple((a.filename, _digest(a.data)) for a in attachments)
		text = (transcript or "").strip()
		return (
			session_id,
			(message or "").strip(),
			(media_url or "").strip(),
			files,
			_digest(text.encode("utf-8")) if text else "",
		)

	def get(self, key: CacheKey) -> Optional[str]:
		if not self.enabled:
			return None
		entry = self._entries.get(key)
		if entry is None:
			return None
		expires_at, reply = entry
		if expires_at <= time.monotonic():
			del self._entries[key]
			return None
		return reply

	def put(self, key: CacheKey, reply: str) -> None:
		if not self.enabled:
			return
		now = time.monotonic()
		if len(self._entries) >= self.max_entries:
			self._purge(now)
		if len(self._entries) >= self.max_entries:
			# Still full: drop the entry closest to expiry.
			oldest = min(self._entries, key=lambda k: self._entries[k][0])
			del self._entries[oldest]
		self._entries[key] = (now + self.ttl, reply)

	def __len__(self) -> int:
		return len(self._entries)

	def _purge(self, now: float) -> None:
		for key in [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]:
			del self._entries[key]
