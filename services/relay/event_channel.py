"""One-directional, append-only event channel between a turn and its HTTP stream."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, List

END_MARKER = "[END]"

_CLOSED = object()


class ChannelClosed(RuntimeError):
	"""Raised when writing to a channel that was closed or abandoned."""


class EventChannel:
	"""Queue of text events consumed by a single reader.

	The writer sends payloads and closes once; the reader iterates until the
	close. `abandon()` is the reader's side of a disconnect: further sends are
	refused so the writer stops producing.
	"""

	def __init__(self) -> None:
		self._queue: asyncio.Queue = asyncio.Queue()
		self._closed = False
		self._abandoned = False

	@property
	def closed(self) -> bool:
		return self._closed

	@property
	def abandoned(self) -> bool:
		return self._abandoned

	async def send(self, payload: str) -> None:
		if self._closed:
			raise ChannelClosed("Channel is closed")
		await self._queue.put(payload)

	async def close(self) -> None:
		if self._closed:
			return
		self._closed = True
		await self._queue.put(_CLOSED)

	def abandon(self) -> None:
		self._abandoned = True
		self._closed = True

	async def __aiter__(self) -> AsyncIterator[str]:
		while True:
			item = await self._queue.get()
			if item is _CLOSED:
				return
			yield item

	async def drain(self) -> List[str]:
		"""Collect every payload until close."""
		return [payload async for payload in self]


def sse_frame(payload: str) -> str:
	"""Format one payload as a `data:` frame; multi-line payloads span several lines."""
	lines = payload.split("\n")
	return "".join(f"data: {line}\n" for line in lines) + "\n"
