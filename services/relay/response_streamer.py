"""Re-emit assistant replies as word-sized events on an EventChannel."""

from __future__ import annotations

import asyncio
from typing import AsyncIterable, AsyncIterator, List

from services.relay.event_channel import END_MARKER, ChannelClosed, EventChannel

ESCAPED_END_MARKER = "\\" + END_MARKER


def escape_chunk(chunk: str) -> str:
	"""Keep a reply word from ever being read as the end marker."""
	if chunk.startswith("\\") and chunk.lstrip("\\") == END_MARKER:
		return "\\" + chunk
	if chunk == END_MARKER:
		return ESCAPED_END_MARKER
	return chunk


def split_words(text: str) -> List[str]:
	return (text or "").split()


class ResponseStreamer:
	"""Write reply chunks to a channel, pacing them to look incremental."""

	def __init__(self, chunk_delay: float = 0.1) -> None:
		self.chunk_delay = max(0.0, chunk_delay)

	async def emit(self, channel: EventChannel, text: str) -> int:
		"""Stream `text` word by word, then the end marker, then close.

		Returns the number of chunks written.
		"""
		return await self._write(channel, self._paced(split_words(text)))

	async def forward(self, channel: EventChannel, deltas: AsyncIterable[str]) -> int:
		"""Forward upstream deltas as received, then the end marker, then close."""
		return await self._write(channel, deltas)

	async def error(self, channel: EventChannel, message: str) -> None:
		"""Send one human-readable error chunk and terminate the stream."""
		await self._write(channel, _single(message))

	async def finish(self, channel: EventChannel) -> None:
		"""Terminate a stream that may already be closed or abandoned."""
		if channel.closed:
			return
		await channel.send(END_MARKER)
		await channel.close()

	async def _write(self, channel: EventChannel, chunks: AsyncIterable[str]) -> int:
		count = 0
		try:
			async for chunk in chunks:
				if not chunk:
					continue
				await channel.send(escape_chunk(chunk))
				count += 1
		except ChannelClosed:
			return count
		await self.finish(channel)
		return count

	async def _paced(self, words: List[str]) -> AsyncIterator[str]:
		for index, word in enumerate(words):
			if index and self.chunk_delay:
				await asyncio.sleep(self.chunk_delay)
			yield word


async def _single(message: str) -> AsyncIterator[str]:
	yield message
