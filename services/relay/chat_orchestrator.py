"""Drive one chat turn from validation to a terminated event stream."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional

from models.turn_models import AttachmentKind, MessageContent, Transcript, Turn
from services.errors import EmptyTurn, RelayError, RunFailed, Timeout, UnsupportedSource
from services.openai.assistant_client import AssistantChatClient
from services.openai.media_inputs import build_turn_text
from services.relay.conversation_store import ConversationStore
from services.relay.event_channel import EventChannel
from services.relay.reply_cache import ReplyCache
from services.relay.response_streamer import ResponseStreamer
from services.transcription.router import TranscriptionRouter

logger = logging.getLogger(__name__)


class ChatSessionOrchestrator:
	"""Run a turn: validate, transcribe, submit, stream.

	Every outcome ends the channel with the end marker. Failures are logged
	here and turned into one human-readable chunk; nothing below this class
	writes user-facing error text.
	"""

	def __init__(
		self,
		store: ConversationStore,
		chat_client: AssistantChatClient,
		streamer: ResponseStreamer,
		*,
		transcriber: Optional[TranscriptionRouter] = None,
		cache: Optional[ReplyCache] = None,
		stream_vision: bool = False,
	) -> None:
		self.store = store
		self.chat_client = chat_client
		self.streamer = streamer
		self.transcriber = transcriber
		self.cache = cache
		self.stream_vision = stream_vision

	async def handle_turn(self, turn: Turn, channel: EventChannel) -> None:
		"""Process `turn` and write its reply (or one error chunk) to `channel`."""
		started = time.monotonic()
		context = {"handle": None}
		try:
			await self._run(turn, channel, context)
		except asyncio.CancelledError:
			channel.abandon()
			raise
		except RelayError as exc:
			self._log_failure(turn, context, exc, started)
			await self.streamer.error(channel, exc.user_message)
		except Exception:
			logger.exception(
				"Turn for session %s failed unexpectedly after %.1fs (conversation %s)",
				turn.session_id,
				time.monotonic() - started,
				context["handle"],
			)
			await self.streamer.error(channel, RelayError.user_message)
		finally:
			await self.streamer.finish(channel)

	async def _run(self, turn: Turn, channel: EventChannel, context: dict) -> None:
		if turn.is_empty():
			raise EmptyTurn("Turn has no message, attachment, media URL, or transcript")
		self.store.check_usable(turn.session_id)

		cache_key = ReplyCache.key(
			turn.session_id,
			turn.message,
			turn.media_url,
			turn.attachments,
			transcript=turn.transcript.text if turn.transcript is not None else None,
		)

		# Held through transcription: same-session turns reach the conversation in arrival order.
		async with self.store.turn(turn.session_id) as session:
			context["handle"] = session.handle
			reply_text = self.cache.get(cache_key) if self.cache is not None else None
			if reply_text is not None:
				logger.debug("Reply cache hit for session %s", turn.session_id)
			else:
				transcript = await self._transcript_for(turn)
				content = self._content_for(turn, transcript)
				if content.image is not None and self.stream_vision:
					await self._forward_vision(channel, turn.session_id, session.handle, content)
					return
				reply = await self.chat_client.submit(session.handle, content)
				if reply.append_task is not None:
					self.store.track_append(turn.session_id, reply.append_task)
				reply_text = reply.text
				if self.cache is not None and reply_text:
					self.cache.put(cache_key, reply_text)

		await self.streamer.emit(channel, reply_text)

	async def _transcript_for(self, turn: Turn) -> Optional[Transcript]:
		if turn.transcript is not None and turn.transcript.text.strip():
			transcript = turn.transcript
			if turn.media_url and not transcript.source_url:
				transcript.source_url = turn.media_url.strip()
			return transcript
		if not (turn.media_url or "").strip():
			return None
		if self.transcriber is None:
			raise UnsupportedSource("Media transcription is not configured")
		return await self.transcriber.transcribe(turn.media_url)

	@staticmethod
	def _content_for(turn: Turn, transcript: Optional[Transcript]) -> MessageContent:
		content = MessageContent(text=build_turn_text(turn.message, transcript))
		attachment = turn.primary_attachment()
		if attachment is None:
			return content
		if attachment.kind is AttachmentKind.IMAGE:
			content.image = attachment
		else:
			content.file = attachment
		return content

	async def _forward_vision(
		self, channel: EventChannel, session_id: str, handle: str, content: MessageContent
	) -> None:
		collected: List[str] = []

		async def relay():
			async for delta in self.chat_client.stream_vision(content.text, content.image):
				collected.append(delta)
				yield delta

		await self.streamer.forward(channel, relay())
		task = self.chat_client.record_exchange(handle, content.text, "".join(collected).strip())
		self.store.track_append(session_id, task)

	@staticmethod
	def _log_failure(turn: Turn, context: dict, exc: RelayError, started: float) -> None:
		details = ""
		if isinstance(exc, RunFailed):
			details = f" run={exc.run_id} status={exc.status}"
		elif isinstance(exc, Timeout):
			details = f" last_status={exc.last_status} job_elapsed={exc.elapsed:.1f}s"
		elif getattr(exc, "backend", None):
			details = f" backend={exc.backend}"
		logger.warning(
			"Turn for session %s failed with %s after %.1fs (conversation %s)%s: %s",
			turn.session_id,
			type(exc).__name__,
			time.monotonic() - started,
			context["handle"],
			details,
			exc,
		)
