"""In-memory mapping from client sessions to remote conversation handles."""

from __future__ import annotations

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional, Set
from uuid import uuid4

from models.session_models import SessionState
from services.errors import InvalidSession

logger = logging.getLogger(__name__)

SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")

HandleFactory = Callable[[], Awaitable[str]]


def is_valid_session_id(session_id: Optional[str]) -> bool:
	return bool(session_id) and bool(SESSION_ID_PATTERN.match(session_id))


class ConversationStore:
	"""Own session -> handle state and serialize turns per session.

	Handles are created lazily through `handle_factory` (one remote thread per
	session). Concurrent first turns for the same session share a single
	creation; turns on one session run one at a time through `turn()`.
	"""

	def __init__(self, handle_factory: HandleFactory) -> None:
		self._handle_factory = handle_factory
		self._sessions: Dict[str, SessionState] = {}
		self._creating: Dict[str, asyncio.Lock] = {}
		# Never pruned: an expired id stays rejected for the life of the process.
		self._expired: Set[str] = set()

	def __len__(self) -> int:
		return len(self._sessions)

	@staticmethod
	def new_session_id() -> str:
		return uuid4().hex

	async def create(self) -> SessionState:
		"""Create a session with a server-generated id and a fresh handle."""
		return await self.get_or_create(self.new_session_id())

	async def get_or_create(self, session_id: str) -> SessionState:
		"""Return the session for `session_id`, creating its handle on first use."""
		self.check_usable(session_id)
		state = self._sessions.get(session_id)
		if state is not None:
			return state

		lock = self._creating.setdefault(session_id, asyncio.Lock())
		try:
			async with lock:
				# Another caller may have finished creating while we waited.
				state = self._sessions.get(session_id)
				if state is not None:
					return state
				self.check_usable(session_id)
				handle = await self._handle_factory()
				state = SessionState(session_id=session_id, handle=handle)
				self._sessions[session_id] = state
				logger.debug("Session %s bound to conversation %s", session_id, handle)
				return state
		finally:
			self._creating.pop(session_id, None)

	def get(self, session_id: str) -> SessionState:
		"""Return a session or raise KeyError if missing."""
		state = self._sessions.get(session_id)
		if state is None:
			raise KeyError(f"Session {session_id} not found")
		return state

	def expire(self, session_id: str) -> SessionState:
		"""Forget a session; its id can no longer be used in this process."""
		state = self._sessions.pop(session_id, None)
		if state is None:
			raise KeyError(f"Session {session_id} not found")
		self._expired.add(session_id)
		return state

	def track_append(self, session_id: str, task: asyncio.Task) -> None:
		"""Register a background conversation append that later turns must wait for."""
		state = self._sessions.get(session_id)
		if state is not None:
			state.pending_append = task

	@asynccontextmanager
	async def turn(self, session_id: str) -> AsyncIterator[SessionState]:
		"""Hold the session exclusively for one turn, in arrival order."""
		state = await self.get_or_create(session_id)
		async with state.turn_lock:
			pending, state.pending_append = state.pending_append, None
			if pending is not None:
				try:
					await pending
				except Exception as exc:
					logger.warning("Previous conversation append for %s failed: %s", session_id, exc)
			state.turns += 1
			yield state

	def check_usable(self, session_id: str) -> None:
		"""Raise InvalidSession for malformed or expired ids."""
		if not is_valid_session_id(session_id):
			raise InvalidSession(f"Malformed session id {session_id!r}")
		if session_id in self._expired:
			raise InvalidSession(f"Session {session_id} has expired")
