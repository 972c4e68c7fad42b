"""Session lifecycle helpers for the chat relay."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import HTTPException, Request

from models.session_models import SessionState
from services.relay.conversation_store import ConversationStore


def _describe(state: SessionState) -> Dict[str, Any]:
	return {
		"session_id": state.session_id,
		"handle": state.handle,
		"created_at": state.created_at,
		"turns": state.turns,
	}


async def start_session(request: Request) -> Dict[str, Any]:
	"""Create a new session bound to a fresh remote conversation."""
	store: ConversationStore = request.app.state.session_store
	state = await store.create()
	return {"session_id": state.session_id, "handle": state.handle}


async def get_session(request: Request, session_id: str) -> Dict[str, Any]:
	"""Return what the relay knows about a session."""
	store: ConversationStore = request.app.state.session_store
	try:
		state = store.get(session_id)
	except KeyError as exc:  # pragma: no cover - translated to HTTP
		raise HTTPException(status_code=404, detail=str(exc)) from exc
	return _describe(state)


async def expire_session(request: Request, session_id: str) -> Dict[str, Any]:
	"""Forget a session; the remote conversation itself is left alone."""
	store: ConversationStore = request.app.state.session_store
	try:
		state = store.expire(session_id)
	except KeyError as exc:  # pragma: no cover - translated to HTTP
		raise HTTPException(status_code=404, detail=str(exc)) from exc
	return {**_describe(state), "expired": True}
