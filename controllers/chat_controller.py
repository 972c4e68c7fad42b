import asyncio
import logging
from typing import AsyncIterator, List, Optional

from fastapi import Request, UploadFile
from fastapi.responses import StreamingResponse

from models.turn_models import Transcript, Turn
from services.relay.chat_orchestrator import ChatSessionOrchestrator
from services.relay.conversation_store import ConversationStore
from services.relay.event_channel import EventChannel, sse_frame
from utils.media_validation import read_attachments, require_session_id

logger = logging.getLogger(__name__)


async def stream_chat(
    request: Request,
    message: Optional[str],
    files: Optional[List[UploadFile]],
    url: Optional[str],
    session_id: Optional[str],
    transcript: Optional[str] = None,
    title: Optional[str] = None,
    author: Optional[str] = None,
) -> StreamingResponse:
    """Accept a chat turn and stream the assistant reply as server-sent events.

    Args:
        request: FastAPI Request (used to access app.state for shared services).
        message: User text, may be empty.
        files: Uploaded attachments; the first image (or else the first file) is used.
        url: Optional video/audio URL to transcribe before answering.
        session_id: Conversation to continue; a new id is minted when absent.
        transcript: Optional transcript already produced by the client.
        title: Optional media title accompanying `transcript`.
        author: Optional media author accompanying `transcript`.

    Returns:
        A `text/event-stream` response whose frames are `data: <word>` and a
        final `data: [END]`. The resolved session id is sent in `X-Session-Id`.
    """
    config = request.app.state.config
    orchestrator: ChatSessionOrchestrator = request.app.state.orchestrator

    attachments = await read_attachments(
        files, max_bytes=config.max_attachment_bytes, max_count=config.max_attachments
    )
    if session_id and session_id.strip():
        resolved_id = require_session_id(session_id)
    else:
        resolved_id = ConversationStore.new_session_id()

    supplied = None
    if transcript and transcript.strip():
        supplied = Transcript(
            text=transcript.strip(),
            title=(title or "").strip() or None,
            author=(author or "").strip() or None,
        )

    turn = Turn(
        session_id=resolved_id,
        message=(message or "").strip(),
        attachments=attachments,
        media_url=(url or "").strip() or None,
        transcript=supplied,
    )

    channel = EventChannel()
    task = asyncio.create_task(orchestrator.handle_turn(turn, channel))
    return StreamingResponse(
        _event_stream(channel, task),
        media_type="text/event-stream",
        headers={"X-Session-Id": resolved_id, "Cache-Control": "no-cache"},
    )


async def _event_stream(channel: EventChannel, task: asyncio.Task) -> AsyncIterator[str]:
    completed = False
    try:
        async for payload in channel:
            yield sse_frame(payload)
        completed = True
    finally:
        if not completed and not task.done():
            # Client went away: stop emitting and stop waiting on the remote job.
            logger.info("Client disconnected mid-stream; abandoning turn")
            channel.abandon()
            task.cancel()
