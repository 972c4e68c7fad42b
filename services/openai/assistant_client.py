"""Conversation client built on the OpenAI Assistants and Responses APIs.

Text and file turns go through the asynchronous run model: the message is
appended to the conversation thread, a run is started, and the run is
polled until it reaches a terminal status. Image turns skip runs entirely
and make one synchronous Responses call; the exchange is then appended to
the thread in the background so later runs keep the context.
"""

import asyncio
import logging
from typing import AsyncIterator, Optional

import openai
from openai import AsyncOpenAI

from models.turn_models import Attachment, MessageContent, PendingRun, Reply, RunStatus
from services.errors import RunFailed, Timeout, UnsupportedSource, UpstreamUnavailable
from services.openai.image_encoder import VisionImageEncoder
from services.openai.media_inputs import build_vision_input
from services.openai.response_parser import extract_text, latest_reply_for_run, message_text
from services.relay.polling import poll_until

logger = logging.getLogger(__name__)

MAX_RUN_TIMEOUT = 60.0

# Backend statuses that are not named in RunStatus collapse onto it here.
_STATUS_MAP = {
    "queued": RunStatus.QUEUED,
    "in_progress": RunStatus.IN_PROGRESS,
    "requires_action": RunStatus.IN_PROGRESS,
    "cancelling": RunStatus.IN_PROGRESS,
    "completed": RunStatus.COMPLETED,
    "failed": RunStatus.FAILED,
    "incomplete": RunStatus.FAILED,
    "expired": RunStatus.FAILED,
    "cancelled": RunStatus.CANCELLED,
}


class AssistantChatClient:
    """Submit turns to a conversation thread and return the finished reply."""

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        assistant_id: str,
        vision_model: str = "gpt-4o",
        poll_interval: float = 1.0,
        run_timeout: float = 30.0,
        image_encoder: Optional[VisionImageEncoder] = None,
    ) -> None:
        if client is None:
            raise ValueError("AsyncOpenAI client is required.")
        if not assistant_id:
            raise ValueError("An assistant id is required.")
        self.client = client
        self.assistant_id = assistant_id
        self.vision_model = vision_model
        self.poll_interval = poll_interval
        self.run_timeout = min(run_timeout, MAX_RUN_TIMEOUT)
        self.image_encoder = image_encoder or VisionImageEncoder()

    async def create_thread(self) -> str:
        """Create a new remote conversation and return its handle."""
        try:
            thread = await self.client.beta.threads.create()
        except openai.APIError as exc:
            raise UpstreamUnavailable(f"Thread creation failed: {exc}", backend="openai") from exc
        return thread.id

    async def submit(self, handle: str, content: MessageContent, *, timeout: Optional[float] = None) -> Reply:
        """Submit one turn and return the completed reply.

        Image content uses the synchronous vision call; everything else is
        appended to the thread and processed as a run.
        """
        if content.image is not None:
            reply = await self.submit_vision(handle, content.text, content.image)
            reply.append_task = self.record_exchange(handle, content.text, reply.text)
            return reply
        return await self.submit_run(handle, content, timeout=timeout)

    async def submit_run(self, handle: str, content: MessageContent, *, timeout: Optional[float] = None) -> Reply:
        ceiling = min(timeout or self.run_timeout, MAX_RUN_TIMEOUT)
        extra = {}
        if content.file is not None:
            file_id = await self.upload_file(content.file)
            extra["attachments"] = [{"file_id": file_id, "tools": [{"type": "file_search"}]}]

        text = content.text
        if not text and content.file is not None:
            text = f"Please review the attached file {content.file.filename}."
        try:
            await self.client.beta.threads.messages.create(
                handle,
                role="user",
                content=text,
                **extra,
            )
            run = await self.client.beta.threads.runs.create(handle, assistant_id=self.assistant_id)
        except openai.APIError as exc:
            raise UpstreamUnavailable(f"Run submission failed: {exc}", backend="openai") from exc

        pending = PendingRun(run_id=run.id, handle=handle)
        await self._wait_for_run(pending, ceiling)
        return await self._fetch_reply(pending)

    async def submit_vision(self, handle: str, text: str, image: Attachment) -> Reply:
        """Answer an image turn with one Responses call, then record it on the thread."""
        inputs = self._vision_input(text, image)
        try:
            response = await self.client.responses.create(model=self.vision_model, input=inputs)
        except openai.APIError as exc:
            raise UpstreamUnavailable(f"Vision request failed: {exc}", backend="openai") from exc
        return Reply(text=extract_text(response).strip(), handle=handle)

    async def stream_vision(self, text: str, image: Attachment) -> AsyncIterator[str]:
        """Yield reply deltas for an image turn as the model produces them."""
        inputs = self._vision_input(text, image)
        try:
            async with self.client.responses.stream(model=self.vision_model, input=inputs) as stream:
                async for event in stream:
                    if getattr(event, "type", None) == "response.output_text.delta":
                        yield event.delta
        except openai.APIError as exc:
            raise UpstreamUnavailable(f"Vision stream failed: {exc}", backend="openai") from exc

    def record_exchange(self, handle: str, user_text: str, reply_text: str) -> asyncio.Task:
        """Append a finished vision exchange to the thread without blocking the reply."""
        task = asyncio.create_task(self._append_exchange(handle, user_text, reply_text))
        task.add_done_callback(_log_append_failure)
        return task

    async def upload_file(self, attachment: Attachment) -> str:
        try:
            uploaded = await self.client.files.create(
                file=(attachment.filename, attachment.data, attachment.content_type),
                purpose="assistants",
            )
        except openai.APIError as exc:
            raise UpstreamUnavailable(f"File upload failed: {exc}", backend="openai") from exc
        return uploaded.id

    async def ping(self, timeout: float = 5.0) -> bool:
        """Return True when the configured assistant can be looked up."""
        try:
            await asyncio.wait_for(self.client.beta.assistants.retrieve(self.assistant_id), timeout)
        except (openai.APIError, asyncio.TimeoutError) as exc:
            logger.warning("Assistant %s unreachable: %s", self.assistant_id, exc)
            return False
        return True

    def _vision_input(self, text: str, image: Attachment):
        try:
            image_url = self.image_encoder.to_data_url(image.data)
        except ValueError as exc:
            raise UnsupportedSource(f"{image.filename}: {exc}") from exc
        return build_vision_input(text, image_url)

    async def _append_exchange(self, handle: str, user_text: str, reply_text: str) -> None:
        await self.client.beta.threads.messages.create(handle, role="user", content=user_text or "[image]")
        if reply_text:
            await self.client.beta.threads.messages.create(handle, role="assistant", content=reply_text)

    async def _wait_for_run(self, pending: PendingRun, ceiling: float) -> None:
        async def probe() -> PendingRun:
            try:
                run = await self.client.beta.threads.runs.retrieve(pending.run_id, thread_id=pending.handle)
            except openai.APIError as exc:
                raise UpstreamUnavailable(f"Run status check failed: {exc}", backend="openai") from exc
            pending.raw_status = run.status
            pending.status = _STATUS_MAP.get(run.status, RunStatus.IN_PROGRESS)
            return pending

        try:
            await poll_until(
                probe,
                lambda p: p.status.terminal,
                interval=self.poll_interval,
                ceiling=ceiling,
                describe=lambda p: p.raw_status,
                label=f"run {pending.run_id}",
            )
        except Timeout:
            if not pending.status.terminal:
                pending.status = RunStatus.TIMED_OUT
            raise

        if pending.status is not RunStatus.COMPLETED:
            raise RunFailed(pending.raw_status, run_id=pending.run_id)

    async def _fetch_reply(self, pending: PendingRun) -> Reply:
        try:
            page = await self.client.beta.threads.messages.list(
                pending.handle, order="desc", run_id=pending.run_id
            )
        except openai.APIError as exc:
            raise UpstreamUnavailable(f"Reading the reply failed: {exc}", backend="openai") from exc

        message = latest_reply_for_run(page.data, pending.run_id)
        if message is None:
            raise RunFailed("completed_without_reply", run_id=pending.run_id)
        return Reply(
            text=message_text(message).strip(),
            handle=pending.handle,
            run_id=pending.run_id,
            message_id=getattr(message, "id", None),
            created_at=getattr(message, "created_at", None),
        )


def _log_append_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Appending a vision exchange to the thread failed: %s", exc)
