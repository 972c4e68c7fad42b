from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class AttachmentKind(str, Enum):
    IMAGE = "image"
    FILE = "file"


@dataclass
class Attachment:
    """One uploaded file carried by a turn.

    Attributes:
        filename: Client-side filename (used for cache keys and uploads).
        content_type: Declared MIME type from the multipart part.
        data: Raw bytes of the upload.
    """

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def kind(self) -> AttachmentKind:
        mime = (self.content_type or "").lower().split(";", 1)[0].strip()
        return AttachmentKind.IMAGE if mime.startswith("image/") else AttachmentKind.FILE


@dataclass
class Transcript:
    """Transcript text plus the minimal metadata shown to the model."""

    text: str
    title: Optional[str] = None
    author: Optional[str] = None
    source_url: Optional[str] = None


@dataclass
class Turn:
    """A single inbound chat request.

    Attributes:
        session_id: Session the turn belongs to.
        message: User text, possibly empty.
        attachments: Uploaded files in arrival order.
        media_url: Optional video/audio URL to transcribe first.
        transcript: Optional transcript supplied by the client.
    """

    session_id: str
    message: str = ""
    attachments: List[Attachment] = field(default_factory=list)
    media_url: Optional[str] = None
    transcript: Optional[Transcript] = None

    def is_empty(self) -> bool:
        return not (
            self.message.strip()
            or self.attachments
            or (self.media_url or "").strip()
            or (self.transcript and self.transcript.text.strip())
        )

    def primary_attachment(self) -> Optional[Attachment]:
        """Return the one attachment processed for this turn; images win over files."""
        for attachment in self.attachments:
            if attachment.kind is AttachmentKind.IMAGE:
                return attachment
        return self.attachments[0] if self.attachments else None


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"

    @property
    def terminal(self) -> bool:
        return self in (RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.CANCELLED, RunStatus.TIMED_OUT)


@dataclass
class PendingRun:
    """One asynchronous job the backend performs against a conversation handle."""

    run_id: str
    handle: str
    status: RunStatus = RunStatus.QUEUED
    raw_status: str = "queued"
    started_at: float = field(default_factory=time.monotonic)

    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


@dataclass
class MessageContent:
    """What gets submitted for one turn: text plus at most one attachment."""

    text: str
    image: Optional[Attachment] = None
    file: Optional[Attachment] = None


@dataclass
class Reply:
    """A completed assistant reply."""

    text: str
    handle: str
    run_id: Optional[str] = None
    message_id: Optional[str] = None
    created_at: Optional[int] = None
    # Background append of a vision exchange to the conversation thread.
    append_task: Optional[asyncio.Task] = field(default=None, repr=False)
