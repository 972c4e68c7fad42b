"""Validation helpers for uploaded chat attachments."""

from typing import List, Optional, Sequence

from fastapi import HTTPException, UploadFile

from models.turn_models import Attachment
from services.relay.conversation_store import is_valid_session_id


async def read_attachments(
    files: Optional[Sequence[UploadFile]],
    *,
    max_bytes: int,
    max_count: int,
) -> List[Attachment]:
    """Read uploads into attachments, enforcing the count and size caps.

    Empty parts (browsers send one when no file was picked) are skipped.
    """
    uploads = [f for f in (files or []) if f is not None and f.filename]
    if len(uploads) > max_count:
        raise HTTPException(status_code=400, detail=f"At most {max_count} files can be attached.")

    attachments: List[Attachment] = []
    for upload in uploads:
        data = await upload.read(max_bytes + 1)
        if len(data) > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"{upload.filename} exceeds the {max_bytes // (1024 * 1024)}MB limit.",
            )
        if not data:
            continue
        attachments.append(
            Attachment(
                filename=upload.filename,
                content_type=upload.content_type or "application/octet-stream",
                data=data,
            )
        )
    return attachments


def require_session_id(session_id: Optional[str]) -> str:
    """Return a usable session id or raise 400."""
    cleaned = (session_id or "").strip()
    if not is_valid_session_id(cleaned):
        raise HTTPException(status_code=400, detail="Malformed session id.")
    return cleaned
