"""FastAPI route for streamed chat turns."""

from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile

from controllers.chat_controller import stream_chat

router = APIRouter()


@router.post("/chat")
async def post_chat(
	request: Request,
	message: Optional[str] = Form(None),
	files: Optional[List[UploadFile]] = File(None),
	url: Optional[str] = Form(None),
	session_id: Optional[str] = Form(None),
	transcript: Optional[str] = Form(None),
	title: Optional[str] = Form(None),
	author: Optional[str] = Form(None),
):
	"""Stream the assistant's reply to one chat turn as server-sent events."""
	try:
		return await stream_chat(request, message, files, url, session_id, transcript, title, author)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
