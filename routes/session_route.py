"""FastAPI routes for chat sessions."""

from fastapi import APIRouter, HTTPException, Request

from controllers.session_controller import expire_session, get_session, start_session
from models.api_models import SessionCreated, SessionInfo

router = APIRouter(prefix="/sessions")


@router.post("", response_model=SessionCreated)
async def start_session_route(request: Request):
	try:
		return await start_session(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{session_id}", response_model=SessionInfo)
async def get_session_route(request: Request, session_id: str):
	try:
		return await get_session(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/{session_id}", response_model=SessionInfo)
async def expire_session_route(request: Request, session_id: str):
	try:
		return await expire_session(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
