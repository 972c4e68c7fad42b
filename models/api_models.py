"""Response schemas for the relay's JSON endpoints."""

from typing import Optional

from pydantic import BaseModel


class SessionCreated(BaseModel):
    session_id: str
    handle: str


class SessionInfo(BaseModel):
    session_id: str
    handle: str
    created_at: float
    turns: int = 0
    expired: bool = False


class FeatureFlags(BaseModel):
    transcription_service: bool = False
    vision_streaming: bool = False
    reply_cache: bool = False


class HealthStatus(BaseModel):
    ok: bool = True
    openai_available: bool = False
    openai_reachable: bool = False
    assistant_id: Optional[str] = None
    vision_model: Optional[str] = None
    features: FeatureFlags = FeatureFlags()
    sessions: int = 0
