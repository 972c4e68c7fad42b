import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

MAX_RUN_TIMEOUT = 60.0


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


def _int_env(name: str, default: int) -> int:
    return int(_float_env(name, default))


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _optional_env(name: str) -> Optional[str]:
    raw = os.getenv(name)
    return raw.strip() if raw and raw.strip() else None


def _list_env(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = _optional_env(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def cors_origins_from_env() -> List[str]:
    """Origins allowed to call the API from a browser (CORS_ALLOW_ORIGINS, comma separated)."""
    return list(_list_env("CORS_ALLOW_ORIGINS", AppConfig.cors_allow_origins))


@dataclass
class AppConfig:
    """
    Runtime settings read from the environment (optionally via a .env file).

    - OPENAI_API_KEY and OPENAI_ASSISTANT_ID are required; `from_env()`
      raises RuntimeError when either is missing.
    - RUN_TIMEOUT is clamped to MAX_RUN_TIMEOUT seconds.
    - The remote job transcription service is enabled only when both
      TRANSCRIPTION_API_URL and TRANSCRIPTION_API_KEY are set.
    """

    openai_api_key: str
    assistant_id: str
    vision_model: str = "gpt-4o"
    transcribe_model: str = "whisper-1"
    run_poll_interval: float = 1.0
    run_timeout: float = 30.0
    transcription_poll_interval: float = 5.0
    transcription_timeout: float = 600.0
    stream_chunk_delay: float = 0.1
    reply_cache_ttl: float = 300.0
    max_attachment_bytes: int = 5 * 1024 * 1024
    max_attachments: int = 5
    transcription_api_url: Optional[str] = None
    transcription_api_key: Optional[str] = None
    stream_vision: bool = False
    log_level: str = "INFO"
    cors_allow_origins: Tuple[str, ...] = ("*",)

    @property
    def transcription_service_enabled(self) -> bool:
        return bool(self.transcription_api_url and self.transcription_api_key)

    @classmethod
    def from_env(cls) -> "AppConfig":
        api_key = _optional_env("OPENAI_API_KEY")
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY environment variable is not set")
        assistant_id = _optional_env("OPENAI_ASSISTANT_ID")
        if not assistant_id:
            raise RuntimeError("OPENAI_ASSISTANT_ID environment variable is not set")

        return cls(
            openai_api_key=api_key,
            assistant_id=assistant_id,
            vision_model=_optional_env("OPENAI_VISION_MODEL") or cls.vision_model,
            transcribe_model=_optional_env("OPENAI_TRANSCRIBE_MODEL") or cls.transcribe_model,
            run_poll_interval=_float_env("RUN_POLL_INTERVAL", cls.run_poll_interval),
            run_timeout=min(_float_env("RUN_TIMEOUT", cls.run_timeout), MAX_RUN_TIMEOUT),
            transcription_poll_interval=_float_env("TRANSCRIPTION_POLL_INTERVAL", cls.transcription_poll_interval),
            transcription_timeout=_float_env("TRANSCRIPTION_TIMEOUT", cls.transcription_timeout),
            stream_chunk_delay=_float_env("STREAM_CHUNK_DELAY", cls.stream_chunk_delay),
            reply_cache_ttl=_float_env("REPLY_CACHE_TTL", cls.reply_cache_ttl),
            max_attachment_bytes=_int_env("MAX_ATTACHMENT_BYTES", cls.max_attachment_bytes),
            max_attachments=_int_env("MAX_ATTACHMENTS", cls.max_attachments),
            transcription_api_url=_optional_env("TRANSCRIPTION_API_URL"),
            transcription_api_key=_optional_env("TRANSCRIPTION_API_KEY"),
            stream_vision=_bool_env("STREAM_VISION"),
            log_level=(_optional_env("LOG_LEVEL") or cls.log_level).upper(),
            cors_allow_origins=_list_env("CORS_ALLOW_ORIGINS", cls.cors_allow_origins),
        )
