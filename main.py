import inspect
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import aiohttp
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI

from models.api_models import FeatureFlags, HealthStatus
from routes.chat_route import router as chat_router
from routes.session_route import router as session_router
from services.openai.assistant_client import AssistantChatClient
from services.relay.chat_orchestrator import ChatSessionOrchestrator
from services.relay.conversation_store import ConversationStore
from services.relay.reply_cache import ReplyCache
from services.relay.response_streamer import ResponseStreamer
from services.transcription.job_transcriber import RemoteJobTranscriber
from services.transcription.oembed import OEmbedMetadata
from services.transcription.platforms import Platform
from services.transcription.router import TranscriptionRouter
from services.transcription.whisper_transcriber import WhisperTranscriber
from utils.app_config import AppConfig, cors_origins_from_env

load_dotenv()  # Load environment variables from .env file if present

logger = logging.getLogger(__name__)


def build_transcription_router(
    config: AppConfig, openai_client: AsyncOpenAI, http_session: aiohttp.ClientSession
) -> TranscriptionRouter:
    """Wire platform -> backend chains from configuration."""
    whisper = WhisperTranscriber(openai_client, http_session, model=config.transcribe_model)
    routes = {}
    if config.transcription_service_enabled:
        job_service = RemoteJobTranscriber(
            http_session,
            endpoint=config.transcription_api_url,
            api_key=config.transcription_api_key,
            poll_interval=config.transcription_poll_interval,
            timeout=config.transcription_timeout,
        )
        for platform in (Platform.YOUTUBE, Platform.TIKTOK, Platform.INSTAGRAM):
            routes[platform] = [job_service, whisper]
    return TranscriptionRouter(routes, default=whisper, metadata=OEmbedMetadata(http_session))


async def _close_quietly(resource) -> None:
    aclose = getattr(resource, "aclose", None) or getattr(resource, "close", None)
    if aclose is None:
        return
    try:
        result = aclose()
        if inspect.isawaitable(result):
            await result
    except Exception as exc:
        # Shutdown errors should not mask the reason the app is stopping.
        logger.warning("Error while closing %s: %s", type(resource).__name__, exc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - configuration from the environment
      - the OpenAI async client and a shared aiohttp session
      - the conversation store, reply cache, and turn orchestrator
    and attach them to `app.state`.
    """
    config = AppConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.state.config = config

    try:
        openai_client = AsyncOpenAI(api_key=config.openai_api_key)
    except Exception as exc:
        raise RuntimeError("Failed to initialize OpenAI Async client") from exc
    app.state.openai_client = openai_client

    http_session = aiohttp.ClientSession()
    app.state.http_session = http_session

    chat_client = AssistantChatClient(
        openai_client,
        assistant_id=config.assistant_id,
        vision_model=config.vision_model,
        poll_interval=config.run_poll_interval,
        run_timeout=config.run_timeout,
    )
    app.state.chat_client = chat_client
    app.state.session_store = ConversationStore(chat_client.create_thread)
    app.state.reply_cache = ReplyCache(ttl=config.reply_cache_ttl)
    app.state.transcriber = build_transcription_router(config, openai_client, http_session)
    app.state.orchestrator = ChatSessionOrchestrator(
        app.state.session_store,
        chat_client,
        ResponseStreamer(chunk_delay=config.stream_chunk_delay),
        transcriber=app.state.transcriber,
        cache=app.state.reply_cache,
        stream_vision=config.stream_vision,
    )
    logger.info("Chat relay ready (assistant %s, vision model %s)", config.assistant_id, config.vision_model)

    try:
        yield
    finally:
        await _close_quietly(http_session)
        await _close_quietly(openai_client)


def create_app(cors_origins: Optional[List[str]] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Browser clients on other origins may call the API; allowed origins come
    from `cors_origins` or CORS_ALLOW_ORIGINS (default: any origin).
    """
    app = FastAPI(lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins if cors_origins is not None else cors_origins_from_env(),
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Session-Id"],
    )

    @app.get("/health", response_model=HealthStatus)
    async def health(request: Request):
        """
        Report configuration and whether the assistant backend answers.
        """
        state = request.app.state
        config = getattr(state, "config", None)
        chat_client = getattr(state, "chat_client", None)
        store = getattr(state, "session_store", None)
        reachable = await chat_client.ping() if chat_client is not None else False
        return HealthStatus(
            openai_available=getattr(state, "openai_client", None) is not None,
            openai_reachable=reachable,
            assistant_id=config.assistant_id if config else None,
            vision_model=config.vision_model if config else None,
            features=FeatureFlags(
                transcription_service=bool(config and config.transcription_service_enabled),
                vision_streaming=bool(config and config.stream_vision),
                reply_cache=bool(config and config.reply_cache_ttl > 0),
            ),
            sessions=len(store) if store is not None else 0,
        )

    # Register application routers
    app.include_router(chat_router)
    app.include_router(session_router)

    return app


app = create_app()
