from __future__ import annotations

import os
from typing import Annotated, Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import logging
from pydantic import BaseModel, ConfigDict, Field

from config.settings import Settings, get_settings
from moodroute import __version__
from moodroute.core.memory import (
    MAX_CLIENT_ID_LENGTH,
    ConversationNotFound,
    ConversationStore,
    InMemoryConversationStore,
)
from moodroute.core.prompt import APP_NAME, BOT_PERSONALITY
from moodroute.models import UserProfile
from moodroute.pipeline import generate_chat_reply
from moodroute.ratelimit import RateLimiter
from moodroute.uploads import (
    UploadError,
    compose_user_message,
    extract_image_markers,
    normalize_chat_attachments,
    sanitize_upload_file_name,
    save_upload,
)


logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("moodroute")


def build_store(settings: Settings) -> ConversationStore:
    if settings.database_url:
        from moodroute.core.sql_memory import SqlConversationStore

        return SqlConversationStore(settings.database_url)
    return InMemoryConversationStore()


settings = get_settings()
settings.uploads_dir.mkdir(parents=True, exist_ok=True)
logger.info(
    "Config: env=%s model=%s key_set=%s store=%s",
    settings.app_env,
    settings.openai_model,
    settings.live_api_configured,
    "sql" if settings.database_url else "memory",
)

app = FastAPI(title=APP_NAME, version=__version__)
app.state.store = build_store(settings)
app.state.rate_limiter = RateLimiter(settings.rate_limit_max, settings.rate_limit_window_seconds)

# CORS: allow local frontend during development
if settings.app_env.lower() in {"dev", "development", "local"}:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _client_address(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    if forwarded:
        return forwarded
    return request.client.host if request.client else "unknown"


@app.middleware("http")
async def rate_limit(request: Request, call_next):
    if request.url.path.startswith("/api/"):
        limiter: RateLimiter = request.app.state.rate_limiter
        if not limiter.hit(_client_address(request)):
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Please wait a minute and try again."},
            )
    return await call_next(request)


@app.exception_handler(ConversationNotFound)
async def conversation_not_found(request: Request, exc: ConversationNotFound):
    return JSONResponse(status_code=404, content={"detail": "Conversation not found."})


ClientIdQuery = Annotated[str, Query(min_length=1, max_length=MAX_CLIENT_ID_LENGTH)]


def get_store(request: Request) -> ConversationStore:
    return request.app.state.store


class ChatRequest(BaseModel):
    client_id: str = Field(
        ..., min_length=1, max_length=MAX_CLIENT_ID_LENGTH, description="Unique identifier for user/session"
    )
    message: str = Field(..., description="User's latest message")
    conversation_id: Optional[int] = Field(
        None, description="Stored conversation to read history from and append to"
    )
    history: Optional[List[Dict[str, Any]]] = Field(
        default_factory=list,
        description="Client-managed turns, used only when no conversation_id is given",
    )
    attachments: Optional[List[Dict[str, Any]]] = Field(default_factory=list)


class UploadRequest(BaseModel):
    client_id: str = Field(..., min_length=1, max_length=MAX_CLIENT_ID_LENGTH)
    filename: Optional[str] = None
    data_url: str = Field(..., alias="dataUrl")

    model_config = ConfigDict(populate_by_name=True)


class ConversationCreate(BaseModel):
    client_id: str = Field(..., min_length=1, max_length=MAX_CLIENT_ID_LENGTH)
    title: Optional[str] = None


class ExchangeSave(BaseModel):
    client_id: str = Field(..., min_length=1, max_length=MAX_CLIENT_ID_LENGTH)
    user_message: str = Field(..., alias="userMessage")
    assistant_message: str = Field(..., alias="assistantMessage")

    model_config = ConfigDict(populate_by_name=True)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/meta")
def meta() -> Dict[str, Any]:
    settings = get_settings()
    return {
        "appName": APP_NAME,
        "personality": BOT_PERSONALITY,
        "model": settings.openai_model,
        "liveApiConfigured": settings.live_api_configured,
    }


@app.get("/api/profile")
def read_profile(client_id: ClientIdQuery, request: Request) -> Dict[str, Any]:
    return {"profile": get_store(request).get_profile(client_id).model_dump()}


@app.put("/api/profile")
def update_profile(client_id: ClientIdQuery, payload: Dict[str, Any], request: Request) -> Dict[str, Any]:
    profile = UserProfile.model_validate(payload)
    saved = get_store(request).save_profile(client_id, profile)
    logger.info("Profile saved: client_id=%s visited=%s", client_id, len(saved.visited_places))
    return {"profile": saved.model_dump()}


@app.post("/api/uploads/image", status_code=201)
def upload_image(req: UploadRequest) -> Dict[str, Any]:
    settings = get_settings()
    try:
        url = save_upload(req.data_url, settings.uploads_dir, settings.max_image_upload_bytes)
    except UploadError as exc:
        logger.info("Upload rejected for client_id=%s: %s", req.client_id, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    return {"url": url, "fileName": sanitize_upload_file_name(req.filename)}


@app.get("/api/conversations")
def list_conversations(client_id: ClientIdQuery, request: Request) -> Dict[str, Any]:
    conversations = get_store(request).list_conversations(client_id)
    return {"conversations": [c.model_dump() for c in conversations]}


@app.post("/api/conversations", status_code=201)
def create_conversation(req: ConversationCreate, request: Request) -> Dict[str, Any]:
    conversation = get_store(request).create_conversation(req.client_id, req.title)
    return {"conversation": conversation.model_dump()}


@app.get("/api/conversations/{conversation_id}/messages")
def list_messages(conversation_id: int, client_id: ClientIdQuery, request: Request) -> Dict[str, Any]:
    store = get_store(request)
    conversation = store.get_conversation(client_id, conversation_id)
    messages = store.list_messages(client_id, conversation_id)
    return {
        "conversation": conversation.model_dump(),
        "messages": [
            {
                **m.model_dump(),
                "attachments": [a.model_dump(by_alias=True) for a in extract_image_markers(m.content)],
            }
            for m in messages
        ],
    }


@app.post("/api/conversations/{conversation_id}/messages", status_code=201)
def save_exchange(conversation_id: int, req: ExchangeSave, request: Request) -> Dict[str, Any]:
    settings = get_settings()
    user_message = req.user_message.strip()
    assistant_message = req.assistant_message.strip()
    if not user_message or not assistant_message:
        raise HTTPException(status_code=400, detail="Both userMessage and assistantMessage are required.")
    if (
        len(user_message) > settings.max_message_length
        or len(assistant_message) > settings.max_message_length * 3
    ):
        raise HTTPException(status_code=400, detail="Message too long.")

    saved = get_store(request).append_exchange(req.client_id, conversation_id, user_message, assistant_message)
    return {"saved": [m.model_dump() for m in saved]}


@app.post("/api/conversations/{conversation_id}/clear")
def clear_conversation(conversation_id: int, client_id: ClientIdQuery, request: Request) -> Dict[str, Any]:
    get_store(request).clear_conversation(client_id, conversation_id)
    return {"cleared": True}


@app.delete("/api/conversations/{conversation_id}")
def delete_conversation(conversation_id: int, client_id: ClientIdQuery, request: Request) -> Dict[str, Any]:
    get_store(request).delete_conversation(client_id, conversation_id)
    return {"deleted": True}


@app.post("/api/chat")
async def chat(req: ChatRequest, request: Request) -> Dict[str, Any]:
    settings = get_settings()
    message = req.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message is required.")
    if len(message) > settings.max_message_length:
        raise HTTPException(
            status_code=400,
            detail=f"Message is too long (max {settings.max_message_length} chars).",
        )

    store = get_store(request)
    attachments = normalize_chat_attachments(req.attachments or [])

    if req.conversation_id is not None:
        await run_in_threadpool(store.get_conversation, req.client_id, req.conversation_id)
        history: List[Any] = await run_in_threadpool(
            store.recent_history,
            req.client_id, req.conversation_id, settings.max_context_messages
        )
    else:
        history = list(req.history or [])

    try:
        logger.info(
            "Incoming chat: client_id=%s conversation_id=%s history_turns=%s attachments=%s",
            req.client_id,
            req.conversation_id,
            len(history),
            len(attachments),
        )
        profile = await run_in_threadpool(store.get_profile, req.client_id)
        assistant = await generate_chat_reply(
            message,
            history=history,
            user_profile=profile,
            attachments=attachments,
            settings=settings,
        )
        if req.conversation_id is not None:
            await run_in_threadpool(
                store.append_exchange,
                req.client_id,
                req.conversation_id,
                compose_user_message(message, attachments),
                assistant.reply,
            )
    except ConversationNotFound:
        raise
    except Exception as e:
        logger.exception("Chat processing failed: %s", e)
        raise HTTPException(status_code=500, detail="Chat generation failed.")

    logger.info("Responded in %s mode with %s chars", assistant.mode, len(assistant.reply))
    return {
        "reply": assistant.reply,
        "mode": assistant.mode,
        "personality": BOT_PERSONALITY["name"],
    }


app.mount("/uploads", StaticFiles(directory=settings.uploads_dir, check_dir=False), name="uploads")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
