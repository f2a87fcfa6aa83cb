from __future__ import annotations

import asyncio
import threading
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from mediamod.blob import BlobGateway, build_blob_gateway
from mediamod.broadcast import BroadcastChannel, ObserverHandle
from mediamod.config import get_settings
from mediamod.db import db_ping, get_engine
from mediamod.errors import MediaError, NotFound, StorageUnavailable, StoreUnavailable, ValidationError
from mediamod.logging_config import configure_logging, get_logger
from mediamod.models import event_message
from mediamod.moderation import ModerationQueue
from mediamod.schemas import (
    AllowedTransitionsOut,
    ModerateIn,
    MediaOut,
    ErrorOut,
    StatesOut,
)
from mediamod.workflow import allowed_transitions, list_states

settings = get_settings()
configure_logging(settings.log_level, settings.json_logs)
logger = get_logger(__name__)

app = FastAPI(title="Media Moderation API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

if settings.blob_backend == "local":
    app.mount("/uploads", StaticFiles(directory=str(settings.upload_dir), check_dir=False), name="uploads")


# -----------------------------
# Collaborators
# -----------------------------
# Process-wide singletons. Sync dependencies run on worker threads, so creation is locked.
_collaborators_lock = threading.Lock()
_channel: BroadcastChannel | None = None
_blob_gateway: BlobGateway | None = None


def get_channel() -> BroadcastChannel:
    global _channel
    if _channel is None:
        with _collaborators_lock:
            if _channel is None:
                _channel = BroadcastChannel(queue_size=settings.observer_queue_size)
    return _channel


def get_blob_gateway() -> BlobGateway:
    global _blob_gateway
    if _blob_gateway is None:
        with _collaborators_lock:
            if _blob_gateway is None:
                _blob_gateway = build_blob_gateway(settings)
    return _blob_gateway


def get_queue(channel: BroadcastChannel = Depends(get_channel)) -> ModerationQueue:
    return ModerationQueue(get_engine(), channel, default_author=settings.default_author)


# -----------------------------
# Error mapping
# -----------------------------
_STATUS_BY_ERROR: list[tuple[type[MediaError], int]] = [
    (ValidationError, 400),
    (NotFound, 404),
    (StoreUnavailable, 503),
    (StorageUnavailable, 503),
]


@app.exception_handler(MediaError)
async def media_error_handler(request: Request, exc: MediaError) -> JSONResponse:
    status_code = 500
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break

    log = logger.warning if status_code < 500 else logger.error
    log(
        "request_error",
        error_type=exc.kind,
        error_message=str(exc),
        status_code=status_code,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(status_code=status_code, content={"error": exc.kind, "message": str(exc)})


# -----------------------------
# Health checks
# -----------------------------
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/readyz")
def readyz():
    try:
        db_ping(get_engine())
    except SQLAlchemyError as e:
        logger.error("readiness_failed", error=str(e))
        raise HTTPException(status_code=503, detail="database unavailable")
    return {"status": "ready", "db": "ok"}


# -----------------------------
# Workflow helpers
# -----------------------------
@app.get("/api/moderation/states", response_model=StatesOut)
def moderation_states():
    states = list_states()
    return {"states": states, "transitions": {s: allowed_transitions(s) for s in states}}


@app.get("/api/media/{media_id}/allowed", response_model=AllowedTransitionsOut)
def media_allowed(media_id: str, queue: ModerationQueue = Depends(get_queue)):
    current = queue.get(media_id)
    return {
        "media_id": media_id,
        "from_status": current.status,
        "allowed": allowed_transitions(current.status),
    }


# -----------------------------
# Media endpoints
# -----------------------------
_ERROR_RESPONSES = {code: {"model": ErrorOut} for code in (400, 404, 503)}


@app.post("/api/upload", response_model=MediaOut, status_code=201, responses=_ERROR_RESPONSES)
def submit_media(
    media: Optional[UploadFile] = File(default=None),
    author: Optional[str] = Form(default=None),
    queue: ModerationQueue = Depends(get_queue),
    blob_gateway: BlobGateway = Depends(get_blob_gateway),
):
    if media is None:
        raise ValidationError("No file uploaded.")

    data = media.file.read()
    if not data:
        raise ValidationError("Uploaded file is empty.")

    url = blob_gateway.upload(data, media.content_type, media.filename or "upload", settings.media_folder)
    return queue.submit(url, author)


@app.get("/api/media", response_model=List[MediaOut])
def list_media(status: Optional[str] = None, queue: ModerationQueue = Depends(get_queue)):
    return queue.list_by_status(status or None)


@app.get("/api/media/{media_id}", response_model=MediaOut)
def get_media(media_id: str, queue: ModerationQueue = Depends(get_queue)):
    return queue.get(media_id)


@app.post("/api/moderate/{media_id}", response_model=MediaOut, responses=_ERROR_RESPONSES)
def moderate_media(media_id: str, body: ModerateIn, queue: ModerationQueue = Depends(get_queue)):
    return queue.moderate(media_id, body.status)


# -----------------------------
# Real-time feed
# -----------------------------
async def _pump_events(websocket: WebSocket, handle: ObserverHandle) -> None:
    while True:
        event = await handle.get()
        await websocket.send_json(event_message(event))


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    # incoming messages are ignored
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@app.websocket("/ws/media")
async def media_feed(websocket: WebSocket, channel: BroadcastChannel = Depends(get_channel)):
    # register before accepting so nothing emitted after the handshake is missed
    handle = channel.connect()
    try:
        await websocket.accept()
        tasks = {
            asyncio.create_task(_pump_events(websocket, handle)),
            asyncio.create_task(_wait_for_disconnect(websocket)),
        }
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.info("observer_stream_closed", observer_id=handle.id, reason=repr(task.exception()))
    finally:
        channel.disconnect(handle)
