"""
FastAPI app: caption capture, translation sink and meeting assist.

WebSocket /ws/source: browser agent sends JSON
  {"type": "page", "url", "viewport", "root", "mutations"}   page snapshot
  {"type": "captionBatch", "platform", "captions": [{speaker, text}]}
  {"type": "ping"} -> {"type": "pong"}
WebSocket /ws/sink: translation target receives
  {"type": "setBlocks", "blocks": [{speaker, text}], "text"} and {"type": "clear"}
HTTP: session control, transcript copy, reference documents, assist commands (NDJSON stream).
"""
from __future__ import annotations

import json
import logging
import os
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from caption_relay.config import get_settings
from caption_relay.engine import CaptureEngine
from caption_relay.schemas.captions import CaptionBatchMessage, PageMessage
from caption_relay.schemas.session import (
    ActivateRequest,
    DocumentIn,
    DocumentOut,
    StatusResponse,
    TranscriptEntryOut,
    TranscriptResponse,
)
from caption_relay.services.assist import AssistCommand
from caption_relay.services.documents import DocumentLibrary
from caption_relay.services.providers import create_provider
from caption_relay.sink import SinkRouter, WebSocketSink

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Apply LOG_LEVEL and optional LOG_FILE once per process."""
    settings = get_settings()
    level = getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    if not any(getattr(h, "_caption_relay", False) for h in root.handlers):
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        handlers: list[logging.Handler] = [logging.StreamHandler()]
        if settings.LOG_FILE:
            os.makedirs(os.path.dirname(settings.LOG_FILE) or ".", exist_ok=True)
            handlers.append(logging.FileHandler(settings.LOG_FILE, encoding="utf-8"))
        for handler in handlers:
            handler.setFormatter(formatter)
            handler._caption_relay = True
            root.addHandler(handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    _configure_logging()
    settings = get_settings()
    documents = DocumentLibrary()
    if settings.DOCUMENTS_PATH:
        documents.load_file(settings.DOCUMENTS_PATH)
    provider = create_provider(settings)
    if provider is None:
        logger.warning("No AI provider credentials for %s; correction and assist are disabled", settings.AI_PROVIDER)
    engine = CaptureEngine(sink=SinkRouter(), provider=provider, documents=documents)
    if settings.STATE_SAVE_ENABLED:
        await engine.restore()
    app.state.engine = engine
    yield
    await engine.shutdown()
    app.state.engine = None


app = FastAPI(
    title="Caption Relay",
    description="Meeting caption capture to transcript, translation sink and AI assist",
    lifespan=lifespan,
)


def get_engine(request: Request) -> CaptureEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine


def _status(engine: CaptureEngine) -> StatusResponse:
    return StatusResponse(**engine.status())


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.post("/api/session/activate", response_model=StatusResponse)
async def activate(body: ActivateRequest, request: Request) -> StatusResponse:
    engine = get_engine(request)
    await engine.activate(
        source_lang=body.source_lang,
        target_lang=body.target_lang,
        platform=body.platform,
        spelling_correction=body.spelling_correction,
    )
    return _status(engine)


@app.post("/api/session/deactivate", response_model=StatusResponse)
async def deactivate(request: Request) -> StatusResponse:
    engine = get_engine(request)
    await engine.deactivate()
    return _status(engine)


@app.post("/api/session/clear", response_model=StatusResponse)
async def clear(request: Request) -> StatusResponse:
    engine = get_engine(request)
    await engine.clear()
    return _status(engine)


@app.get("/api/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    return _status(get_engine(request))


@app.get("/api/transcript", response_model=TranscriptResponse)
async def transcript(request: Request, count: int | None = Query(None, ge=1)) -> TranscriptResponse:
    """Transcript view (committed + live lines). count = most recent N entries; omitted = all."""
    engine = get_engine(request)
    entries = engine.store.view()
    if count is not None:
        entries = entries[-count:]
    text, n = engine.store.format_tail(count)
    return TranscriptResponse(
        entries=[TranscriptEntryOut(speaker=e.speaker, text=e.text) for e in entries],
        text=text,
        count=n,
    )


@app.get("/api/documents", response_model=list[DocumentOut])
async def list_documents(request: Request) -> list[DocumentOut]:
    engine = get_engine(request)
    return [DocumentOut(**d.to_dict()) for d in engine.assist.documents.documents()]


@app.post("/api/documents", response_model=DocumentOut)
async def add_document(body: DocumentIn, request: Request) -> DocumentOut:
    engine = get_engine(request)
    try:
        doc = engine.assist.documents.add(body.name, body.content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return DocumentOut(**doc.to_dict())


@app.delete("/api/documents/{doc_id}")
async def delete_document(doc_id: str, request: Request) -> dict:
    engine = get_engine(request)
    if not engine.assist.documents.remove(doc_id):
        raise HTTPException(status_code=404, detail="Document not found")
    return {"deleted": doc_id}


@app.post("/api/assist/{command}")
async def assist(command: str, request: Request) -> StreamingResponse:
    """
    Run an assist command and stream its events as NDJSON:
    {"type": "start", "mode"}, {"type": "token", "text"}*, then {"type": "end"} or {"type": "error", "message"}.
    The same command repeated within the debounce interval is rejected with 429.
    """
    engine = get_engine(request)
    try:
        cmd = AssistCommand(command)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown assist command: {command}")
    if not engine.assist.accept(cmd):
        raise HTTPException(status_code=429, detail="Command repeated too quickly")

    async def body():
        async for event in engine.assist.events(cmd):
            yield json.dumps(event.to_dict(), ensure_ascii=False) + "\n"

    return StreamingResponse(body(), media_type="application/x-ndjson")


@app.websocket("/ws/source")
async def websocket_source(websocket: WebSocket) -> None:
    """Observation source: page snapshots and caption batches from the browser agent."""
    await websocket.accept()
    engine: CaptureEngine = websocket.app.state.engine
    handle = f"source-{uuid.uuid4().hex[:8]}"
    engine.handles.register(handle)
    engine.metadata.source_handle = handle
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("Source sent invalid JSON; ignored")
                continue
            kind = message.get("type") if isinstance(message, dict) else None
            try:
                if kind == "page":
                    page = PageMessage.model_validate(message)
                    engine.ingest_page(page.model_dump())
                elif kind == "captionBatch":
                    batch = CaptionBatchMessage.model_validate(message)
                    engine.ingest_batch([c.model_dump() for c in batch.captions], batch.platform)
                elif kind == "ping":
                    # Replies after every earlier message has been applied
                    await websocket.send_text(json.dumps({"type": "pong"}))
                else:
                    logger.info("Unknown source message type %r; ignored", kind)
            except ValidationError as e:
                logger.warning("Invalid %s message: %s", kind, e.errors()[:3])
    except WebSocketDisconnect:
        pass
    finally:
        engine.handles.unregister(handle)
        if engine.metadata.source_handle == handle:
            engine.metadata.source_handle = None


@app.websocket("/ws/sink")
async def websocket_sink(websocket: WebSocket) -> None:
    """Translation sink subscriber: receives full-window replacements."""
    await websocket.accept()
    engine: CaptureEngine = websocket.app.state.engine
    router = engine.sink
    if not isinstance(router, SinkRouter):
        await websocket.close(code=1011)
        return
    handle = router.attach(WebSocketSink(websocket))
    engine.handles.register(handle)
    engine.metadata.sink_handle = handle
    try:
        await router.resend(handle)
        while True:
            # Subscribers do not send anything meaningful; reading detects disconnect
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.info("Sink connection %s closed: %s", handle, e)
    finally:
        router.detach(handle)
        engine.handles.unregister(handle)
        if engine.metadata.sink_handle == handle:
            engine.metadata.sink_handle = None
