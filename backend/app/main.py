import logging
import threading

from fastapi import Body, FastAPI, HTTPException, Response
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from app.logging_config import configure_logging
from gm_os.history import HistoryEntry
from gm_os.intents import CacheKind, GmTool
from gm_os.resolver import Resolution
from gm_os.session import (
    BoardSession,
    DocumentsAlreadyLoadedError,
    ScenarioNotLoadedError,
    SessionError,
    SessionSnapshot,
    UnknownDocumentError,
)
from llm.client import OllamaClient
from llm.schemas import dump_response
from scenario.documents import ingest_documents
from scenario.steps import Step, parse_table

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="scenario-board API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

SESSIONS: dict[str, BoardSession] = {}
_SESSIONS_LOCK = threading.Lock()


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "sessions": len(SESSIONS)}


class SessionCreate(BaseModel):
    seed: int | None = None


class ScenarioFile(BaseModel):
    name: str
    content: str


class DocumentUpload(BaseModel):
    files: list[ScenarioFile] = Field(default_factory=list)


class NameRequest(BaseModel):
    name: str


class InputRequest(BaseModel):
    text: str


class ClockDeltaRequest(BaseModel):
    delta: int


class DiceRequest(BaseModel):
    formula: str = "1d6"


def _get_session(run_id: str) -> BoardSession:
    session = SESSIONS.get(run_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _session_error(exc: SessionError) -> HTTPException:
    if isinstance(exc, UnknownDocumentError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (ScenarioNotLoadedError, DocumentsAlreadyLoadedError)):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


@app.post("/sessions")
def create_session(payload: SessionCreate | None = Body(default=None)) -> dict:
    data = payload or SessionCreate()
    session = BoardSession(OllamaClient(), seed=data.seed)
    with _SESSIONS_LOCK:
        SESSIONS[session.run_id] = session
    logger.info("Created session %s", session.run_id)
    return {"run_id": session.run_id, **_snapshot_payload(session.snapshot())}


@app.get("/sessions/{run_id}")
def get_session(run_id: str) -> dict:
    session = _get_session(run_id)
    return _snapshot_payload(session.snapshot())


@app.post("/sessions/{run_id}/documents")
def upload_documents(run_id: str, payload: DocumentUpload) -> dict:
    session = _get_session(run_id)
    store = ingest_documents((item.name, item.content) for item in payload.files)
    try:
        steps = session.load_documents(store)
    except SessionError as exc:
        raise _session_error(exc) from exc
    return {"documents": store.names, "steps": steps}


@app.get("/sessions/{run_id}/documents")
def list_documents(run_id: str) -> list[dict]:
    session = _get_session(run_id)
    return [
        {"name": document.name, "length": len(document.content)}
        for document in session.documents
    ]


@app.post("/sessions/{run_id}/documents/select")
def select_document(run_id: str, payload: NameRequest) -> dict:
    session = _get_session(run_id)
    try:
        entry = session.select_document(payload.name)
    except SessionError as exc:
        raise _session_error(exc) from exc
    return {"entry": _entry_payload(entry), **_snapshot_payload(session.snapshot())}


@app.get("/sessions/{run_id}/steps")
def list_steps(run_id: str) -> list[dict]:
    session = _get_session(run_id)
    payload = []
    for name in session.steps():
        step = session.step(name)
        payload.append(_step_payload(step) if step else {"name": name})
    return payload


@app.get("/sessions/{run_id}/steps/{name}")
def get_step(run_id: str, name: str) -> dict:
    session = _get_session(run_id)
    step = session.step(name)
    if step is None:
        raise HTTPException(status_code=404, detail="Step not found")
    return _step_payload(step)


@app.post("/sessions/{run_id}/steps/select")
def select_step(run_id: str, payload: NameRequest) -> dict:
    session = _get_session(run_id)
    try:
        resolution = session.select_step(payload.name)
    except SessionError as exc:
        raise _session_error(exc) from exc
    return _turn_payload(session, resolution)


@app.post("/sessions/{run_id}/views/{kind}/toggle")
def toggle_view(run_id: str, kind: CacheKind) -> dict:
    session = _get_session(run_id)
    try:
        resolution = session.toggle_cache_view(kind)
    except SessionError as exc:
        raise _session_error(exc) from exc
    return _turn_payload(session, resolution)


@app.post("/sessions/{run_id}/views/close")
def close_view(run_id: str) -> dict:
    session = _get_session(run_id)
    session.close_view()
    return _snapshot_payload(session.snapshot())


@app.post("/sessions/{run_id}/caches/{kind}/refresh")
def refresh_cache(run_id: str, kind: CacheKind) -> dict:
    session = _get_session(run_id)
    try:
        resolution = session.force_refresh(kind)
    except SessionError as exc:
        raise _session_error(exc) from exc
    return _turn_payload(session, resolution)


@app.post("/sessions/{run_id}/input")
def submit_input(run_id: str, payload: InputRequest) -> dict:
    session = _get_session(run_id)
    try:
        resolution = session.submit_input(payload.text)
    except SessionError as exc:
        raise _session_error(exc) from exc
    return _turn_payload(session, resolution)


@app.post("/sessions/{run_id}/tools/{tool}")
def run_tool(run_id: str, tool: GmTool) -> dict:
    session = _get_session(run_id)
    try:
        resolution = session.run_gm_tool(tool)
    except SessionError as exc:
        raise _session_error(exc) from exc
    return _turn_payload(session, resolution)


@app.post("/sessions/{run_id}/clocks/{clock_id}/delta")
def apply_clock_delta(run_id: str, clock_id: str, payload: ClockDeltaRequest) -> dict:
    session = _get_session(run_id)
    try:
        clock = session.apply_clock_delta(clock_id, payload.delta)
    except SessionError as exc:
        raise _session_error(exc) from exc
    if clock is None:
        raise HTTPException(status_code=404, detail="Clock not found")
    return clock.model_dump()


@app.post("/sessions/{run_id}/dice")
def roll_dice(run_id: str, payload: DiceRequest | None = Body(default=None)) -> dict:
    session = _get_session(run_id)
    data = payload or DiceRequest()
    try:
        result = session.roll_dice(data.formula)
    except SessionError as exc:
        raise _session_error(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "formula": result.formula,
        "total": result.total,
        "rolls": result.rolls,
        "modifier": result.modifier,
    }


@app.get("/sessions/{run_id}/history")
def get_history(run_id: str) -> list[dict]:
    session = _get_session(run_id)
    return [_entry_payload(entry) for entry in session.history()]


@app.get("/sessions/{run_id}/export")
def export_history(run_id: str) -> Response:
    session = _get_session(run_id)
    text = session.export()
    if text is None:
        return Response(status_code=204)
    filename = session.export_filename()
    return PlainTextResponse(
        text,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _snapshot_payload(snapshot: SessionSnapshot) -> dict:
    return {
        "state": snapshot.state.model_dump(mode="json", by_alias=True),
        "view": snapshot.view.value,
        "pending": snapshot.pending,
        "pending_fills": snapshot.pending_fills,
        "documents": snapshot.documents,
        "history_size": snapshot.history_size,
    }


def _step_payload(step: Step) -> dict:
    return {
        "name": step.name,
        "start_line": step.start_line,
        "end_line": step.end_line,
        "description": step.description_lines,
        "table": step.table,
        "table_rows": parse_table(step.table),
    }


def _entry_payload(entry: HistoryEntry) -> dict:
    return {
        "timestamp": entry.timestamp.isoformat(),
        "type": entry.type,
        "response": dump_response(entry.response),
    }


def _resolution_payload(resolution: Resolution) -> dict:
    return {
        "intent": resolution.intent.value,
        "hidden": resolution.hidden,
        "failed": resolution.failed,
        "applied": resolution.applied,
        "response": dump_response(resolution.response),
    }


def _turn_payload(session: BoardSession, resolution: Resolution | None) -> dict:
    return {
        "accepted": resolution is not None,
        "resolution": _resolution_payload(resolution) if resolution else None,
        **_snapshot_payload(session.snapshot()),
    }
