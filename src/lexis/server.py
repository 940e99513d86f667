import logging
import time
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from lexis.application.config import resolve_config
from lexis.application.coordinator import SessionCoordinator
from lexis.application.factory import build_coordinator
from lexis.application.responses import (
    ActionResult,
    CardResult,
    CreateSessionResponse,
    NextCardResponse,
    PauseResponse,
    PreviewResponse,
    RecordResultResponse,
    ResumeResponse,
    RetryCardsResponse,
    SessionConfig,
    SessionStatusResponse,
    SkipRetryResponse,
    SummaryResponse,
    UndoResponse,
)
from lexis.consts import VERSION
from lexis.domain.models import ReviewResult
from lexis.domain.outcome import FailureKind

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("lexis.server")

STATUS_BY_KIND = {
    FailureKind.VALIDATION: 400,
    FailureKind.NOT_FOUND: 404,
    FailureKind.PERSISTENCE: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Lexis Server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("Lexis Server shutting down...")


app = FastAPI(
    title="Lexis Server",
    description="Study session API for the lexis vocabulary trainer.",
    version=VERSION,
    lifespan=lifespan,
)


@lru_cache
def get_coordinator() -> SessionCoordinator:
    return build_coordinator(resolve_config())


def _unwrap(response: ActionResult) -> ActionResult:
    """Raise an HTTPException for failed responses."""
    if not response.success:
        status = STATUS_BY_KIND.get(response.error_kind, 500)
        raise HTTPException(status_code=status, detail=response.error)
    return response


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


# ---------- Session ----------


@app.post("/session", response_model=CreateSessionResponse)
def create_session(
    config: SessionConfig, coordinator: SessionCoordinator = Depends(get_coordinator)
):
    """
    Start a new session. Omitted fields fall back to the configured defaults.
    """
    logger.info(f"Session requested via API: {config.deck_ids}")
    return _unwrap(coordinator.create_session(config.model_dump(exclude_unset=True)))


@app.get("/session", response_model=SessionStatusResponse)
def get_session(coordinator: SessionCoordinator = Depends(get_coordinator)):
    return _unwrap(coordinator.get_session())


@app.get("/session/next", response_model=NextCardResponse)
def next_card(coordinator: SessionCoordinator = Depends(get_coordinator)):
    return _unwrap(coordinator.get_next_card())


@app.post("/session/cards/{card_id}/result", response_model=RecordResultResponse)
def record_result(
    card_id: str,
    result: CardResult,
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    return _unwrap(coordinator.record_card_result(card_id, result.action, result.response_time))


@app.get("/session/cards/{card_id}/preview", response_model=PreviewResponse)
def preview(
    card_id: str,
    action: ReviewResult,
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    return _unwrap(coordinator.preview_next_review(card_id, action))


@app.post("/session/pause", response_model=PauseResponse)
def pause(coordinator: SessionCoordinator = Depends(get_coordinator)):
    return _unwrap(coordinator.pause_session())


@app.post("/session/resume", response_model=ResumeResponse)
def resume(
    token: str | None = None, coordinator: SessionCoordinator = Depends(get_coordinator)
):
    return _unwrap(coordinator.resume_session(token))


@app.post("/session/undo", response_model=UndoResponse)
def undo(coordinator: SessionCoordinator = Depends(get_coordinator)):
    return _unwrap(coordinator.undo_last_action())


@app.post("/session/complete", response_model=SummaryResponse)
def complete(coordinator: SessionCoordinator = Depends(get_coordinator)):
    return _unwrap(coordinator.complete_session())


@app.post("/session/abandon", response_model=SummaryResponse)
def abandon(coordinator: SessionCoordinator = Depends(get_coordinator)):
    return _unwrap(coordinator.abandon_session())


@app.get("/session/summary", response_model=SummaryResponse)
def summary(coordinator: SessionCoordinator = Depends(get_coordinator)):
    return _unwrap(coordinator.session_summary())


@app.get("/session/retries", response_model=RetryCardsResponse)
def retries(
    include_pending: bool = False, coordinator: SessionCoordinator = Depends(get_coordinator)
):
    return _unwrap(coordinator.get_retry_cards(include_pending=include_pending))


@app.post("/session/retries/skip", response_model=SkipRetryResponse)
def skip_retries(
    card_id: str | None = None, coordinator: SessionCoordinator = Depends(get_coordinator)
):
    return _unwrap(coordinator.skip_retry_wait(card_id))


# ---------- Progress ----------


async def read_text_body(request: Request) -> str:
    return (await request.body()).decode("utf-8")


@app.get("/progress/due")
def due_items(
    limit: int | None = None, coordinator: SessionCoordinator = Depends(get_coordinator)
):
    return _unwrap(coordinator.due_progress(limit)).items


@app.get("/progress/export", response_class=PlainTextResponse)
def export_progress(coordinator: SessionCoordinator = Depends(get_coordinator)):
    return _unwrap(coordinator.export_progress()).payload


@app.post("/progress/import")
def import_progress(
    payload: str = Depends(read_text_body),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    """Replace all progress with the JSON export sent as the request body."""
    return {"imported": _unwrap(coordinator.import_progress(payload)).imported}


@app.get("/progress/{item_id}")
def get_progress(item_id: str, coordinator: SessionCoordinator = Depends(get_coordinator)):
    return _unwrap(coordinator.get_progress(item_id)).record


@app.post("/progress/{item_id}/reset")
def reset_progress(item_id: str, coordinator: SessionCoordinator = Depends(get_coordinator)):
    return _unwrap(coordinator.reset_progress(item_id)).record


@app.post("/progress/{item_id}/suspend")
def suspend(item_id: str, coordinator: SessionCoordinator = Depends(get_coordinator)):
    return _unwrap(coordinator.suspend_progress(item_id)).record


@app.post("/progress/{item_id}/unsuspend")
def unsuspend(item_id: str, coordinator: SessionCoordinator = Depends(get_coordinator)):
    return _unwrap(coordinator.unsuspend_progress(item_id)).record


@app.get("/stats")
def overall_stats(coordinator: SessionCoordinator = Depends(get_coordinator)):
    return _unwrap(coordinator.progress_stats()).stats
