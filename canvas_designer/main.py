# canvas_designer/main.py

import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from canvas_designer.config import Settings
from canvas_designer.schemas import (
    ApplyRequest,
    ApplyResponse,
    GenerateRequest,
    GenerateResponse,
    HealthResponse,
    SessionResponse,
    StepReport,
)
from canvas_designer.services.applier import Applied, AppliedWithFallback, ApplicationEngine, ApplyOutcome
from canvas_designer.services.canvas import HttpCanvasSurface, RecordingCanvas, ResponseClipboard
from canvas_designer.services.llm import GeminiClient, GenerationError, describe_generation_error
from canvas_designer.services.panel import (
    DesignPanel,
    EmptyPromptError,
    InvalidTransition,
    PanelStore,
    UnknownSession,
    UnknownSuggestion,
)

load_dotenv()

settings = Settings.from_env()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# --------------------------------------------
# Collaborators (created lazily so the app boots without credentials)
# --------------------------------------------
_generation_client: Optional[GeminiClient] = None


def get_generation_client() -> GeminiClient:
    global _generation_client
    if _generation_client is None:
        _generation_client = GeminiClient(settings)
    return _generation_client


def build_surface():
    if settings.canvas_bridge_url:
        return HttpCanvasSurface(settings.canvas_bridge_url, settings.canvas_bridge_token)
    return RecordingCanvas()


panels = PanelStore(
    get_generation_client,
    max_sessions=settings.panel_max_sessions,
    idle_seconds=settings.panel_idle_seconds,
)

# --------------------------------------------
# FASTAPI APP
# --------------------------------------------
app = FastAPI(title="Canvas Designer")

# Canvas plugins call from their own origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


def _get_panel(session_id: str) -> DesignPanel:
    try:
        return panels.get(session_id)
    except UnknownSession as e:
        raise HTTPException(status_code=404, detail=str(e))


def _apply_response(outcome: ApplyOutcome, surface) -> ApplyResponse:
    steps = [
        StepReport(kind=step.kind, index=step.index, ok=step.ok, error=step.error)
        for step in outcome.steps
    ]
    elements = list(surface.elements) if isinstance(surface, RecordingCanvas) else []

    if isinstance(outcome, Applied):
        return ApplyResponse(
            status="applied",
            title=outcome.title,
            message=outcome.message,
            text_count=outcome.text_count,
            shape_count=outcome.shape_count,
            background_applied=outcome.background_applied,
            steps=steps,
            elements=elements,
        )

    return ApplyResponse(
        status="applied_with_fallback" if isinstance(outcome, AppliedWithFallback) else "failed",
        title=outcome.title,
        message=outcome.message,
        reason=outcome.reason,
        steps=steps,
        elements=elements,
        clipboard_text=getattr(outcome, "clipboard_text", None),
    )


# --------------------------------------------
# Generation
# --------------------------------------------
@app.post("/designs/generate", response_model=GenerateResponse)
def generate_designs(request: GenerateRequest):
    if not request.prompt.strip():
        raise HTTPException(status_code=400, detail="Prompt must not be empty.")

    try:
        session_id, panel = panels.get_or_create(request.session_id)
    except RuntimeError as e:
        logger.error("Generation client unavailable: %s", e)
        raise HTTPException(status_code=503, detail=str(e))

    try:
        suggestions = panel.generate(request.prompt)
    except EmptyPromptError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except GenerationError as e:
        raise HTTPException(status_code=502, detail=describe_generation_error(e))

    return GenerateResponse(session_id=session_id, prompt=request.prompt, suggestions=suggestions)


@app.get("/designs/{session_id}", response_model=SessionResponse)
def get_session(session_id: str):
    state = _get_panel(session_id).state
    return SessionResponse(
        session_id=session_id,
        phase=state.phase.value,
        prompt=state.prompt,
        error=state.error,
        suggestions=list(state.suggestions),
    )


@app.delete("/designs/{session_id}")
def dismiss_session(session_id: str):
    try:
        panels.discard(session_id)
    except UnknownSession as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"status": "dismissed", "session_id": session_id}


# --------------------------------------------
# Application
# --------------------------------------------
@app.post("/designs/{session_id}/apply", response_model=ApplyResponse)
def apply_design(session_id: str, request: ApplyRequest):
    panel = _get_panel(session_id)
    surface = build_surface()
    engine = ApplicationEngine(surface, ResponseClipboard(request.secure_context))

    try:
        outcome = panel.apply(request.index, engine)
    except UnknownSuggestion as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))

    return _apply_response(outcome, surface)


@app.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(
        llm_provider="gemini",
        model=settings.gemini_model,
        has_gemini_access=settings.has_gemini_access,
        canvas_mode="bridge" if settings.canvas_bridge_url else "recording",
    )


@app.get("/")
def root():
    return {"message": "Canvas Designer API. POST /designs/generate to get started."}
