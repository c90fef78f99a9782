"""FastAPI backend for the MOT service trainer."""

import logging
import uuid
from typing import Dict, NoReturn, Optional

from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from mot_trainer import __version__
from mot_trainer.catalog import build_scenario, catalog_dict
from mot_trainer.config import Settings, load_env_file
from mot_trainer.errors import (
    AdapterError,
    EvaluationError,
    SessionBusyError,
    SessionClosedError,
    SessionNotStartedError,
    TrainerError,
    TurnCancelledError,
)
from mot_trainer.models import StagePolicy
from mot_trainer.orchestrator import TrainingOrchestrator
from mot_trainer.progress import ProgressHistory
from mot_trainer.providers import BaseAdapter, create_adapter

logger = logging.getLogger(__name__)


# Request models
class StartRequest(BaseModel):
    industry_id: str
    persona_id: str
    voice_id: Optional[str] = None
    session_id: Optional[str] = None


class TurnRequest(BaseModel):
    text: str


def _raise_http(e: TrainerError) -> NoReturn:
    """Map trainer errors onto HTTP responses."""
    if isinstance(e, AdapterError):
        status = 504 if e.reason == "timeout" else 502
        raise HTTPException(status, {"error": "adapter_error", "reason": e.reason, "message": str(e)})
    if isinstance(e, EvaluationError):
        raise HTTPException(502, {"error": "evaluation_error", "message": str(e)})
    if isinstance(e, SessionNotStartedError):
        raise HTTPException(404, {"error": "session_not_started", "message": str(e)})
    if isinstance(e, (SessionBusyError, SessionClosedError, TurnCancelledError)):
        code = {
            SessionBusyError: "session_busy",
            SessionClosedError: "session_finished",
            TurnCancelledError: "cancelled",
        }[type(e)]
        raise HTTPException(409, {"error": code, "message": str(e)})
    raise HTTPException(500, {"error": "trainer_error", "message": str(e)})


def create_app(settings: Optional[Settings] = None, adapter: Optional[BaseAdapter] = None) -> FastAPI:
    """Build the app. Fails fast with ConfigurationError on bad settings.

    Args:
        settings: Settings to use (defaults to .env + environment)
        adapter: Backend adapter (defaults to the one selected by settings)
    """
    if settings is None:
        load_env_file()
        settings = Settings.from_env()
    if adapter is None:
        settings.require_valid()
        adapter = create_adapter(settings)
    policy = StagePolicy(settings.stage_thresholds)

    app = FastAPI(title="MOT Service Trainer", version=__version__)

    # CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    orchestrators: Dict[str, TrainingOrchestrator] = {}
    history = ProgressHistory()

    app.state.settings = settings
    app.state.adapter = adapter
    app.state.orchestrators = orchestrators
    app.state.history = history

    logger.info("[APP] Adapter initialized: %s", adapter.name)

    def get_orchestrator(session_id: str) -> TrainingOrchestrator:
        orch = orchestrators.get(session_id)
        if orch is None or orch.session is None:
            raise HTTPException(404, {"error": "unknown_session", "message": f"No session '{session_id}'"})
        return orch

    @app.get("/health")
    async def health():
        return {"status": "ok", "provider": adapter.name}

    @app.get("/catalog")
    async def catalog():
        """Industries, personas and voices for the configuration screen."""
        return catalog_dict()

    def evict_idle(keep: str) -> None:
        """Drop the oldest idle sessions once more than max_sessions are held."""
        excess = len(orchestrators) - settings.max_sessions
        for sid in list(orchestrators):
            if excess <= 0:
                break
            if sid == keep or orchestrators[sid].busy:
                continue
            orchestrators.pop(sid).reset()
            logger.info("[APP] Evicted idle session %s", sid)
            excess -= 1

    @app.post("/sessions", status_code=201)
    async def start_session(request: StartRequest):
        try:
            scenario = build_scenario(request.industry_id, request.persona_id, request.voice_id)
        except KeyError as e:
            raise HTTPException(404, {"error": "unknown_catalog_id", "message": str(e.args[0])})

        session_id = request.session_id or uuid.uuid4().hex
        if session_id in orchestrators:
            raise HTTPException(409, {"error": "session_exists", "message": f"Session '{session_id}' already exists"})

        # registered before the opening call so it can be cancelled
        orch = TrainingOrchestrator(adapter, policy=policy, history=history)
        orchestrators[session_id] = orch
        try:
            session = await orch.start_session(scenario, session_id=session_id)
        except TrainerError as e:
            _raise_http(e)
        finally:
            if orch.session is None and orchestrators.get(session_id) is orch:
                del orchestrators[session_id]
        evict_idle(keep=session_id)
        return session.to_dict()

    @app.get("/sessions/{session_id}")
    async def get_session(session_id: str):
        orch = get_orchestrator(session_id)
        return {**orch.session.to_dict(), "busy": orch.busy}

    @app.post("/sessions/{session_id}/turns")
    async def submit_turn(session_id: str, request: TurnRequest):
        """Send one trainee reply (typed or a final speech transcript)."""
        orch = get_orchestrator(session_id)
        if not request.text.strip():
            raise HTTPException(400, {"error": "empty_text", "message": "Reply text is empty"})
        if orch.busy:
            _raise_http(SessionBusyError(f"Session {session_id} has a call in flight"))

        try:
            customer_turn = await orch.submit_turn(request.text)
        except TrainerError as e:
            _raise_http(e)
        return {
            **orch.session.to_dict(),
            "customer_turn": customer_turn.to_dict() if customer_turn else None,
        }

    @app.post("/sessions/{session_id}/finish")
    async def finish_session(session_id: str):
        orch = get_orchestrator(session_id)
        try:
            await orch.finish_session()
        except TrainerError as e:
            _raise_http(e)
        return orch.session.to_dict()

    @app.post("/sessions/{session_id}/cancel")
    async def cancel(session_id: str):
        # a session still waiting for its opening line has no Session yet
        orch = orchestrators.get(session_id)
        if orch is None:
            raise HTTPException(404, {"error": "unknown_session", "message": f"No session '{session_id}'"})
        return {"cancelled": orch.cancel()}

    @app.delete("/sessions/{session_id}", status_code=204)
    async def reset(session_id: str):
        orch = orchestrators.pop(session_id, None)
        if orch is not None:
            orch.reset()
        return Response(status_code=204)

    @app.get("/progress")
    async def progress():
        """Dashboard summary over sessions finished since startup."""
        return history.summary()

    return app
