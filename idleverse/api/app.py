"""
FastAPI Application - REST API for idle universe clients.

Endpoints:
    POST   /api/v1/sessions                          Create a universe
    GET    /api/v1/sessions                          List active universes
    GET    /api/v1/sessions/{id}                     Get universe state
    DELETE /api/v1/sessions/{id}                     End session
    POST   /api/v1/sessions/{id}/click               Click the core
    POST   /api/v1/sessions/{id}/buildings/{bid}/purchase   Buy a building
    POST   /api/v1/sessions/{id}/helpers/{hid}/unlock       Unlock a helper
    POST   /api/v1/sessions/{id}/helpers/{hid}/toggle       Pause/resume a helper
    POST   /api/v1/sessions/{id}/research            Start research
    POST   /api/v1/sessions/{id}/prestige            Prestige reset
    POST   /api/v1/sessions/{id}/rename              Rename the galaxy
    POST   /api/v1/sessions/{id}/achievements/{aid}/dismiss  Dismiss a toast
    GET    /api/v1/sessions/{id}/save                Export save code
    POST   /api/v1/sessions/{id}/save                Import save code
    POST   /api/v1/sessions/{id}/reset               Hard reset
    POST   /api/v1/sessions/{id}/console             Open the developer console
    POST   /api/v1/sessions/{id}/cheats              Run a console command

Universes advance lazily: every request first brings the session's
universe up to the current time, then applies the intent.

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Optional, Union
import os

# Environment configuration
IDLEVERSE_ENV = os.getenv("IDLEVERSE_ENV", "development")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

_NOT_FOUND_CODES = {"SESSION_NOT_FOUND"}


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, Body
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .. import __version__
    from ..config import EngineConfig
    from ..session import SessionManager
    from .service import APIService
    from .schemas import (
        # Request models
        CreateUniverseRequest,
        ClickRequest,
        RenameRequest,
        CheatRequest,
        ImportSaveRequest,
        # Response models
        UniverseResponse,
        ActionResponse,
        SaveResponse,
        ErrorResponse,
        SessionListResponse,
        EndSessionResponse,
        HealthResponse,
        # Enums
        ErrorCode,
    )

    app = FastAPI(
        title="Idleverse Engine API",
        description="""
Idle universe simulation engine.

## Time

Universes advance when they are touched: each request first accrues
production, fires due helpers, delivers finished research and rolls
for evolution, then applies the requested action.

## Error Codes

| Code | Description |
|------|-------------|
| `SESSION_NOT_FOUND` | Session does not exist |
| `INVALID_TARGET` | Unknown id, or already unlocked |
| `INSUFFICIENT_RESOURCES` | Not enough resources |
| `RESEARCH_UNAVAILABLE` | Research running or unaffordable |
| `PRESTIGE_UNAVAILABLE` | Nothing to gain from prestige yet |
| `SNAPSHOT_CORRUPT` | Save code is invalid |
| `VALIDATION_ERROR` | Invalid parameters |
        """,
        version=__version__,
        docs_url="/api/docs" if IDLEVERSE_ENV != "production" else None,
        redoc_url="/api/redoc" if IDLEVERSE_ENV != "production" else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Service instance
    api_service = service or APIService(
        session_manager=SessionManager(config=EngineConfig.from_env())
    )
    app.state.api_service = api_service

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    def respond(response):
        """Pass models through; turn ErrorResponse into a 4xx JSONResponse."""
        if isinstance(response, ErrorResponse):
            status_code = 404 if response.error_code.value in _NOT_FOUND_CODES else 400
            return make_error_response(
                response.error_code,
                response.error,
                status_code=status_code,
                details=response.details,
            )
        return response

    error_responses = {
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse, "description": "Session not found"},
    }

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=UniverseResponse,
        responses={400: {"model": ErrorResponse, "description": "Save code is invalid"}},
        tags=["Sessions"],
        summary="Create a new universe",
    )
    async def create_session(
        body: Optional[CreateUniverseRequest] = Body(None),
    ) -> Union[UniverseResponse, JSONResponse]:
        """
        Create a new universe.

        Pass `save_code` to continue from an exported save.
        """
        return respond(await api_service.create_session(body or CreateUniverseRequest()))

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List active sessions",
    )
    async def list_sessions() -> SessionListResponse:
        """List all active session IDs."""
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=UniverseResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Get universe state",
    )
    async def get_universe(session_id: str) -> Union[UniverseResponse, JSONResponse]:
        """Advance the universe to now and return its state."""
        return respond(await api_service.get_universe(session_id))

    @app.delete(
        "/api/v1/sessions/{session_id}",
        response_model=EndSessionResponse,
        tags=["Sessions"],
        summary="End a session",
    )
    async def end_session(session_id: str) -> EndSessionResponse:
        """End a session and drop its universe."""
        success = api_service.end_session(session_id)
        return EndSessionResponse(success=success, session_id=session_id)

    # =========================================================================
    # Player Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/click",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Play"],
        summary="Click the core",
    )
    async def click(
        session_id: str,
        body: Optional[ClickRequest] = Body(None),
    ) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.click(session_id, body))

    @app.post(
        "/api/v1/sessions/{session_id}/buildings/{building_id}/purchase",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Play"],
        summary="Buy one building",
    )
    async def buy(session_id: str, building_id: str) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.buy(session_id, building_id))

    @app.post(
        "/api/v1/sessions/{session_id}/helpers/{helper_id}/unlock",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Play"],
        summary="Unlock an automation helper",
    )
    async def unlock_helper(session_id: str, helper_id: str) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.unlock_helper(session_id, helper_id))

    @app.post(
        "/api/v1/sessions/{session_id}/helpers/{helper_id}/toggle",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Play"],
        summary="Pause or resume a helper",
    )
    async def toggle_helper(session_id: str, helper_id: str) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.toggle_helper(session_id, helper_id))

    @app.post(
        "/api/v1/sessions/{session_id}/research",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Play"],
        summary="Start research",
    )
    async def begin_research(session_id: str) -> Union[ActionResponse, JSONResponse]:
        """
        Charge the research cost and start generating a new building.

        The building arrives on a later request once the research
        duration has elapsed.
        """
        return respond(await api_service.begin_research(session_id))

    @app.post(
        "/api/v1/sessions/{session_id}/prestige",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Play"],
        summary="Collapse the universe for shards",
    )
    async def prestige(session_id: str) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.prestige(session_id))

    @app.post(
        "/api/v1/sessions/{session_id}/rename",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Play"],
        summary="Rename the galaxy",
    )
    async def rename(session_id: str, body: RenameRequest) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.rename(session_id, body))

    @app.post(
        "/api/v1/sessions/{session_id}/achievements/{achievement_id}/dismiss",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Play"],
        summary="Dismiss an achievement notification",
    )
    async def dismiss_achievement(
        session_id: str,
        achievement_id: str,
    ) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.dismiss_achievement(session_id, achievement_id))

    # =========================================================================
    # Save Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/sessions/{session_id}/save",
        response_model=SaveResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Saves"],
        summary="Export a save code",
    )
    async def export_save(session_id: str) -> Union[SaveResponse, JSONResponse]:
        return respond(await api_service.export_save(session_id))

    @app.post(
        "/api/v1/sessions/{session_id}/save",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Saves"],
        summary="Import a save code",
    )
    async def import_save(
        session_id: str,
        body: ImportSaveRequest,
    ) -> Union[ActionResponse, JSONResponse]:
        """Replace the universe with an exported save. Research in flight is dropped."""
        return respond(await api_service.import_save(session_id, body))

    @app.post(
        "/api/v1/sessions/{session_id}/reset",
        response_model=ActionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Saves"],
        summary="Hard reset",
    )
    async def hard_reset(session_id: str) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.hard_reset(session_id))

    # =========================================================================
    # Developer Console
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/console",
        response_model=ActionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Console"],
        summary="Open the developer console",
    )
    async def open_console(session_id: str) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.open_console(session_id))

    @app.post(
        "/api/v1/sessions/{session_id}/cheats",
        response_model=ActionResponse,
        responses=error_responses,
        tags=["Console"],
        summary="Run a console command",
    )
    async def cheat(session_id: str, body: CheatRequest) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.cheat(session_id, body))

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="idleverse-engine",
            version=__version__,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Idleverse Engine API",
            "version": __version__,
            "environment": IDLEVERSE_ENV,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app


# For running directly: uvicorn idleverse.api.app:app
app = None
try:
    app = create_app()
except ImportError:
    # FastAPI not installed
    pass
