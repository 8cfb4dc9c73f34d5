"""
API_APP
=======

FastAPI REST + MCP API for mindCore.

Endpoints:
    GET    /health                                   Liveness of the session store
    POST   /api/sessions                             Create a session
    GET    /api/sessions?user_id=                    List a user's sessions (newest first)
    GET    /api/sessions/{session_id}                Get a session
    DELETE /api/sessions/{session_id}                Delete a session
    POST   /api/sessions/{session_id}/close          Mark a session inactive
    POST   /api/sessions/{session_id}/context        Append a context entry
    GET    /api/sessions/{session_id}/metadata       Tree statistics
    POST   /api/sessions/{session_id}/thoughts       Add a thought
    PATCH  /api/sessions/{session_id}/thoughts/{id}  Update a thought
    DELETE /api/sessions/{session_id}/thoughts/{id}  Remove a thought and its subtree
    POST   /api/expand                               Directions + previews for a concept
    POST   /api/explore                              Explore a direction inside a session
    GET    /mcp/tools                                List MCP tools
    POST   /mcp                                      Invoke an MCP tool

Every route except /health requires the API token when one is configured
and is rate limited per client. ``MindCoreError`` subclasses are
returned with their own status code as ``{"detail": message}``.

Usage:
    uvicorn mind_core.api.app:create_app --factory --port 8080
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..config import AppConfig, build_session_store, get_config_manager
from ..errors import InvalidRequestError, MindCoreError, RateLimitExceeded
from ..models import Direction, DirectionType, Thought
from ..ratelimit import RateLimiter
from ..services import ExpansionRequest, LLMOrchestrator, SessionManager, ThoughtExpander
from ..tools import build_tool_registry
from ..validation import (
    build_direction,
    normalize_context,
    parse_direction_type,
    validate_concept,
    validate_session_id,
    validate_thought_content,
    validate_thought_update,
    validate_user_id,
)
from .auth import require_client_dependency

logger = logging.getLogger(__name__)


# ============================================================================
# PYDANTIC MODELS
# ============================================================================

class DirectionPayload(BaseModel):
    """Direction as sent by clients; checked by mind_core.validation."""
    type: str = Field(..., description="broad, deep, lateral or critical")
    title: str = Field("", description="Short label")
    description: str = ""
    keywords: List[str] = Field(default_factory=list)
    relevance: float = 0.0


class CreateSessionRequest(BaseModel):
    user_id: str = Field("", description="Owner id (optional, no whitespace)")
    concept: str = Field(..., description="Seed concept for the root thought")


class ContextRequest(BaseModel):
    value: str


class AddThoughtRequest(BaseModel):
    content: str
    parent_id: Optional[str] = Field(None, description="Attach under this thought (default: root)")
    direction: Optional[DirectionPayload] = None


class UpdateThoughtRequest(BaseModel):
    content: Optional[str] = None
    direction: Optional[DirectionPayload] = None


class ExpandRequest(BaseModel):
    concept: str
    context: List[str] = Field(default_factory=list)
    expansion_type: Optional[str] = None
    max_directions: int = 0


class ExploreRequest(BaseModel):
    session_id: str
    direction: DirectionPayload
    parent_id: Optional[str] = None


class MCPRequest(BaseModel):
    method: str
    params: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# APPLICATION FACTORY
# ============================================================================

def build_services(config: AppConfig):
    """Session manager and expander wired from configuration."""
    manager = SessionManager(build_session_store(config), session_ttl_hours=config.storage.session_ttl_hours)
    expander = ThoughtExpander(LLMOrchestrator.from_config(config.llm), manager)
    return manager, expander


def create_app(manager: Optional[SessionManager] = None,
               expander: Optional[ThoughtExpander] = None,
               config: Optional[AppConfig] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or get_config_manager().config
    if manager is None:
        manager, default_expander = build_services(config)
        expander = expander or default_expander
    if expander is None:
        expander = ThoughtExpander(LLMOrchestrator.from_config(config.llm), manager)

    tools = build_tool_registry(manager, expander)
    http_limiter = RateLimiter(config.rate_limits.http_requests_per_minute)
    mcp_limiter = RateLimiter(config.rate_limits.mcp_requests_per_minute)
    api_token = config.server.api_token

    app = FastAPI(
        title="mindCore API",
        description="Thought-exploration sessions over REST and MCP",
        version=__version__,
    )
    app.state.manager = manager
    app.state.expander = expander
    app.state.tools = tools

    # ========================================================================
    # ERROR MAPPING
    # ========================================================================

    @app.exception_handler(MindCoreError)
    async def handle_mindcore_error(request: Request, exc: MindCoreError):
        headers = None
        if isinstance(exc, RateLimitExceeded) and exc.retry_after:
            headers = {"Retry-After": str(max(1, int(exc.retry_after + 0.999)))}
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=InvalidRequestError.status_code,
            content={"detail": "invalid request body", "errors": jsonable_encoder(exc.errors())},
        )

    # ========================================================================
    # SYSTEM
    # ========================================================================

    @app.get("/health", tags=["System"])
    def health_check():
        """Readiness: 503 when the session store does not answer."""
        try:
            manager.health_check()
        except MindCoreError as e:
            return JSONResponse(status_code=503, content={"status": "unavailable", "detail": e.message})
        return {
            "status": "healthy",
            "version": __version__,
            "llm": expander.llm.health_check(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    api = APIRouter(prefix="/api", dependencies=[Depends(require_client_dependency(api_token, http_limiter))])

    # ========================================================================
    # SESSIONS
    # ========================================================================

    @api.post("/sessions", tags=["Sessions"])
    def create_session(request: CreateSessionRequest):
        session = manager.create_session(validate_user_id(request.user_id), validate_concept(request.concept))
        return session.to_dict()

    @api.get("/sessions", tags=["Sessions"])
    def list_sessions(user_id: str = Query(..., description="Owner id"),
                      active_only: bool = Query(False)):
        user_id = validate_user_id(user_id)
        if active_only:
            sessions = manager.get_active_sessions_by_user(user_id)
        else:
            sessions = manager.list_sessions(user_id)
        return {"sessions": [s.to_dict() for s in sessions], "total": len(sessions)}

    @api.get("/sessions/{session_id}", tags=["Sessions"])
    def get_session(session_id: str):
        return manager.get_session(validate_session_id(session_id)).to_dict()

    @api.delete("/sessions/{session_id}", tags=["Sessions"])
    def delete_session(session_id: str):
        manager.delete_session(validate_session_id(session_id))
        return {"status": "deleted", "session_id": session_id}

    @api.post("/sessions/{session_id}/close", tags=["Sessions"])
    def close_session(session_id: str):
        return manager.close_session(validate_session_id(session_id)).to_dict()

    @api.post("/sessions/{session_id}/context", tags=["Sessions"])
    def add_context(session_id: str, request: ContextRequest):
        entries = normalize_context([request.value])
        if not entries:
            raise InvalidRequestError("value must not be empty")
        return manager.add_context(validate_session_id(session_id), entries[0]).to_dict()

    @api.get("/sessions/{session_id}/metadata", tags=["Sessions"])
    def get_metadata(session_id: str):
        return manager.get_metadata(validate_session_id(session_id)).to_dict()

    # ========================================================================
    # THOUGHTS
    # ========================================================================

    @api.post("/sessions/{session_id}/thoughts", tags=["Thoughts"])
    def add_thought(session_id: str, request: AddThoughtRequest):
        session_id = validate_session_id(session_id)
        content = validate_thought_content(request.content)
        if request.direction is not None:
            direction = build_direction(request.direction.model_dump())
        else:
            direction = Direction(type=DirectionType.BROAD)

        thought = Thought.create(content, session_id, direction)
        thought.parent_id = request.parent_id or None
        session = manager.add_thought_to_session(session_id, thought)
        return {"thought_id": thought.id, "session": session.to_dict()}

    @api.patch("/sessions/{session_id}/thoughts/{thought_id}", tags=["Thoughts"])
    def update_thought(session_id: str, thought_id: str, request: UpdateThoughtRequest):
        update = validate_thought_update(request.model_dump(exclude_none=True))
        thought = manager.update_thought(validate_session_id(session_id), thought_id, update)
        return thought.to_dict()

    @api.delete("/sessions/{session_id}/thoughts/{thought_id}", tags=["Thoughts"])
    def delete_thought(session_id: str, thought_id: str):
        return manager.delete_thought(validate_session_id(session_id), thought_id).to_dict()

    # ========================================================================
    # EXPANSION
    # ========================================================================

    @api.post("/expand", tags=["Expansion"])
    def expand(request: ExpandRequest):
        expansion_type = None
        if request.expansion_type and request.expansion_type.strip():
            expansion_type = parse_direction_type(request.expansion_type)
        result = expander.expand(ExpansionRequest(
            concept=validate_concept(request.concept),
            context=normalize_context(request.context),
            expansion_type=expansion_type,
            max_directions=request.max_directions,
        ))
        return result.to_dict()

    @api.post("/explore", tags=["Expansion"])
    def explore(request: ExploreRequest):
        direction = build_direction(request.direction.model_dump())
        thought = expander.explore_direction(direction, validate_session_id(request.session_id),
                                             parent_id=request.parent_id)
        return thought.to_dict()

    app.include_router(api)

    # ========================================================================
    # MCP
    # ========================================================================

    mcp = APIRouter(prefix="/mcp", tags=["MCP"],
                    dependencies=[Depends(require_client_dependency(api_token, mcp_limiter))])

    @mcp.get("/tools")
    def list_tools():
        return {"result": tools.list_tools(), "tools": tools.get_schemas()}

    @mcp.post("")
    def invoke_tool(request: MCPRequest):
        result = tools.execute(request.method, request.params)
        if not result.success:
            return JSONResponse(
                status_code=result.status_code,
                content={"error": {"code": result.status_code, "message": result.error}},
            )
        return {"result": result.data}

    app.include_router(mcp)

    return app


def main(port: Optional[int] = None, host: Optional[str] = None):
    """Run the API server with the background expiry sweep."""
    import uvicorn

    from ..services import CleanupWorker

    config = get_config_manager().config
    manager, expander = build_services(config)
    app = create_app(manager, expander, config)

    worker = CleanupWorker(manager, config.storage.cleanup_interval_seconds)
    worker.start()

    port = port or config.server.port
    host = host or config.server.host
    logger.info(f"Starting mindCore API on {host}:{port}")
    try:
        uvicorn.run(app, host=host, port=port)
    finally:
        worker.stop()
        manager.store.close()
