"""
HTTP surface of the security event ledger.
Thin routes over EventCoordinator: intake, pending queue, sealing, chain dump,
verification, manual scans and the file-agent scan scope.
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import Body, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse

from .schemas import (
    QueuedEventResponse,
    PendingResponse,
    BlockModel,
    ChainResponse,
    VerifyResponse,
    HealthResponse,
    ScanResponse,
    MonitoringConfigResponse,
    RootsUpdateRequest,
    ExcludesUpdateRequest,
    ErrorResponse,
)
from ..core.config import VERSION, debug_enabled, is_heartbeat_enabled
from ..core.coordinator import EventCoordinator
from ..core.errors import ConfigValidationError, EmptyQueueError, EventValidationError
from util.logging import logger

ERROR_RESPONSES = {400: {"model": ErrorResponse}}


def get_coordinator(request: Request) -> EventCoordinator:
    return request.app.state.coordinator


def _error(status_code: int, message: str, field: str = None) -> JSONResponse:
    body = {"error": message}
    if field:
        body["field"] = field
    return JSONResponse(status_code=status_code, content=body)


def create_app(coordinator: EventCoordinator = None, start_heartbeat: bool = None) -> FastAPI:
    """
    Build the API around a coordinator.

    Args:
        coordinator: Defaults to a fresh EventCoordinator from environment config
        start_heartbeat: Start agent/seal timers with the app (defaults to HEARTBEAT_ENABLED)
    """
    coordinator = coordinator or EventCoordinator()
    if start_heartbeat is None:
        start_heartbeat = is_heartbeat_enabled()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_heartbeat:
            coordinator.start()
        try:
            yield
        finally:
            if start_heartbeat:
                coordinator.stop()

    app = FastAPI(
        title="Security Event Ledger API",
        version=VERSION,
        description="Tamper-evident ledger of host security events",
        docs_url="/docs" if debug_enabled() else None,
        redoc_url="/redoc" if debug_enabled() else None,
        lifespan=lifespan,
    )
    app.state.coordinator = coordinator

    @app.post("/events", status_code=202, response_model=QueuedEventResponse, responses=ERROR_RESPONSES)
    def post_event(body: Any = Body(None), coord: EventCoordinator = Depends(get_coordinator)):
        """Queue a security event for the next block."""
        if not isinstance(body, dict):
            logger.log_validation_error("events", ["Request body must be a JSON object"])
            return _error(400, "Request body must be a JSON object")

        try:
            event = coord.enqueue_event(
                body.get("type"),
                body.get("source"),
                body.get("severity"),
                body.get("message"),
                body.get("details"),
            )
        except EventValidationError as e:
            logger.log_validation_error("events", [e.reason])
            return _error(400, e.reason, e.field)

        return {"status": "queued", "event": event.to_dict()}

    @app.get("/pending", response_model=PendingResponse)
    def get_pending(coord: EventCoordinator = Depends(get_coordinator)):
        """List pending events not yet mined into a block."""
        pending = coord.list_pending()
        return {"count": pending["count"], "events": [e.to_dict() for e in pending["events"]]}

    @app.post("/mine", status_code=201, response_model=BlockModel, responses=ERROR_RESPONSES)
    def mine(coord: EventCoordinator = Depends(get_coordinator)):
        """Mine all pending events into a new block."""
        try:
            block = coord.seal_now()
        except EmptyQueueError as e:
            return _error(400, str(e))
        return block.to_dict()

    @app.get("/chain", response_model=ChainResponse)
    def get_chain(coord: EventCoordinator = Depends(get_coordinator)):
        chain = coord.get_chain()
        return {"length": chain["length"], "chain": [b.to_dict() for b in chain["chain"]]}

    @app.get("/verify", response_model=VerifyResponse)
    def verify(coord: EventCoordinator = Depends(get_coordinator)):
        return coord.verify_chain()

    @app.get("/health", response_model=HealthResponse)
    def health(coord: EventCoordinator = Depends(get_coordinator)):
        result = coord.verify_chain()
        return {"status": "ok", "valid": result["valid"], "length": result["length"], "version": VERSION}

    @app.get("/")
    def root():
        return RedirectResponse(url="/docs" if debug_enabled() else "/health")

    def _scan(coord: EventCoordinator, domain: str):
        events = coord.trigger_poll(domain)
        return {"status": "queued", "domain": domain, "event_count": len(events)}

    @app.post("/scan/full", status_code=202, response_model=ScanResponse)
    def scan_full(coord: EventCoordinator = Depends(get_coordinator)):
        return _scan(coord, "all")

    @app.post("/scan/files", status_code=202, response_model=ScanResponse)
    def scan_files(coord: EventCoordinator = Depends(get_coordinator)):
        return _scan(coord, "files")

    @app.post("/scan/network", status_code=202, response_model=ScanResponse)
    def scan_network(coord: EventCoordinator = Depends(get_coordinator)):
        return _scan(coord, "network")

    @app.post("/scan/accounts", status_code=202, response_model=ScanResponse)
    def scan_accounts(coord: EventCoordinator = Depends(get_coordinator)):
        return _scan(coord, "accounts")

    @app.get("/config", response_model=MonitoringConfigResponse)
    def get_config(coord: EventCoordinator = Depends(get_coordinator)):
        return coord.get_monitoring_config()

    @app.post("/config/roots", response_model=MonitoringConfigResponse, responses=ERROR_RESPONSES)
    def set_roots(request: RootsUpdateRequest, coord: EventCoordinator = Depends(get_coordinator)):
        """Update only the roots list at runtime."""
        try:
            return coord.set_roots(request.roots)
        except ConfigValidationError as e:
            logger.log_validation_error("config.roots", [e.reason])
            return _error(400, e.reason, e.field)

    @app.post("/config/excludes", response_model=MonitoringConfigResponse, responses=ERROR_RESPONSES)
    def set_excludes(request: ExcludesUpdateRequest, coord: EventCoordinator = Depends(get_coordinator)):
        """Update the excluded directory names at runtime."""
        try:
            return coord.set_excluded_dirs(request.excludeDirs)
        except ConfigValidationError as e:
            logger.log_validation_error("config.excludes", [e.reason])
            return _error(400, e.reason, e.field)

    return app


app = create_app()
