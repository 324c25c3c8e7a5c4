# ============================================================
# main.py — Case Desk Backend API
# ============================================================

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import List, Optional
import logging
import traceback

from case_store import CaseStore
from config import Settings, load_settings
from database import create_engine_from_url, create_session_factory, init_schema, check_connection
from errors import DeskError, NotFound
from intake import IncidentIntake
from models import (
    OperatorProfile, Case, IncidentReport,
    RegisterRequest, SetRoleRequest, CreateCaseRequest, CreateCaseResponse,
    UpdateStatusRequest, AssignCaseRequest, AddNoteRequest,
    SubmitIncidentRequest, SubmitIncidentResponse, IsAdminResponse
)
from registry import OperatorRegistry
from repository import Repository

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API with its own store; one call per process (or per test)"""
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Security Case Desk",
        description="Case and incident tracking for security operations",
        version="1.0.0"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    engine = create_engine_from_url(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow
    )
    repo = Repository(
        create_session_factory(engine),
        strict_identity_references=settings.strict_identity_references
    )
    cases = CaseStore(repo)

    app.state.settings = settings
    app.state.engine = engine
    app.state.repo = repo
    app.state.registry = OperatorRegistry(repo)
    app.state.cases = cases
    app.state.intake = IncidentIntake(repo, cases)

    register_exception_handlers(app)
    register_routes(app)

    @app.on_event("startup")
    async def startup():
        """Initialize database"""
        try:
            await init_schema(engine)
            if await check_connection(engine):
                logger.info("✅ Database connection successful")
            logger.info("✅ Case Desk backend initialized")
        except Exception as e:
            logger.error(f"❌ Database initialization failed: {e}")
            logger.error(traceback.format_exc())
            raise

    @app.on_event("shutdown")
    async def shutdown():
        await engine.dispose()

    return app


# ─────────────────────────────────────────────
# ERROR HANDLING
# ─────────────────────────────────────────────

def register_exception_handlers(app: FastAPI):

    @app.exception_handler(DeskError)
    async def desk_error_handler(request: Request, exc: DeskError):
        if exc.status_code >= 500:
            logger.error(f"❌ {exc.__class__.__name__} on {request.url.path}: {exc.detail}")
        else:
            logger.info(f"{exc.__class__.__name__} on {request.url.path}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "type": exc.__class__.__name__}
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={"detail": str(exc.errors()), "type": "InvalidArgument"}
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler to return detailed errors"""
        logger.error(f"Global exception: {str(exc)}")
        logger.error(traceback.format_exc())

        return JSONResponse(
            status_code=500,
            content={
                "detail": str(exc),
                "type": exc.__class__.__name__,
                "message": "Internal server error occurred. Check server logs for details."
            }
        )


# ─────────────────────────────────────────────
# DEPENDENCIES
# ─────────────────────────────────────────────

def get_caller(request: Request) -> Optional[str]:
    """Identity asserted by the upstream identity provider"""
    header = request.app.state.settings.identity_header
    identity = request.headers.get(header)
    return identity.strip() if identity and identity.strip() else None


def get_registry(request: Request) -> OperatorRegistry:
    return request.app.state.registry


def get_cases(request: Request) -> CaseStore:
    return request.app.state.cases


def get_intake(request: Request) -> IncidentIntake:
    return request.app.state.intake


def register_routes(app: FastAPI):

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        return {"status": "operational", "service": "case-desk"}

    # ─────────────────────────────────────────────
    # OPERATORS
    # ─────────────────────────────────────────────

    @app.post("/operators/register", response_model=OperatorProfile)
    async def register(
        request: RegisterRequest,
        caller: Optional[str] = Depends(get_caller),
        registry: OperatorRegistry = Depends(get_registry)
    ):
        """Register the calling identity; the first registrant becomes admin"""
        return await registry.register_self(caller, request.name)

    @app.get("/operators/me", response_model=OperatorProfile)
    async def my_profile(
        caller: Optional[str] = Depends(get_caller),
        registry: OperatorRegistry = Depends(get_registry)
    ):
        return await registry.get_my_profile(caller)

    @app.get("/operators/me/is-admin", response_model=IsAdminResponse)
    async def is_admin(
        caller: Optional[str] = Depends(get_caller),
        registry: OperatorRegistry = Depends(get_registry)
    ):
        return IsAdminResponse(is_admin=await registry.is_caller_admin(caller))

    @app.get("/operators", response_model=List[OperatorProfile])
    async def list_operators(
        caller: Optional[str] = Depends(get_caller),
        registry: OperatorRegistry = Depends(get_registry)
    ):
        """All operators (admin only)"""
        return await registry.list_profiles(caller)

    @app.get("/operators/{identity}", response_model=OperatorProfile)
    async def get_operator(
        identity: str,
        caller: Optional[str] = Depends(get_caller),
        registry: OperatorRegistry = Depends(get_registry)
    ):
        profile = await registry.get_profile(caller, identity)
        if profile is None:
            raise NotFound(f"No operator registered for identity '{identity}'")
        return profile

    @app.put("/operators/{identity}/role", response_model=OperatorProfile)
    async def set_role(
        identity: str,
        request: SetRoleRequest,
        caller: Optional[str] = Depends(get_caller),
        registry: OperatorRegistry = Depends(get_registry)
    ):
        """Reassign an operator's role (admin only)"""
        return await registry.set_role(caller, identity, request.role)

    # ─────────────────────────────────────────────
    # CASES
    # ─────────────────────────────────────────────

    @app.post("/cases", response_model=CreateCaseResponse)
    async def create_case(
        request: CreateCaseRequest,
        caller: Optional[str] = Depends(get_caller),
        cases: CaseStore = Depends(get_cases)
    ):
        case_id = await cases.create_case(caller, request.title, request.description, request.severity)
        return CreateCaseResponse(id=case_id)

    @app.get("/cases", response_model=List[Case])
    async def list_cases(
        status: Optional[str] = Query(None, description="Filter by status"),
        severity: Optional[str] = Query(None, description="Filter by severity"),
        caller: Optional[str] = Depends(get_caller),
        cases: CaseStore = Depends(get_cases)
    ):
        """List all cases with optional status and severity filters"""
        return await cases.get_all_cases(caller, status, severity)

    @app.get("/cases/{case_id}", response_model=Case)
    async def get_case(
        case_id: int,
        caller: Optional[str] = Depends(get_caller),
        cases: CaseStore = Depends(get_cases)
    ):
        """Get full case details including notes"""
        case = await cases.get_case_by_id(caller, case_id)
        if case is None:
            raise NotFound(f"Case {case_id} not found")
        return case

    @app.post("/cases/{case_id}/status")
    async def update_status(
        case_id: int,
        request: UpdateStatusRequest,
        caller: Optional[str] = Depends(get_caller),
        cases: CaseStore = Depends(get_cases)
    ):
        await cases.update_case_status(caller, case_id, request.status)
        return {"status": "updated", "id": case_id}

    @app.post("/cases/{case_id}/assign")
    async def assign_case(
        case_id: int,
        request: AssignCaseRequest,
        caller: Optional[str] = Depends(get_caller),
        cases: CaseStore = Depends(get_cases)
    ):
        """Assign an analyst (admin only)"""
        await cases.assign_case(caller, case_id, request.analyst)
        return {"status": "assigned", "id": case_id}

    @app.post("/cases/{case_id}/notes")
    async def add_note(
        case_id: int,
        request: AddNoteRequest,
        caller: Optional[str] = Depends(get_caller),
        cases: CaseStore = Depends(get_cases)
    ):
        await cases.add_note_to_case(caller, case_id, request.content)
        return {"status": "noted", "id": case_id}

    @app.delete("/cases/{case_id}")
    async def delete_case(
        case_id: int,
        caller: Optional[str] = Depends(get_caller),
        cases: CaseStore = Depends(get_cases)
    ):
        """Delete case and all its notes (admin only)"""
        await cases.delete_case(caller, case_id)
        return {"status": "deleted", "id": case_id}

    # ─────────────────────────────────────────────
    # INCIDENTS
    # ─────────────────────────────────────────────

    @app.post("/incidents", response_model=SubmitIncidentResponse)
    async def submit_incident(
        request: SubmitIncidentRequest,
        caller: Optional[str] = Depends(get_caller),
        intake: IncidentIntake = Depends(get_intake)
    ):
        """File an incident report and open its linked case"""
        incident_id, case_id = await intake.submit_incident_report(
            caller,
            request.title,
            request.incident_type,
            request.description,
            request.affected_systems,
            request.severity,
            request.reporter_name
        )
        return SubmitIncidentResponse(incident_id=incident_id, case_id=case_id)

    @app.get("/incidents", response_model=List[IncidentReport])
    async def list_incidents(
        caller: Optional[str] = Depends(get_caller),
        intake: IncidentIntake = Depends(get_intake)
    ):
        return await intake.get_all_incident_reports(caller)

    @app.get("/incidents/{incident_id}", response_model=IncidentReport)
    async def get_incident(
        incident_id: int,
        caller: Optional[str] = Depends(get_caller),
        intake: IncidentIntake = Depends(get_intake)
    ):
        report = await intake.get_incident_report_by_id(caller, incident_id)
        if report is None:
            raise NotFound(f"Incident {incident_id} not found")
        return report


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
