from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from app.core import config
from app.core.database.engine import init_db, create_secondary_engine
from app.core.rate_limit import limiter
from app.features.users.routes import router as user_router
from app.features.permissions.routes import router as permission_router
from app.features.members.routes import router as member_router
from app.features.spreadsheets.routes import router as spreadsheet_router
from app.features.directory_sync.routes import router as directory_sync_router
from app.utils import get_logger


log = get_logger(__name__)
log.info("Initializing server")
app = FastAPI(
    title="Church Directory Backend",
    description="Member directory, role permissions and MySQL directory sync",
    version="0.1.0",
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)
app.state.limiter = limiter
app.state.secondary_engine = None

# Every failure under this prefix is answered as {"success": false, "error": ...}
DIRECTORY_SYNC_PREFIX = "/directory-sync"


def _is_directory_sync(request: Request) -> bool:
    return request.url.path.startswith(DIRECTORY_SYNC_PREFIX)


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.app.features."), timing=timing, tags=tags))


app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("main", app))

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.ALLOW_ORIGIN:
    log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
    origins = [config.ALLOW_ORIGIN]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = dict()
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1]
        if key == "__root__":
            key = "root"
        errors[key] = error["msg"]
    log.info("Request validation error %s", errors)
    if _is_directory_sync(request):
        message = "; ".join(f"{key}: {msg}" for key, msg in errors.items())
        return JSONResponse(status_code=400, content={"success": False, "error": message})
    return JSONResponse(status_code=400, content=jsonable_encoder(errors))


@app.exception_handler(StarletteHTTPException)
async def directory_sync_http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    if not _is_directory_sync(request):
        return await http_exception_handler(request, exc)
    return JSONResponse(
        {"success": False, "error": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"success": False, "error": "You are going too fast"}, status_code=429)


@app.on_event("startup")
async def startup():
    """Initialize the primary database and connect the secondary store."""
    log.info("Initializing database...")
    await init_db()
    log.info("Database initialized successfully")
    app.state.secondary_engine = create_secondary_engine()


@app.on_event("shutdown")
async def shutdown():
    if app.state.secondary_engine is not None:
        await app.state.secondary_engine.dispose()
        app.state.secondary_engine = None


@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": "Church Directory Backend API",
        "version": "0.1.0",
        "status": "online",
        "docs": "/docs" if config.ENABLE_DOCS else None,
        "authentication": {
            "info": "Protected endpoints require an Appwrite session JWT as Bearer token",
            "protected_endpoints": [
                "/users/me", "/permissions/*", "/members/*",
                "/spreadsheets/*", "/directory-sync/*"
            ],
            "public_endpoints": ["/", "/health"]
        },
        "features": {
            "permissions": "Role resolution and static role-to-capability policy",
            "members": "Member directory on the primary store",
            "spreadsheets": "CSV export and import of the member directory",
            "directory_sync": "Upsert sync of members between the primary store and MySQL"
        }
    }


@app.get("/health")
async def health():
    """Health check endpoint. Reports whether the directory sync can run."""
    return {
        "status": "healthy",
        "directory_sync": "enabled" if app.state.secondary_engine is not None else "disabled",
    }


# Include routers
app.include_router(user_router, prefix="/users", tags=["users"])
# Alias for singular form (if frontend uses /user/me)
app.include_router(user_router, prefix="/user", tags=["users"], include_in_schema=False)

# Permission routes
app.include_router(permission_router, prefix="/permissions", tags=["permissions"])

# Member directory routes
app.include_router(member_router, prefix="/members", tags=["members"])

# Spreadsheet routes
app.include_router(spreadsheet_router, prefix="/spreadsheets", tags=["spreadsheets"])

# Directory sync routes (administrators only)
app.include_router(directory_sync_router, prefix=DIRECTORY_SYNC_PREFIX, tags=["directory-sync"])
