from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from groupguard.core import config
from groupguard.core.database.engine import init_db
from groupguard.core.errors import AppError, ErrorKind, STATUS_CODES
from groupguard.core.rate_limit import client_key
from groupguard.features.users.routes import router as user_router
from groupguard.features.groups.routes import router as group_router
from groupguard.features.activity.routes import router as activity_router
from groupguard.utils import get_logger


log = get_logger(__name__)
log.info("Initializing server")
app = FastAPI(
    title="groupguard",
    description="Group-scoped access control with a global administrator override and an activity log",
    version="0.1.0",
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)
# App-wide default limit; counters share the store used by the injected RateLimiter
limiter = Limiter(
    key_func=client_key,
    default_limits=[config.RATE_LIMIT_DEFAULT],
    storage_uri=config.RATE_LIMIT_STORAGE_URI,
)
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.groupguard.features."), timing=timing, tags=tags))


app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("main", app))

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.ALLOW_ORIGIN:
    log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.ALLOW_ORIGIN],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(AppError)
async def app_error_handler(_request: Request, exc: AppError):
    if exc.kind == ErrorKind.AUTHENTICATION_REQUIRED:
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(exc.to_dict()),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = dict()
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        errors[str(error["loc"][-1])] = error["msg"]
    log.info("Request validation error %s", errors)
    kind = ErrorKind.VALIDATION_ERROR
    return JSONResponse(
        status_code=STATUS_CODES[kind],
        content=jsonable_encoder({"error": kind.value, "detail": errors}),
    )


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    kind = ErrorKind.RATE_LIMITED
    return JSONResponse({"error": kind.value, "detail": "You are going too fast"}, status_code=STATUS_CODES[kind])


@app.on_event("startup")
async def startup():
    """Initialize database on application startup."""
    log.info("Initializing database...")
    await init_db()
    log.info("Database initialized successfully")


@app.get("/health")
@limiter.exempt
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(user_router, prefix="/users", tags=["users"])
app.include_router(group_router, prefix="/groups", tags=["groups"])
app.include_router(activity_router, prefix="/activity-logs", tags=["activity-logs"])
