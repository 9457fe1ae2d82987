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

from app.core import config
from app.core.database.engine import init_db
from app.core.errors import ImproperPayload, ServerError, TooManyRequests
from app.features.attributes.routes import router as attribute_router
from app.features.conversations.routes import router as conversation_router
from app.features.groups.routes import router as group_router
from app.features.questions.routes import router as question_router
from app.features.users.dependencies import get_authorization_header
from app.features.users.routes import router as user_router
from app.utils import get_logger


log = get_logger(__name__)
log.info("Initializing mentorship backend")
app = FastAPI(
    title="Mentorship Backend",
    description="Groups, conversations and versioned user attributes behind a role-based policy engine",
    version="0.1.0",
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)

# Every route shares one budget per Authorization header
limiter = Limiter(
    key_func=get_authorization_header,
    default_limits=[config.RATE_LIMIT],
    enabled=config.RATE_LIMIT_ENABLED,
)
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


class LogTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug("timing route=%s seconds=%.4f tags=%s", metric_name.removeprefix("mentorship.app.features."), timing, tags)


app.add_middleware(TimingMiddleware, client=LogTimings(), metric_namer=StarletteScopeToName("mentorship", app))

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.ALLOW_ORIGIN:
    log.warning("Allowing cross-origin requests from %s", config.ALLOW_ORIGIN)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.ALLOW_ORIGIN],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def error_response(error: ServerError) -> JSONResponse:
    return JSONResponse(status_code=error.status, content=jsonable_encoder(error.to_response()))


@app.exception_handler(ServerError)
async def server_error_handler(_request: Request, exc: ServerError):
    if exc.status >= 500:
        log.error("Server error %s: %s", exc.code, exc.message)
    return error_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    # Field name to message, e.g. {"participants": "Input should be 'mentee', ..."}
    details = {}
    for error in exc.errors():
        if "loc" in error and "msg" in error:
            details[str(error["loc"][-1])] = error["msg"]
    log.info("Improper payload %s", details)
    return error_response(ImproperPayload(details=details))


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return error_response(TooManyRequests())


@app.on_event("startup")
async def startup():
    await init_db()
    log.info("Database ready at %s", config.SQLALCHEMY_DATABASE_URL.split("@")[-1])


@app.get("/")
async def root():
    return {
        "message": "Mentorship Backend API",
        "version": app.version,
        "docs": app.docs_url,
    }


@app.get("/ping")
async def ping():
    return {"pong": True}


@app.get("/health")
async def health():
    return {"status": "healthy"}


app.include_router(user_router, prefix="/users", tags=["users"])
app.include_router(attribute_router, prefix="/users", tags=["attributes"])
app.include_router(group_router, prefix="/groups", tags=["groups"])
app.include_router(conversation_router, prefix="/conversations", tags=["conversations"])
app.include_router(question_router, prefix="/conversations", tags=["questions"])
