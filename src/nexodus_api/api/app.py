"""
FastAPI Application Module

Token-authenticated chat backend meant to sit behind a reverse proxy.

Request pipeline:
- Logging middleware (outermost) tracks requests and turns unexpected
  exceptions into a generic 500
- Proxy gatekeeper rejects anything that did not come through the proxy
- Routes authenticate the bearer token and services check chat ownership

Domain errors raised anywhere below the routes are mapped to status codes by
the exception handlers registered here.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from structlog import get_logger

from ..config import Settings, configure_logging, get_settings
from ..domain.errors import NexodusError, ValidationError
from ..repositories import (
    ChatRepository,
    InMemoryChatRepository,
    InMemoryUserRepository,
    UserRepository,
)
from ..repositories.bounded import BoundedChatRepository, BoundedUserRepository
from ..security.authenticator import CredentialAuthenticator
from ..security.authorizer import OwnershipAuthorizer
from ..security.passwords import PasswordHasher
from ..security.tokens import TokenService
from ..services import ChatService, ChatWriteQueue, UserService
from .gatekeeper import ProxyGatekeeper
from .metrics import ERRORS, REQUESTS
from .rate_limiter import RateLimiter, RateLimitExceeded
from .routes import chats_router, public_router, system_router, users_router

logger = get_logger()

INTERNAL_ERROR_MESSAGE = "An internal error occurred."


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles app startup/shutdown and resource management"""
    await app.state.rate_limiter.start()
    logger.info("application_startup_complete")

    yield

    await app.state.write_queue.cleanup()
    await app.state.rate_limiter.stop()
    logger.info("application_shutdown_complete")


async def nexodus_error_handler(request: Request, exc: NexodusError) -> JSONResponse:
    """Maps a domain error to its status code"""
    ERRORS.labels(status=str(exc.status_code)).inc()
    context = dict(
        path=request.url.path,
        user_id=getattr(request.state, "user_id", None),
        error=type(exc).__name__,
    )
    if exc.status_code >= 500:
        logger.error("request_error", **context)
    else:
        logger.info("request_rejected", status=exc.status_code, **context)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    ERRORS.labels(status="429").inc()
    return JSONResponse(
        status_code=429,
        content={"detail": str(exc)},
        headers={"Retry-After": str(exc.retry_after)},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Answers malformed bodies with 400 rather than 422"""
    logger.info("request_body_invalid", path=request.url.path, errors=len(exc.errors()))
    return await nexodus_error_handler(request, ValidationError())


async def logging_middleware(request: Request, call_next):
    """Tracks requests and hides unexpected failures behind a generic 500"""
    REQUESTS.inc()
    logger.info("request_started", method=request.method, path=request.url.path)
    try:
        return await call_next(request)
    except Exception as e:
        ERRORS.labels(status="500").inc()
        logger.error(
            "request_failed",
            path=request.url.path,
            user_id=getattr(request.state, "user_id", None),
            error=str(e),
        )
        return JSONResponse(status_code=500, content={"detail": INTERNAL_ERROR_MESSAGE})


def create_app(
    settings: Optional[Settings] = None,
    users: Optional[UserRepository] = None,
    chats: Optional[ChatRepository] = None,
) -> FastAPI:
    """Build an application wired to the given settings and stores."""
    settings = settings or get_settings()
    configure_logging(settings)

    user_store = BoundedUserRepository(users or InMemoryUserRepository(), settings.store_timeout)
    chat_store = BoundedChatRepository(chats or InMemoryChatRepository(), settings.store_timeout)
    tokens = TokenService()
    write_queue = ChatWriteQueue(write_timeout=settings.write_timeout)

    app = FastAPI(
        title="Nexodus API",
        description="Token-authenticated chat backend",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.write_queue = write_queue
    app.state.rate_limiter = RateLimiter(
        rate_limit=settings.auth_rate_limit, time_window=settings.auth_rate_window
    )
    app.state.authenticator = CredentialAuthenticator(user_store, tokens)
    app.state.user_service = UserService(
        user_store, PasswordHasher(settings.hash_iterations), tokens
    )
    app.state.chat_service = ChatService(
        chat_store, user_store, OwnershipAuthorizer(chat_store), write_queue
    )

    app.include_router(public_router)
    app.include_router(system_router)
    app.include_router(users_router)
    app.include_router(chats_router)

    app.add_exception_handler(NexodusError, nexodus_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Added last runs first: logging wraps the gatekeeper.
    gatekeeper = ProxyGatekeeper(
        settings.proxy_secret, settings.proxy_header, exempt_routes=public_router.routes
    )
    app.middleware("http")(gatekeeper)
    app.middleware("http")(logging_middleware)

    # Set up request tracing
    FastAPIInstrumentor.instrument_app(app)

    return app


app = create_app()
