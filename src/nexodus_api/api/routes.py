"""HTTP routes.

Routes on ``public_router`` are exempt from the proxy gatekeeper. Everything
else has to come through the proxy.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Query, Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..domain.errors import AuthenticationError, NotFoundError, ValidationError
from ..domain.models import Chat, ChatSummary, UserProfile
from ..security.authenticator import AuthReason, CredentialAuthenticator
from ..services import ChatService, UserService
from .metrics import AUTH_FAILURES, CUSTOM_REGISTRY
from .rate_limiter import RateLimiter, client_key
from .schemas import ChatRef, ChatRename, ChatRenamed, Credentials, MessageCreate, TokenResponse, UserCreate


public_router = APIRouter()
system_router = APIRouter(tags=["System"])
users_router = APIRouter(prefix="/crud", tags=["Users"])
chats_router = APIRouter(prefix="/chats", tags=["Chats"])


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def get_authenticator(request: Request) -> CredentialAuthenticator:
    return request.app.state.authenticator


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


async def limit_credentials(
    request: Request, limiter: RateLimiter = Depends(get_rate_limiter)
) -> None:
    """Throttles repeated register and login attempts"""
    await limiter.check_rate_limit(client_key(request))


async def current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    authenticator: CredentialAuthenticator = Depends(get_authenticator),
) -> str:
    """Resolves the bearer header to a user id or answers 401"""
    result = await authenticator.resolve(authorization)
    if not result.ok:
        AUTH_FAILURES.labels(reason=result.reason.value).inc()
        raise AuthenticationError()
    request.state.user_id = result.user_id
    return result.user_id


@public_router.get("/", response_class=PlainTextResponse)
async def heartbeat() -> str:
    """Liveness probe"""
    return "Heartbeat, my heartbeat."


@system_router.get("/metrics")
async def metrics():
    """Provides Prometheus metrics for system monitoring"""
    return Response(generate_latest(CUSTOM_REGISTRY), media_type=CONTENT_TYPE_LATEST)


@users_router.post(
    "/User",
    status_code=201,
    response_model=TokenResponse,
    dependencies=[Depends(limit_credentials)],
)
async def create_user(
    payload: UserCreate, service: UserService = Depends(get_user_service)
) -> TokenResponse:
    """Registers a user and returns its first token"""
    token = await service.register(payload.name, payload.email, payload.password)
    return TokenResponse(token=token)


@users_router.post(
    "/auth", response_model=TokenResponse, dependencies=[Depends(limit_credentials)]
)
async def login(
    payload: Credentials, service: UserService = Depends(get_user_service)
) -> TokenResponse:
    """Exchanges email and password for a fresh token, invalidating the old one"""
    token = await service.login(payload.email, payload.password)
    return TokenResponse(token=token)


@users_router.get("/User", response_model=UserProfile)
async def get_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    authenticator: CredentialAuthenticator = Depends(get_authenticator),
    service: UserService = Depends(get_user_service),
) -> UserProfile:
    """Returns the caller's own record"""
    result = await authenticator.resolve(authorization)
    if result.reason is AuthReason.MALFORMED_HEADER:
        AUTH_FAILURES.labels(reason=result.reason.value).inc()
        raise ValidationError("Invalid token format.")
    if not result.ok:
        AUTH_FAILURES.labels(reason=result.reason.value).inc()
        raise NotFoundError("Requested user doesn't exist.")
    request.state.user_id = result.user_id
    return await service.get_profile(result.user_id)


@chats_router.post("/Chat", status_code=201, response_model=ChatRef)
async def create_chat(
    message: MessageCreate,
    user_id: str = Depends(current_user),
    service: ChatService = Depends(get_chat_service),
) -> ChatRef:
    """Starts a chat with a user prompt"""
    chat = await service.create(user_id, message.role, message.content)
    return ChatRef(id=chat.id)


@chats_router.get("/Chat", response_model=Chat, response_model_exclude={"version"})
async def get_chat(
    chat_id: Optional[str] = Query(default=None, alias="id"),
    user_id: str = Depends(current_user),
    service: ChatService = Depends(get_chat_service),
) -> Chat:
    """Returns a whole chat owned by the caller"""
    return await service.get(user_id, chat_id)


@chats_router.get("/list", response_model=List[ChatSummary])
async def list_chats(
    user_id: str = Depends(current_user),
    service: ChatService = Depends(get_chat_service),
) -> List[ChatSummary]:
    """Lists the caller's chats, newest first"""
    return await service.list(user_id)


@chats_router.put("/Chat", response_model=ChatRenamed)
async def rename_chat(
    payload: ChatRename,
    user_id: str = Depends(current_user),
    service: ChatService = Depends(get_chat_service),
) -> ChatRenamed:
    chat = await service.rename(user_id, payload.id, payload.title)
    return ChatRenamed(id=chat.id, title=chat.title)


@chats_router.put("/append", response_model=ChatRef)
async def append_message(
    message: MessageCreate,
    chat_id: Optional[str] = Query(default=None, alias="id"),
    user_id: str = Depends(current_user),
    service: ChatService = Depends(get_chat_service),
) -> ChatRef:
    chat = await service.append(user_id, chat_id, message.role, message.content)
    return ChatRef(id=chat.id)


@chats_router.delete("/Chat", response_model=ChatRef)
async def delete_chat(
    chat_id: Optional[str] = Query(default=None, alias="id"),
    user_id: str = Depends(current_user),
    service: ChatService = Depends(get_chat_service),
) -> ChatRef:
    await service.delete(user_id, chat_id)
    return ChatRef(id=chat_id)
