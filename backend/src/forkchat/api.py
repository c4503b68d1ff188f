"""FastAPI application for branching conversations."""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chat_models import Branch, Message
from forkchat import __version__
from forkchat.auth import IdentityProvider, StaticTokenIdentityProvider, parse_bearer
from forkchat.config import Settings, settings as default_settings
from forkchat.container import Services, build_services_from_settings
from forkchat.errors import (
    GenerationError,
    InvalidCredential,
    MessageNotFound,
    NotFound,
    OwnershipViolation,
    StorageFault,
)
from forkchat.models import (
    ChatRequest,
    ChatResponse,
    ConversationListResponse,
    CreateBranchRequest,
    NewConversationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_user_id(
    request: Request,
    authorization: str | None = Header(None),
    x_user_id: str | None = Header(None, alias="X-User-ID"),
) -> str:
    """Resolve the authenticated user from the bearer token.

    X-User-ID is only honoured when allow_user_header is enabled.
    """
    if authorization is None and x_user_id and request.app.state.settings.allow_user_header:
        return x_user_id
    token = parse_bearer(authorization)
    identity = await request.app.state.identity_provider.verify(token)
    return identity.user_id


# ============= Health & Info =============


@router.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Forkchat API", "version": __version__}


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# ============= Chat Endpoints =============


@router.post("/api/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    """Send a message on a branch and get the assistant reply."""
    result = await services.chat.send_message(
        user_id=user_id,
        content=request.message,
        conversation_id=request.conversation_id,
        branch_id=request.branch_id,
    )
    return ChatResponse(
        conversation_id=result.conversation.id,
        branch_id=result.branch_id,
        user_message=result.user_message,
        message=result.assistant_message,
    )


# ============= Conversation Endpoints =============


@router.get("/api/conversations", response_model=ConversationListResponse)
async def list_conversations(
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    """List the user's conversations, most recently active first."""
    conversations = await services.chat.list_conversations(user_id)
    return ConversationListResponse(conversations=conversations, total=len(conversations))


@router.post("/api/conversations", response_model=NewConversationResponse)
async def create_conversation(user_id: str = Depends(get_user_id)):
    """Allocate a conversation ID. The conversation is created with its first message."""
    return NewConversationResponse(id=str(uuid.uuid4()), user_id=user_id)


@router.delete("/api/conversations/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    """Delete a conversation with all its branches and messages."""
    await services.chat.delete_conversation(user_id, conversation_id)
    return {"success": True, "message": "Conversation deleted successfully"}


@router.get("/api/conversations/{conversation_id}/branches", response_model=list[Branch])
async def list_branches(
    conversation_id: str,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    """List the branches of a conversation."""
    return await services.chat.list_branches(user_id, conversation_id)


@router.get(
    "/api/conversations/{conversation_id}/branches/{branch_id}/messages",
    response_model=list[Message],
)
async def get_branch_messages(
    conversation_id: str,
    branch_id: str,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    """Get a branch's messages with their IDs, oldest first."""
    return await services.chat.get_branch_messages(user_id, conversation_id, branch_id)


# ============= Branch Endpoints =============


@router.post("/api/branches", response_model=Branch)
async def create_branch(
    request: CreateBranchRequest,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    """Fork a branch at one of its messages."""
    try:
        return await services.chat.create_branch(
            user_id=user_id,
            conversation_id=request.conversation_id,
            parent_branch_id=request.parent_branch_id,
            parent_message_id=request.parent_message_id,
            branch_id=request.branch_id,
            name=request.name,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ============= Error Handling =============


def _error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(InvalidCredential)
    async def invalid_credential_handler(request: Request, exc: InvalidCredential):
        return _error(401, f"Unauthorized: {exc}")

    @app.exception_handler(OwnershipViolation)
    async def ownership_handler(request: Request, exc: OwnershipViolation):
        return _error(403, "Forbidden: User does not own this conversation")

    @app.exception_handler(MessageNotFound)
    async def message_not_found_handler(request: Request, exc: MessageNotFound):
        return _error(404, str(exc))

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        # A conversation or branch deleted while the request was in flight
        logger.warning(f"Record vanished during request: {exc}")
        return _error(404, "Conversation or branch no longer exists")

    @app.exception_handler(GenerationError)
    async def generation_handler(request: Request, exc: GenerationError):
        logger.error(f"Reply generation failed: {exc}")
        return _error(502, "Reply generation failed, please retry")

    @app.exception_handler(StorageFault)
    async def storage_fault_handler(request: Request, exc: StorageFault):
        logger.error(f"Storage fault: {exc}")
        return _error(503, "Storage temporarily unavailable, please retry")


def create_app(
    settings: Settings | None = None,
    services: Services | None = None,
    identity_provider: IdentityProvider | None = None,
) -> FastAPI:
    """Build the application. The store is opened on startup and closed on shutdown."""
    settings = settings or default_settings
    services = services or build_services_from_settings(settings)
    identity_provider = identity_provider or StaticTokenIdentityProvider(settings.api_tokens)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await services.start()
        yield
        await services.stop()

    app = FastAPI(
        title="Forkchat API",
        description="Chat API with conversation branching",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services
    app.state.identity_provider = identity_provider

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(router)
    return app


# ============= Run =============


def run():
    """Run the application."""
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(
        "forkchat.api:create_app",
        factory=True,
        host=default_settings.host,
        port=default_settings.port,
    )


if __name__ == "__main__":
    run()
