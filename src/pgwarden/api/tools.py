import asyncio
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status

from pgwarden.api.schemas import ToolCallRequest, ToolListResponse
from pgwarden.container import get_container
from pgwarden.errors import AuthorizationError
from pgwarden.logger import Logger
from pgwarden.sessions import ToolSession

logger = Logger(__name__).get_logger()

router = APIRouter(prefix="/tools", tags=["tools"])
session_router = APIRouter(prefix="/session", tags=["session"])


def current_session(request: Request) -> ToolSession:
    """Resolve the caller's identity and return their session instance."""
    di = get_container()
    identity_provider = di.identity_provider()

    identity = identity_provider.resolve(request.headers)
    try:
        di.access_policy().require_read(identity)
    except AuthorizationError as e:
        logger.debug("Rejected unauthenticated tool request")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    assert identity is not None

    session_id = identity_provider.session_id(request.headers, identity)
    try:
        return di.session_registry().get_or_create(session_id, identity)
    except AuthorizationError as e:
        logger.warning(f"Session {session_id!r} refused for {identity.login}: {e}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@router.get("", response_model=ToolListResponse, response_model_by_alias=True)
async def list_tools(session: ToolSession = Depends(current_session)):
    """List the tools advertised to the calling identity."""
    return ToolListResponse(tools=session.tools.list_tools())


@router.post("/{name}")
async def call_tool(
    name: str,
    request: ToolCallRequest,
    session: ToolSession = Depends(current_session),
) -> dict[str, Any]:
    """
    Invoke a tool and return its result envelope.

    Tool failures are part of the envelope (``isError: true``) and are
    answered with HTTP 200; only authentication problems use HTTP errors.
    """
    result = await session.tools.call_tool(name, request.arguments)
    session.touch()
    return result.model_dump(by_alias=True)


@session_router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(session: ToolSession = Depends(current_session)):
    """Explicitly end the caller's session and release its connection."""
    # Closing waits for any statement still running on this session.
    await asyncio.to_thread(get_container().session_registry().close, session.session_id)
