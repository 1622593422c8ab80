from pgwarden.api.tools import router as tools_router
from pgwarden.api.tools import session_router

__all__ = ["session_router", "tools_router"]
