import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from pgwarden._types import Identity
from pgwarden.auth import AccessPolicy
from pgwarden.database import ConnectionManager
from pgwarden.errors import AuthorizationError
from pgwarden.logger import Logger
from pgwarden.tools import DatabaseTools

logger = Logger(__name__).get_logger()


@dataclass
class ToolSession:
    """One isolated instance: an identity, its connection and its tools."""

    session_id: str
    identity: Identity
    connections: ConnectionManager
    tools: DatabaseTools
    last_used: float = field(default_factory=time.monotonic)

    def touch(self, now: float | None = None) -> None:
        self.last_used = time.monotonic() if now is None else now

    def cleanup(self) -> None:
        self.connections.cleanup()


class SessionRegistry:
    """Creates sessions on demand and cleans up the ones left idle."""

    def __init__(
        self,
        database_url: str,
        access_policy: AccessPolicy,
        schema: str = "public",
        idle_timeout: float = 300.0,
        connection_factory: Callable[[str], ConnectionManager] = ConnectionManager,
    ) -> None:
        self._database_url = database_url
        self._access_policy = access_policy
        self._schema = schema
        self._idle_timeout = idle_timeout
        self._connection_factory = connection_factory
        self._sessions: dict[str, ToolSession] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def get_or_create(self, session_id: str, identity: Identity) -> ToolSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                if session.identity.login != identity.login:
                    raise AuthorizationError("Session belongs to a different user.")
                session.touch()
                return session

            connections = self._connection_factory(self._database_url)
            session = ToolSession(
                session_id=session_id,
                identity=identity,
                connections=connections,
                tools=DatabaseTools(
                    identity=identity,
                    access_policy=self._access_policy,
                    connections=connections,
                    schema=self._schema,
                ),
            )
            self._sessions[session_id] = session
            logger.info(f"Opened session for {identity.login}")
            return session

    def close(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            session.cleanup()

    def sweep_idle(self, now: float | None = None) -> int:
        """Clean up sessions idle past the timeout; returns how many."""
        now = time.monotonic() if now is None else now
        with self._lock:
            expired = [
                sid
                for sid, session in self._sessions.items()
                if now - session.last_used >= self._idle_timeout
            ]
            sessions = [self._sessions.pop(sid) for sid in expired]
        for session in sessions:
            logger.debug(f"Cleaning up idle session of {session.identity.login}")
            session.cleanup()
        return len(sessions)

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.cleanup()
