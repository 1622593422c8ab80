from collections.abc import Iterable

from pgwarden._types import Identity, Permission
from pgwarden.errors import AuthorizationError


class AccessPolicy:
    """Maps a verified identity to its permission tier.

    Any authenticated identity may read.  Writing is reserved for the logins
    in the allow-list, compared by exact string equality.
    """

    def __init__(self, allowed_usernames: Iterable[str]) -> None:
        self._allowed_usernames = frozenset(allowed_usernames)

    @property
    def allowed_usernames(self) -> frozenset[str]:
        return self._allowed_usernames

    def can_read(self, identity: Identity | None) -> bool:
        return identity is not None and bool(identity.login)

    def can_write(self, identity: Identity | None) -> bool:
        return self.can_read(identity) and identity.login in self._allowed_usernames  # type: ignore[union-attr]

    def permissions(self, identity: Identity | None) -> frozenset[Permission]:
        if not self.can_read(identity):
            return frozenset()
        if self.can_write(identity):
            return frozenset({Permission.READ, Permission.WRITE})
        return frozenset({Permission.READ})

    def require_read(self, identity: Identity | None) -> None:
        if not self.can_read(identity):
            raise AuthorizationError("Authentication required.")

    def require_write(self, identity: Identity | None) -> None:
        if not self.can_write(identity):
            login = identity.login if identity is not None else "anonymous"
            raise AuthorizationError(
                f"User '{login}' does not have write access to the database."
            )
