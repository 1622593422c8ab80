from dependency_injector import containers, providers

from pgwarden.auth import AccessPolicy
from pgwarden.config import settings
from pgwarden.identity import HeaderIdentityProvider
from pgwarden.logger import Logger
from pgwarden.sessions import SessionRegistry

logger = Logger(__name__).get_logger()


class Container(containers.DeclarativeContainer):
    """Dependency injection container for pgwarden services."""

    # -- Authorization -----------------------------------------------------
    access_policy = providers.Singleton(
        AccessPolicy,
        allowed_usernames=settings.allowed_usernames,
    )

    identity_provider = providers.Singleton(HeaderIdentityProvider)

    # -- Sessions ----------------------------------------------------------
    session_registry = providers.Singleton(
        SessionRegistry,
        database_url=settings.DATABASE_URL,
        access_policy=access_policy,
        schema=settings.DEFAULT_SCHEMA,
        idle_timeout=settings.SESSION_IDLE_TIMEOUT,
    )


_container: Container | None = None


def get_container() -> Container:
    """Return the singleton container instance (must call ``init_container`` first)."""
    if _container is None:
        raise RuntimeError(
            "DI container has not been initialised. Call init_container() first."
        )
    return _container


def init_container() -> Container:
    """Create and eagerly initialize all singletons."""
    global _container

    if _container is not None:
        return _container

    logger.debug("Creating DI container...")
    _container = Container()

    _container.access_policy()
    _container.identity_provider()
    _container.session_registry()
    logger.debug(
        f"Write access granted to {len(settings.allowed_usernames)} allow-listed user(s)."
    )

    return _container


def reset_container() -> None:
    """Drop the current container, closing every session."""
    global _container

    if _container is None:
        return
    _container.session_registry().close_all()
    _container = None
