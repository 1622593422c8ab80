import asyncio
import contextlib
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from pgwarden import __version__
from pgwarden.api import session_router, tools_router
from pgwarden.config import settings
from pgwarden.container import init_container, reset_container
from pgwarden.logger import Logger
from pgwarden.sessions import SessionRegistry

logger = Logger(__name__).get_logger()


async def sweep_idle_sessions(registry: SessionRegistry, interval: float) -> None:
    """Periodically release the connections of sessions nobody is using."""
    while True:
        await asyncio.sleep(interval)
        try:
            closed = await asyncio.to_thread(registry.sweep_idle)
        except Exception as e:
            logger.error(f"Idle session sweep failed: {e}")
            continue
        if closed:
            logger.info(f"Cleaned up {closed} idle session(s).")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise the DI container and run the idle-session sweeper."""
    logger.info("Initializing DI container...")
    container = init_container()
    logger.info("DI container ready.")
    sweeper = asyncio.create_task(
        sweep_idle_sessions(container.session_registry(), settings.SESSION_SWEEP_INTERVAL)
    )
    yield
    logger.info("Shutting down – closing database sessions...")
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    await asyncio.to_thread(reset_container)
    logger.info("All sessions closed.")


app = FastAPI(
    title="pgwarden",
    description="Permission-tiered SQL tools for PostgreSQL",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(tools_router, prefix="/api/v1")
app.include_router(session_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {"status": "ok"}


def run() -> None:
    logger.info("Starting pgwarden server...")
    uvicorn.run("pgwarden.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
