from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gated_notes.config import settings
from gated_notes.db import init_storage
from gated_notes.db.vault import VaultPathError


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_storage(settings.vault_dir)
    from gated_notes.services.deck_store import get_deck_store
    from gated_notes.services.indicators import init_indicators
    from gated_notes.services.session_registry import close_all

    await init_indicators(get_deck_store()).rebuild()
    yield
    await close_all()


async def _vault_path_error(request: Request, exc: VaultPathError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def create_app() -> FastAPI:
    application = FastAPI(
        title="Gated Notes Scheduler", version="0.1.0", lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(VaultPathError, _vault_path_error)

    from gated_notes.routers import cards, health, notices, review

    application.include_router(health.router)
    application.include_router(
        review.router, prefix="/review", tags=["review"]
    )
    application.include_router(
        cards.router, prefix="/cards", tags=["cards"]
    )
    application.include_router(
        notices.router, prefix="/notices", tags=["notices"]
    )

    return application


app = create_app()
