# petpro/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from petpro.api.v1.admin import router as admin_router
from petpro.api.v1.auth import router as auth_router
from petpro.api.v1.team import router as team_router
from petpro.core.config import settings
from petpro.core.db import close_pool
from petpro.core.errors import install_error_handlers
from petpro.core.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("PetPro API starting", extra={"meta": {"env": settings.APP_ENV}})
    yield
    close_pool()


def create_app() -> FastAPI:
    app = FastAPI(title="PetPro API", version="1.0", lifespan=lifespan)

    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Retry-After"],
    )

    install_error_handlers(app)

    @app.get("/health")
    def health(): return {"ok": True}

    app.include_router(auth_router)
    app.include_router(team_router)
    app.include_router(admin_router)
    return app


app = create_app()
