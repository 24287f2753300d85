from __future__ import annotations

import logging
from logging.config import dictConfig

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.v1.router import api_router
from core.config import settings
from core.errors import ClinicError
from db.database import close_database
from services.realtime import RoomHub


def configure_logging() -> None:
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                    "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "level": "INFO",
                }
            },
            "root": {"handlers": ["console"], "level": "INFO"},
            "loggers": {
                "agent": {"level": "INFO", "propagate": True},
                "services": {"level": "INFO", "propagate": True},
                "httpx": {"level": "WARNING", "propagate": True},
            },
        }
    )


configure_logging()
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Dental Clinic Assistant", version="0.1.0")
    app.state.hub = RoomHub()

    origins_env = settings.allowed_origins.strip()
    allow_all_origins = origins_env in {"*", '"*"'}
    if allow_all_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        allowed_origins = [o.strip() for o in origins_env.split(",") if o.strip()]
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(ClinicError)
    async def _clinic_error_handler(request: Request, exc: ClinicError) -> JSONResponse:
        logger.info(
            "api.request_rejected",
            extra={"path": request.url.path, "status_code": exc.status_code, "reason": exc.message},
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    app.include_router(api_router, prefix="/api/v1")

    @app.on_event("shutdown")
    async def _close_database() -> None:
        await close_database()

    @app.get("/")
    async def root_health() -> dict[str, str]:
        return {"status": "ok"}

    logger.info("Application initialized", extra={"environment": settings.environment})
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.environment == "development")
