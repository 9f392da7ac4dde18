# main.py
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config import Settings
from services.container import build_services
from services.errors import ReactShareError, UpstreamProviderError

from api.routes_accounts import router as accounts_router
from api.routes_analytics import router as analytics_router
from api.routes_folders import router as folders_router
from api.routes_playlists import router as playlists_router
from api.routes_publish import router as publish_router
from api.routes_reactions import router as reactions_router
from api.routes_videos import router as videos_router

LOG_FORMAT = '[%(asctime)s] [%(levelname)s] [%(name)s] - %(message)s'

logger = logging.getLogger("ReactShare-Main")


def configure_logging():
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')


def create_app(services=None) -> FastAPI:
    """
    Builds the API. Without injected services, Settings are read from the
    environment at startup and a missing required value stops the boot.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("===================================================")
        logger.info("ReactShare Publishing Core - Starting Up...")
        logger.info("===================================================")

        if getattr(app.state, "services", None) is None:
            settings = Settings.from_env()
            logging.getLogger().setLevel(settings.log_level)
            app.state.services = build_services(settings)

        app.state.services.start()
        yield

        logger.info("Shutting down ReactShare gracefully...")
        app.state.services.shutdown()

    app = FastAPI(title="ReactShare Publishing API", lifespan=lifespan)
    app.state.services = services

    @app.exception_handler(ReactShareError)
    async def handle_domain_error(request: Request, exc: ReactShareError):
        if isinstance(exc, UpstreamProviderError):
            logger.error(f"[API] {request.method} {request.url.path} upstream error from "
                         f"{exc.provider}: {exc.raw_body}")
        elif exc.status_code >= 500:
            logger.error(f"[API] {request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"[API] Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # Registering Routers
    app.include_router(accounts_router)
    app.include_router(videos_router)
    app.include_router(folders_router)
    app.include_router(reactions_router)
    app.include_router(publish_router)
    app.include_router(analytics_router)
    app.include_router(playlists_router)
    return app


configure_logging()
app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
