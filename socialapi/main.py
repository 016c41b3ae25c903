import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from mangum import Mangum
from starlette.middleware.cors import CORSMiddleware

from socialapi import containers
from socialapi.config import settings
from socialapi.core.exception_handlers import register_exception_handlers
from socialapi.routers import (
    health_router,
    og_router,
    point_router,
    profile_router,
    social_router,
)
from socialapi.utils.config import init_logging

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME)
    load_dotenv("socialapi/.env")
    app.container = containers.Container()  # type: ignore

    init_logging(settings.LOG_LEVEL)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"Request: {request.method} {request.url}")
        response = await call_next(request)
        logger.info(f"Response: {response.status_code}")
        return response

    register_exception_handlers(app)

    @app.get("/")
    def hello() -> dict:
        return {"message": "Hello World!"}

    api_prefix = settings.API_V1_STR
    app.include_router(health_router.router, prefix=api_prefix)
    app.include_router(point_router.router, prefix=api_prefix)
    app.include_router(og_router.router, prefix=api_prefix)
    app.include_router(og_router.trades_router, prefix=api_prefix)
    app.include_router(social_router.followers_router, prefix=api_prefix)
    app.include_router(social_router.comments_router, prefix=api_prefix)
    app.include_router(profile_router.router, prefix=api_prefix)
    app.include_router(profile_router.identities_router, prefix=api_prefix)

    return app


app = create_app()

handler = Mangum(app)
