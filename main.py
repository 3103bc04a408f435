from fastapi import FastAPI
from contextlib import AsyncExitStack, asynccontextmanager

from identity_hub.connections import mongo_lifespan
from identity_hub.connections.redis import redis_lifespan
from identity_hub.api.auth import router as auth_router
from identity_hub.api.users import router as user_router
from identity_hub.api.roles import router as role_router
from identity_hub.api.permissions import router as permission_router
from identity_hub.services.bootstrap import run_initial_setup
from identity_hub.services.scheduler import schedule_token_purge
from identity_hub.utils.config import settings
from identity_hub.utils.errors import register_error_handlers
from identity_hub.utils.logging import get_logger, setup_logging


logger = get_logger(__name__)


@asynccontextmanager
async def combined_lifespan(app: FastAPI):
    async with AsyncExitStack() as stack:
        await stack.enter_async_context(mongo_lifespan(app))
        await stack.enter_async_context(redis_lifespan(app))

        run_initial_setup()
        if settings.redis_enabled:
            schedule_token_purge()

        logger.info("app_started", app_name=settings.app_name, environment=settings.environment)
        yield


def create_app(lifespan=combined_lifespan) -> FastAPI:
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(title="Identity Hub", version="0.1.0", lifespan=lifespan)
    register_error_handlers(app)

    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(user_router, prefix="/api/users", tags=["users"])
    app.include_router(role_router, prefix="/api/roles", tags=["roles"])
    app.include_router(permission_router, prefix="/api/permissions", tags=["permissions"])
    return app


app = create_app()
