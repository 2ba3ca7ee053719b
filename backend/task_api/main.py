import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import Settings
from .databases.database import Database
from .logging_setup import setup_logging
from .routes import auth, tasks
from .utils.errors import register_error_handlers
from .utils.security import TokenService

logger = logging.getLogger(__name__)

ENDPOINTS = {
    "auth": {
        "register": "POST /api/auth/register",
        "login": "POST /api/auth/login",
    },
    "tasks": {
        "getAll": "GET /api/tasks",
        "getOne": "GET /api/tasks/:id",
        "create": "POST /api/tasks",
        "update": "PUT /api/tasks/:id",
        "delete": "DELETE /api/tasks/:id",
        "stats": "GET /api/tasks/stats/overview (admin)",
        "purge": "DELETE /api/tasks/admin/purge-completed (admin)",
    },
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    app.state.db.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application. Settings are read from the environment unless
    given; a missing JWT_SECRET stops startup with ConfigError.
    """
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)

    database = Database(settings.database_url)
    database.create_all()

    app = FastAPI(title="Task Manager API", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.db = database
    app.state.tokens = TokenService.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(auth.router)
    app.include_router(tasks.router)

    @app.get("/", summary="Service banner")
    def read_root():
        return {"message": "Task Manager API", "version": __version__, "endpoints": ENDPOINTS}

    logger.info("Task Manager API %s configured", __version__)
    return app
