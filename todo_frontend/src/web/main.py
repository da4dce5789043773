import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .remote import AuthError, RemoteStore, get_remote_store
from .routers import pages as pages_router
from .routers import session as session_router
from .routers import todos as todos_router
from .settings import Settings, get_settings
from .workspace import Workspace

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "Todo operations against the remote store, answered with the local state envelope.",
    },
    {"name": "session", "description": "Session gate state, sign-in, sign-up and sign-out."},
]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, remote: Optional[RemoteStore] = None) -> FastAPI:
    """
    Build the front end application.

    Args:
        settings: Settings to use; loaded from the environment when omitted.
        remote: Remote store client; built from settings when omitted.

    Returns:
        A FastAPI app owning one Workspace, closed on shutdown.
    """
    settings = settings or get_settings()
    _configure_logging(settings.log_level)
    workspace = Workspace(settings, remote or get_remote_store(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await workspace.start()
        yield
        await workspace.aclose()

    app = FastAPI(
        title="Todo Front End",
        description="Todo list front end delegating persistence and authentication to a remote store.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.workspace = workspace

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "error": "ValidationError",
                "detail": [... pydantic/fastapi error details ...],
                "message": "Request validation failed"
            }
        """
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": exc.errors(),
            },
        )

    @app.exception_handler(AuthError)
    async def auth_exception_handler(request: Request, exc: AuthError) -> JSONResponse:
        """
        Map remote authentication failures to 401.

        Response format:
            {"error": "AuthError", "message": "<remote store message>"}
        """
        return JSONResponse(
            status_code=401,
            content={"error": "AuthError", "message": exc.message},
        )

    # PUBLIC_INTERFACE
    @app.get("/health", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": settings.remote_backend}

    app.include_router(pages_router.router)
    app.include_router(todos_router.router)
    app.include_router(session_router.router)
    return app


app = create_app()
