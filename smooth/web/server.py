"""FastAPI server for the Smooth browser UI."""

import logging
import threading
import time
import webbrowser
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..core.errors import ConfigError, GitCommandError, PreconditionError, SmoothError
from ..core.service import SmoothService
from .api.routes import router as api_router

logger = logging.getLogger(__name__)

WEB_DIR = Path(__file__).parent


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "Invalid request: " + "; ".join(parts) if parts else "Invalid request"


def install_error_handlers(app: FastAPI) -> None:
    """Every error body is {"error": message}."""

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return _error(_validation_message(exc), 400)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(str(exc.detail), exc.status_code)

    @app.exception_handler(PreconditionError)
    async def precondition_error(request: Request, exc: PreconditionError):
        return _error(str(exc), 400)

    @app.exception_handler(ConfigError)
    async def config_error(request: Request, exc: ConfigError):
        return _error(str(exc), 400)

    @app.exception_handler(GitCommandError)
    async def git_error(request: Request, exc: GitCommandError):
        logger.error(f"{request.url.path}: {exc}")
        return _error(str(exc), 500)

    @app.exception_handler(SmoothError)
    async def smooth_error(request: Request, exc: SmoothError):
        logger.error(f"{request.url.path}: {exc}")
        return _error(str(exc), 500)


class SmoothWebServer:
    """Browser UI server for one repository."""

    def __init__(self, service: SmoothService, host: str = "127.0.0.1", port: int = 3000):
        """Initialize web server.

        Args:
            service: Repository service every route works against
            host: Server host address
            port: Server port
        """
        self.service = service
        self.host = host
        self.port = port
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="smooth-git")
        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        app = FastAPI(
            title="Smooth",
            description="A friendlier face for git",
            version=__version__,
        )

        # The UI is served from the same origin; only local tools need CORS
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[f"http://{self.host}:{self.port}", f"http://localhost:{self.port}"],
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

        install_error_handlers(app)
        app.include_router(api_router, prefix="/api")

        app.mount("/static", StaticFiles(directory=str(WEB_DIR / "static")), name="static")
        templates = Jinja2Templates(directory=str(WEB_DIR / "templates"))

        @app.get("/", response_class=HTMLResponse)
        async def index(request: Request):
            """Serve the single-page UI, coloured with the configured theme."""
            theme = self.service.theme
            return templates.TemplateResponse(
                request,
                "index.html",
                {"theme": theme, "css_variables": theme.css_variables(), "version": __version__},
            )

        @app.get("/health")
        async def health_check():
            """Health check endpoint."""
            return {"status": "healthy", "repository": str(self.service.repo_root)}

        app.state.service = self.service
        app.state.executor = self.executor

        return app

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def run(self, open_browser: bool = True) -> None:
        """Start the server and block until it stops.

        Args:
            open_browser: Whether to open a browser window once it is up
        """
        logger.info(f"Starting web UI at {self.url}")

        if open_browser:
            def open_after_delay():
                time.sleep(1)
                webbrowser.open(self.url)

            threading.Thread(target=open_after_delay, daemon=True).start()

        try:
            uvicorn.run(self.app, host=self.host, port=self.port, log_level="warning")
        finally:
            self.executor.shutdown(wait=True)
