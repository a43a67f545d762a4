from __future__ import annotations

import logging
import time
from contextlib import suppress
from pathlib import Path
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from sharedir import __version__
from sharedir.core.config import Settings
from sharedir.core.diagnostics import build_envelope, safe_publish
from sharedir.core.logging import VerbosityLevel, get_logger, get_verbosity

from .api._deps import Services
from .api.archive import mount_archive
from .api.content import mount_content
from .api.mutations import mount_mutations
from .errors import install_error_handlers

TEMPLATES_DIR = Path(__file__).parent / "templates"


def _uvicorn_log_settings(verbosity: int) -> tuple[str, bool]:
    """Map verbosity to uvicorn (log_level, access_log).

    Access logs stay off; each request is logged by the boundary middleware.
    """
    if verbosity <= VerbosityLevel.QUIET:
        return ("error", False)
    if verbosity <= VerbosityLevel.VERBOSE:
        return ("warning", False)
    return ("debug", False)


def _silence_uvicorn_loggers() -> None:
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.propagate = False
        logger.setLevel(logging.ERROR)


class ShareServer:
    """HTTP surface over one shared directory."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def create_app(self) -> FastAPI:
        settings = self.settings
        app = FastAPI(
            title="sharedir",
            version=__version__,
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )
        app.state.settings = settings
        app.state.services = Services.build(settings)
        app.state.web_logger = get_logger("sharedir.web")

        @app.middleware("http")
        async def _emit_route_boundary(request: Request, call_next: Any) -> Any:
            op = f"{request.method} {request.scope.get('path', '')}"
            logger = request.app.state.web_logger

            start_data: dict[str, Any] = {
                "path": request.scope.get("path", ""),
                "method": request.method,
            }
            safe_publish(
                "boundary.start",
                build_envelope(
                    event="boundary.start",
                    component="web",
                    operation=op,
                    data=start_data,
                ),
            )

            t0 = time.monotonic()

            def _end(data: dict[str, Any]) -> None:
                data["duration_ms"] = int((time.monotonic() - t0) * 1000)
                safe_publish(
                    "boundary.end",
                    build_envelope(event="boundary.end", component="web", operation=op, data=data),
                )
                with suppress(Exception):
                    if data["status"] == "succeeded":
                        logger.info(
                            op,
                            status_code=data["status_code"],
                            duration_ms=data["duration_ms"],
                        )
                    else:
                        logger.error(f"{op}: {data['status']}", **data)

            try:
                response = await call_next(request)
            except Exception as e:
                _end({"status": "failed", "error_type": type(e).__name__, "error": str(e)})
                raise

            status_code = int(getattr(response, "status_code", 200))

            # The end event waits for the body: a streamed archive can still
            # fail after the status line has gone out.
            async def _observed_body(body: Any) -> Any:
                data: dict[str, Any] = {"status": "succeeded", "status_code": status_code}
                try:
                    async for chunk in body:
                        yield chunk
                except Exception as e:
                    data.update(
                        {"status": "failed", "error_type": type(e).__name__, "error": str(e)}
                    )
                    raise
                except BaseException:
                    data["status"] = "cancelled"
                    raise
                finally:
                    _end(data)

            response.body_iterator = _observed_body(response.body_iterator)
            return response

        install_error_handlers(app)

        templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
        router = APIRouter(prefix=settings.prefix.rstrip("/"))
        # Fixed routes before the catch-all content route.
        mount_archive(router)
        mount_mutations(router)
        mount_content(router, templates)
        app.include_router(router)

        # Only reached for paths outside the prefix. Other methods there match
        # the path but not the method, so they get 405 with the error body.
        @app.get("/{rest:path}")
        def _outside_prefix(rest: str) -> RedirectResponse:  # noqa: ARG001
            return RedirectResponse(settings.prefix, status_code=302)

        return app

    def run(self) -> None:
        """Serve until interrupted."""
        try:
            import uvicorn
        except ModuleNotFoundError as e:
            raise RuntimeError(
                "Missing dependency: uvicorn. Install in venv: pip install uvicorn"
            ) from e
        app = self.create_app()
        verbosity = int(get_verbosity())
        log_level, access_log = _uvicorn_log_settings(verbosity)
        run_kwargs: dict[str, Any] = {}
        if verbosity <= VerbosityLevel.QUIET:
            _silence_uvicorn_loggers()
        if self.settings.log_json:
            # Keep uvicorn from installing its own text formatters.
            run_kwargs["log_config"] = None
        get_logger("sharedir.web").info(
            "started http server",
            host=self.settings.host,
            port=self.settings.port,
            prefix=self.settings.prefix,
            root=self.settings.root,
            read_only=self.settings.read_only,
        )
        uvicorn.run(
            app,
            host=self.settings.host,
            port=self.settings.port,
            log_level=log_level,
            access_log=access_log,
            **run_kwargs,
        )
