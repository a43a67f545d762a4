from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from ._deps import get_services


def mount_content(router: APIRouter, templates: Jinja2Templates) -> None:
    @router.get("/{path:path}")
    def content(request: Request, path: str) -> Response:  # noqa: ARG001
        svc = get_services(request)
        # The raw decoded request path still carries the URL prefix; the
        # resolver strips it.
        request_path = request.scope["path"]
        located = svc.content.locate(request_path)
        if not located.is_dir:
            return FileResponse(located.path, stat_result=located.stat)

        # Listing links are relative, so a directory URL must end with '/'.
        if not request_path.endswith("/"):
            return RedirectResponse(quote(request_path + "/"), status_code=301)

        listing = svc.lister.list(located.path)
        return templates.TemplateResponse(
            request,
            "listing.html",
            {"listing": listing},
            media_type="text/html; charset=utf-8",
        )
