from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Query, Request
from fastapi.responses import StreamingResponse

from ._deps import get_services


def attachment_disposition(filename: str) -> str:
    """Content-Disposition value for a download named ``filename``.

    Header values must be latin-1; non-ASCII names get an ASCII fallback plus
    the RFC 5987 ``filename*`` form.
    """
    safe = filename.replace("\\", "_").replace('"', "_")
    try:
        safe.encode("ascii")
    except UnicodeEncodeError:
        fallback = safe.encode("ascii", "replace").decode("ascii").replace("?", "_")
        return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"
    return f'attachment; filename="{safe}"'


def mount_archive(router: APIRouter) -> None:
    @router.get("/zip")
    def zip_download(
        request: Request,
        zip_path: str = Query("", alias="zipPath"),
        zip_name: str = Query("", alias="zipName"),
    ) -> StreamingResponse:
        svc = get_services(request)
        top = svc.resolver.resolve(zip_path)
        # Missing targets must fail here, before the response starts.
        svc.archiver.check(top)
        return StreamingResponse(
            svc.archiver.stream(top),
            media_type="application/zip",
            headers={"Content-Disposition": attachment_disposition(zip_name + ".zip")},
        )
