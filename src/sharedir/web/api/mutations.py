from __future__ import annotations

import json
from urllib.parse import unquote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from sharedir.core.errors import FileError, RpcError
from sharedir.fs import RpcCall

from ._deps import get_services, require_writable

UPLOAD_PATH_HEADER = "x-upload-path"


def mount_mutations(router: APIRouter) -> None:
    @router.post("/rpc", dependencies=[Depends(require_writable)])
    async def rpc(request: Request) -> PlainTextResponse:
        body = await request.body()
        try:
            payload = json.loads(body)
        except ValueError as e:
            raise RpcError(f"RPC body is not valid JSON: {e}") from e
        call = RpcCall.from_payload(payload)
        await run_in_threadpool(get_services(request).ops.dispatch, call)
        return PlainTextResponse("ok")

    @router.post("/post", dependencies=[Depends(require_writable)])
    async def upload(request: Request) -> PlainTextResponse:
        raw_path = request.headers.get(UPLOAD_PATH_HEADER)
        if raw_path is None:
            raise FileError(f"Missing {UPLOAD_PATH_HEADER} header")
        dest = unquote(raw_path)

        # The multipart parser spools parts to temporary files, so memory
        # stays bounded; the first file part is the upload.
        async with request.form() as form:
            part = next((v for _k, v in form.multi_items() if isinstance(v, UploadFile)), None)
            if part is None:
                raise FileError("Upload request has no file part")
            await run_in_threadpool(get_services(request).ops.upload, dest, part.file)
        return PlainTextResponse("ok")
