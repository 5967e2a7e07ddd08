"""
File manager connector endpoint.

Translates HTTP requests (query string, urlencoded or multipart form) into
connector parameters and returns the connector's JSON response.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.requests import Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from vestry.ConnectorGate.models import UploadedFile
from vestry.shared.gate import GateLogger

_log = GateLogger.get("Altar")

# Fields that always carry a list, with or without the [] suffix
LIST_FIELDS = {"targets", "upload"}


def _collect_params(items) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    for key, value in items:
        name = key[:-2] if key.endswith("[]") else key
        if name in LIST_FIELDS or key.endswith("[]"):
            params.setdefault(name, []).append(value)
        else:
            params[name] = value
    return params


def _park_upload(upload: UploadFile) -> UploadedFile:
    """Copy an uploaded file to a temporary file on disk."""
    with tempfile.NamedTemporaryFile(delete=False, prefix="vestry-upload-") as tmp:
        shutil.copyfileobj(upload.file, tmp)
    return UploadedFile(path=tmp.name, filename=upload.filename or "")


def _discard(parked: List[UploadedFile]) -> None:
    # Uploads the connector moved into place are already gone
    for item in parked:
        if os.path.exists(item.path):
            os.remove(item.path)


def create_router(ConnectorGate) -> APIRouter:
    router = APIRouter()

    def _execute(params: Dict[str, Any]) -> JSONResponse:
        if not ConnectorGate.is_initialized():
            raise HTTPException(status_code=503, detail="ConnectorGate is not initialized")

        parked = [
            _park_upload(value)
            for value in params.get("upload", [])
            if isinstance(value, UploadFile)
        ]
        if parked:
            params["upload"] = parked

        try:
            headers, payload = ConnectorGate.run(params)
        finally:
            _discard(parked)

        return JSONResponse(content=payload, headers=headers)

    @router.get("/connector")
    async def connector_get(request: Request):
        """Run a connector command from query parameters."""
        params = _collect_params(request.query_params.multi_items())
        return await run_in_threadpool(_execute, params)

    @router.post("/connector")
    async def connector_post(request: Request):
        """Run a connector command from form fields and uploaded files."""
        form = await request.form()
        items = list(request.query_params.multi_items()) + list(form.multi_items())
        params = _collect_params(items)
        _log.debug(f"POST /connector cmd={params.get('cmd')}")
        try:
            return await run_in_threadpool(_execute, params)
        finally:
            await form.close()

    return router


__all__ = ["create_router"]
