"""Routes for requesting downloads and serving cached assets."""

from __future__ import annotations

import asyncio
import mimetypes
import threading
from collections.abc import Iterator
from typing import BinaryIO

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.concurrency import run_in_threadpool

from clipcache import __version__
from clipcache.api.schemas import DownloadRequest, ErrorResponse, ServiceInfo
from clipcache.core.formatting import format_duration
from clipcache.core.models import RetrievalRequest
from clipcache.core.services import RetrievalOrchestrator
from clipcache.core.url_utils import split_file_name


router = APIRouter()

# Seconds between client-disconnect checks while a download is running
DISCONNECT_POLL_INTERVAL = 0.5

_CHUNK_SIZE = 64 * 1024


def get_orchestrator(request: Request) -> RetrievalOrchestrator:
    return request.app.state.orchestrator


def _base_url(request: Request) -> str:
    public_base_url = request.app.state.settings.public_base_url
    return public_base_url or str(request.base_url)


async def _watch_disconnect(request: Request, cancelled: threading.Event) -> None:
    while not cancelled.is_set():
        if await request.is_disconnected():
            cancelled.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_INTERVAL)


@router.get("/", response_model=ServiceInfo)
def service_info(
    orchestrator: RetrievalOrchestrator = Depends(get_orchestrator),
) -> ServiceInfo:
    return ServiceInfo(
        name="clipcache",
        version=__version__,
        expires_in=format_duration(orchestrator.ttl),
    )


@router.post(
    "/download",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def download(
    body: DownloadRequest,
    request: Request,
    orchestrator: RetrievalOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """Resolve a media link and return a short-lived URL for it."""
    cancelled = threading.Event()
    retrieval = RetrievalRequest(
        raw_input=body.url,
        base_url=_base_url(request),
        cancelled=cancelled,
    )

    watcher = asyncio.create_task(_watch_disconnect(request, cancelled))
    try:
        result = await run_in_threadpool(orchestrator.retrieve, retrieval)
    finally:
        watcher.cancel()

    return JSONResponse(content=result.to_dict())


@router.get(
    "/uploads/{file_name}",
    response_model=None,
    responses={404: {"model": ErrorResponse}},
)
def serve_asset(
    file_name: str,
    orchestrator: RetrievalOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse | JSONResponse:
    """Stream a cached asset, or 404 once it has been reclaimed."""
    parsed = split_file_name(file_name)
    opened = orchestrator.store.open_asset(*parsed) if parsed else None
    if opened is None:
        return JSONResponse(status_code=404, content={"error": "Not Found"})

    asset, handle = opened
    media_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"
    return StreamingResponse(
        _iter_file(handle),
        media_type=media_type,
        headers={"Content-Length": str(asset.size)},
    )


def _iter_file(handle: BinaryIO) -> Iterator[bytes]:
    with handle:
        yield from iter(lambda: handle.read(_CHUNK_SIZE), b"")
