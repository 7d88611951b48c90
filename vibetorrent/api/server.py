"""
HTTP API for the vibetorrent dashboard.

One FastAPI app per process: the rTorrent connection (``DaemonConnection``)
and the loaded config live on ``app.state`` and reach the routes through
dependencies. Torrent routes answer 503 until the setup flow has produced a
working connection.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Cookie, Depends, FastAPI, File, Form, HTTPException, Query, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel
import uvicorn

from vibetorrent import __version__
from vibetorrent.api.http.error_helpers import unknown_error_detail
from vibetorrent.api.http.setup_methods import get_setup_response, post_setup_response
from vibetorrent.api.http.torrent_methods import (
    add_torrent_upload_response,
    add_torrent_url_response,
    counts_response,
    delete_torrent_response,
    list_torrents_response,
    set_label_response,
    set_priority_response,
    stats_response,
    system_info_response,
    torrent_action_response,
    torrent_detail_response,
    torrent_files_response,
    torrent_trackers_response,
)
from vibetorrent.config.access import get_config as get_cached_config, persist_setup
from vibetorrent.config.schema import Config
from vibetorrent.rtorrent.contracts import TorrentClient
from vibetorrent.services.connection.daemon_connection import DaemonConnection
from vibetorrent.services.torrents.torrent_service import SORT_COOKIE, format_sort_cookie, resolve_sort
from vibetorrent.utils.exceptions import (
    VibeTorrentError,
    classify_exception,
    classify_http_status,
    sanitize_error_message,
)


class SetupRequest(BaseModel):
    socket_type: str = "tcp"  # unix | tcp | mock
    unix_socket: str = ""
    tcp_host: str = ""
    tcp_port: str | int = ""
    default_path: str = ""
    temp_path: str = ""


class AddTorrentRequest(BaseModel):
    url: str
    auto_start: bool = True
    download_path: str = ""


class PriorityRequest(BaseModel):
    priority: int


class LabelRequest(BaseModel):
    label: str = ""


def get_connection(request: Request) -> DaemonConnection:
    return request.app.state.connection


def get_client(connection: DaemonConnection = Depends(get_connection)) -> TorrentClient:
    """Active client; NotConfiguredError (503) while the setup flow is pending."""
    return connection.require_client()


api_router = APIRouter(prefix="/api")


@api_router.get("/setup")
async def setup_status(request: Request, connection: DaemonConnection = Depends(get_connection)):
    """Connection state, last error and the configured endpoint."""
    return get_setup_response(connection=connection, config=request.app.state.config)


@api_router.post("/setup")
async def setup_connection(
    body: SetupRequest,
    request: Request,
    connection: DaemonConnection = Depends(get_connection),
):
    """Test the submitted endpoint, save it to the config file and switch to it."""

    def persist(endpoint: str, **paths: str) -> Config:
        saved = persist_setup(endpoint, config_path=request.app.state.config_path, **paths)
        request.app.state.config = saved
        return saved

    return await post_setup_response(connection=connection, form=body.model_dump(), persist_setup=persist)


@api_router.get("/torrents")
async def list_torrents(
    response: Response,
    filter_name: str = Query("all", alias="filter"),
    search: str = "",
    sort: str = "",
    order: str = "",
    torrent_sort: str | None = Cookie(default=None),
    client: TorrentClient = Depends(get_client),
):
    sort_by, sort_order, persist = resolve_sort(sort, order, torrent_sort)
    payload = await list_torrents_response(
        client=client, filter_name=filter_name, search=search, sort_by=sort_by, order=sort_order
    )
    if persist:
        response.set_cookie(SORT_COOKIE, format_sort_cookie(sort_by, sort_order), path="/")
    return payload


@api_router.get("/counts")
async def torrent_counts(client: TorrentClient = Depends(get_client)):
    """Badge counts per state and label."""
    return await counts_response(client=client)


@api_router.get("/stats")
async def torrent_stats(client: TorrentClient = Depends(get_client)):
    return await stats_response(client=client)


@api_router.get("/system")
async def system_info(client: TorrentClient = Depends(get_client)):
    return await system_info_response(client=client)


@api_router.post("/torrents")
async def add_torrent(body: AddTorrentRequest, client: TorrentClient = Depends(get_client)):
    """Add a torrent by URL or magnet link."""
    return await add_torrent_url_response(
        client=client, url=body.url, auto_start=body.auto_start, download_path=body.download_path
    )


@api_router.post("/torrents/upload")
async def upload_torrent(
    file: UploadFile = File(...),
    auto_start: bool = Form(True),
    download_path: str = Form(""),
    client: TorrentClient = Depends(get_client),
):
    """Add a torrent from an uploaded .torrent file."""
    try:
        data = await file.read()
    except OSError as e:
        raise HTTPException(status_code=400, detail=unknown_error_detail(e)) from e
    return await add_torrent_upload_response(
        client=client,
        data=data,
        filename=file.filename or "",
        auto_start=auto_start,
        download_path=download_path,
    )


@api_router.get("/torrents/{torrent_hash}")
async def torrent_detail(torrent_hash: str, client: TorrentClient = Depends(get_client)):
    return await torrent_detail_response(client=client, torrent_hash=torrent_hash)


@api_router.get("/torrents/{torrent_hash}/files")
async def torrent_files(torrent_hash: str, client: TorrentClient = Depends(get_client)):
    return await torrent_files_response(client=client, torrent_hash=torrent_hash)


@api_router.get("/torrents/{torrent_hash}/trackers")
async def torrent_trackers(torrent_hash: str, client: TorrentClient = Depends(get_client)):
    return await torrent_trackers_response(client=client, torrent_hash=torrent_hash)


@api_router.post("/torrents/{torrent_hash}/priority")
async def set_priority(torrent_hash: str, body: PriorityRequest, client: TorrentClient = Depends(get_client)):
    return await set_priority_response(client=client, torrent_hash=torrent_hash, priority=body.priority)


@api_router.post("/torrents/{torrent_hash}/label")
async def set_label(torrent_hash: str, body: LabelRequest, client: TorrentClient = Depends(get_client)):
    return await set_label_response(client=client, torrent_hash=torrent_hash, label=body.label)


@api_router.post("/torrents/{torrent_hash}/{action}")
async def torrent_action(torrent_hash: str, action: str, client: TorrentClient = Depends(get_client)):
    """start / stop / pause / resume / recheck."""
    return await torrent_action_response(client=client, torrent_hash=torrent_hash, action=action)


@api_router.delete("/torrents/{torrent_hash}")
async def delete_torrent(torrent_hash: str, client: TorrentClient = Depends(get_client)):
    return await delete_torrent_response(client=client, torrent_hash=torrent_hash)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Try the configured endpoint once at startup; failures leave setup mode on."""
    connection: DaemonConnection = app.state.connection
    app.state.start_time = time.time()
    if not connection.is_configured:
        await connection.startup()
    config: Config = app.state.config
    logger.info(
        "vibetorrent API started on {}:{} ({})",
        config.server.host,
        config.server.port,
        connection.state.value,
    )
    yield
    logger.info("vibetorrent API server stopped")


async def vibetorrent_exception_handler(request: Request, exc: VibeTorrentError):
    status_code = classify_http_status(exc)
    if status_code >= 500:
        logger.warning("{} {} failed: {}", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def generic_exception_handler(request: Request, exc: Exception):
    code, _category = classify_exception(exc)
    sanitized = sanitize_error_message(str(exc))
    logger.exception(f"Unhandled exception [{code}]: {sanitized}")
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred", "code": code},
    )


def create_app(
    config: Config | None = None,
    *,
    config_path: Path | None = None,
    connection: DaemonConnection | None = None,
) -> FastAPI:
    """Build the API app around a config and (optionally) a prepared connection."""
    cfg = config or get_cached_config(config_path=config_path)
    app = FastAPI(
        title="vibetorrent API",
        description="Web dashboard API for rTorrent",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = cfg
    app.state.config_path = config_path
    app.state.connection = connection or DaemonConnection(cfg.rtorrent)

    app.add_exception_handler(VibeTorrentError, vibetorrent_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint."""
        return {
            "service": "vibetorrent-api",
            "version": __version__,
            "status": "running",
            "rtorrent": app.state.connection.state.value,
        }

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Health check endpoint."""
        return {"ok": True, "service": "vibetorrent-api"}

    app.include_router(api_router)
    return app


def run_server(host: str = "0.0.0.0", port: int = 8080, *, config: Config | None = None, config_path: Path | None = None):
    """Run the API server."""
    uvicorn.run(
        create_app(config, config_path=config_path),
        host=host,
        port=port,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=10,
        log_level="warning",
    )
