"""Web Server plugin - FastAPI surface for the feed.

Routes:
    GET /rss.xml                 feed (cached, rebuilt when stale)
    GET /refresh-rss             forced rebuild, JSON result
    GET /covers_cache/{filename} derived square covers
    GET /tracks/...              audio files
    GET /api/status              cache status (JSON)
    GET /api/logs                recent log lines (JSON)
    GET /                        informational page
"""

from __future__ import annotations

from email.utils import format_datetime
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from audiofeed.core import (
    FeedBuildError,
    FeedBuilder,
    FeedCacheController,
    FeedSettings,
    VerbosityLevel,
    get_logger,
    get_verbosity,
)
from plugins.web_server.log_tail import LogTail
from plugins.web_server.rss import render_rss

RSS_CACHE_CONTROL = "public, max-age=300"

_LOCAL_HOSTS = ("localhost", "127.0.0.1")


def _uvicorn_log_settings(verbosity: int) -> tuple[str, bool]:
    """Map verbosity to uvicorn (log_level, access_log)."""
    if verbosity <= VerbosityLevel.QUIET:
        return ("critical", False)
    if verbosity == VerbosityLevel.NORMAL:
        return ("error", False)
    if verbosity == VerbosityLevel.VERBOSE:
        return ("info", True)
    return ("debug", True)


class WebServerPlugin:
    """Serves the feed, the covers cache and the audio files."""

    def __init__(
        self,
        settings: FeedSettings,
        builder: FeedBuilder | None = None,
        controller: FeedCacheController | None = None,
    ) -> None:
        self.settings = settings
        self.logger = get_logger("web_server")
        self.builder = builder or FeedBuilder(settings)
        self.controller = controller or FeedCacheController(
            build=self.builder.build,
            signature=self.builder.signature,
            ttl_seconds=settings.cache_ttl_seconds,
        )
        self.log_tail = LogTail()
        self.log_tail.install()
        self.templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        app = FastAPI(title="AudioFeed", description="Podcast feed for a local audio library")

        app.get("/rss.xml")(self.rss_feed)
        app.get("/refresh-rss")(self.refresh_feed)
        app.get("/covers_cache/{filename}")(self.cover_file)
        app.get("/api/status")(self.get_status)
        app.get("/api/logs")(self.get_logs)
        app.get("/", response_class=HTMLResponse)(self.index)

        app.mount(
            "/tracks",
            StaticFiles(directory=str(self.settings.tracks_dir), check_dir=False),
            name="tracks",
        )
        return app

    def base_url(self, request: Request) -> str:
        """Configured base URL, else derived from the request (proxy aware)."""
        if self.settings.base_url:
            return self.settings.base_url

        scheme = request.url.scheme
        host = request.headers.get("host") or f"{self.settings.host}:{self.settings.port}"
        if any(local in host for local in _LOCAL_HOSTS):
            return f"{scheme}://{host}"

        forwarded_proto = request.headers.get("x-forwarded-proto", "").split(",")[0].strip()
        forwarded_host = request.headers.get("x-forwarded-host", "").split(",")[0].strip()
        return f"{forwarded_proto or scheme}://{forwarded_host or host}"

    # ═══════════════════════════════════════════
    #  FEED
    # ═══════════════════════════════════════════

    async def rss_feed(self, request: Request) -> Response:
        base_url = self.base_url(request)
        self.logger.debug(f"Using baseUrl: {base_url} (from request)")
        try:
            document = await self.controller.get(base_url)
        except FeedBuildError as e:
            self.logger.warning(e.message)
            return Response("No tracks available", status_code=404, media_type="text/plain")
        except Exception as e:
            self.logger.error(f"RSS generation error: {e}")
            return Response("Server Error", status_code=500, media_type="text/plain")

        return Response(
            content=render_rss(document),
            media_type="application/rss+xml; charset=utf-8",
            headers={
                "Cache-Control": RSS_CACHE_CONTROL,
                "Last-Modified": format_datetime(document.built_at, usegmt=True),
            },
        )

    async def refresh_feed(self, request: Request) -> JSONResponse:
        base_url = self.base_url(request)
        try:
            document = await self.controller.refresh(base_url)
        except Exception as e:
            self.logger.error(f"RSS refresh error: {e}")
            error = e.message if isinstance(e, FeedBuildError) else str(e)
            return JSONResponse({"success": False, "error": error}, status_code=500)

        return JSONResponse(
            {
                "success": True,
                "message": "RSS cache updated",
                "baseUrl": base_url,
                "itemsCount": document.item_count,
                "refreshedAt": document.built_at.isoformat(),
            }
        )

    async def cover_file(self, filename: str) -> Response:
        path = self.builder.covers.resolve(filename)
        if path is None:
            return Response("Not Found", status_code=404, media_type="text/plain")
        return FileResponse(path, media_type="image/jpeg")

    # ═══════════════════════════════════════════
    #  STATUS
    # ═══════════════════════════════════════════

    def _status_dict(self) -> dict[str, Any]:
        status = self.controller.status()
        return {
            "warm": status.warm,
            "cacheAgeSeconds": round(status.age_seconds) if status.age_seconds is not None else 0,
            "itemsCount": status.item_count,
            "builtAt": status.built_at.isoformat() if status.built_at else None,
            "rebuilding": status.rebuilding,
            "tracksDir": str(self.settings.tracks_dir),
        }

    async def get_status(self) -> JSONResponse:
        return JSONResponse(self._status_dict())

    async def get_logs(self, since_id: int = 0, limit: int = 200) -> JSONResponse:
        records = self.log_tail.snapshot(since_id=since_id, limit=limit)
        return JSONResponse({"records": [{"id": eid, "line": line} for eid, line in records]})

    async def index(self, request: Request) -> HTMLResponse:
        base_url = self.base_url(request)
        return self.templates.TemplateResponse(
            request,
            "index.html",
            {
                "base_url": base_url,
                "feed_url": f"{base_url}/rss.xml",
                "refresh_url": f"{base_url}/refresh-rss",
                "status": self._status_dict(),
                "cover_size": self.settings.cover_size,
                "recent_log": self.log_tail.tail_text(lines=20),
            },
        )

    # ═══════════════════════════════════════════
    #  SERVER
    # ═══════════════════════════════════════════

    def run(self) -> None:
        """Run uvicorn in a standalone (non-async) context."""
        try:
            import uvicorn
        except ModuleNotFoundError as e:
            raise RuntimeError("Missing dependency: uvicorn. Install with: pip install uvicorn") from e

        log_level, access_log = _uvicorn_log_settings(int(get_verbosity()))
        uvicorn.run(
            self.app,
            host=self.settings.host,
            port=self.settings.port,
            log_level=log_level,
            access_log=access_log,
        )
