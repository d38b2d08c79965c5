"""Development server for Folio.

Builds the site for local preview, serves it over HTTP, watches the sources,
and rebuilds on change:
- Rebuild requests are coalesced: while a rebuild runs, any number of new
  change events schedule exactly one follow-up rebuild.
- A failed rebuild is logged and the previous output keeps being served.
- Connected browsers are told to reload over a websocket after each
  successful rebuild.

Key classes:
- DevServer: Runs the HTTP server, websocket server, and file watcher.
- RebuildScheduler: Serializes and coalesces rebuilds on a worker thread.
- _ReloadHandler: HTTP handler that injects the reload script.
- _ChangeHandler: watchdog handler that requests rebuilds.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import threading
import time
from collections.abc import Callable
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import SiteBuilder, backup_dir_for, staging_dir_for
from .config import LOCAL_HOST, load_site_config

logger = logging.getLogger(__name__)

WATCHED_SUFFIXES = {
    ".md", ".css", ".js", ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico",
    ".webp", ".toml", ".yaml", ".yml", ".jinja",
}


class RebuildScheduler:
    """Runs rebuilds one at a time, coalescing overlapping requests.

    Attributes:
        debounce_seconds: Delay before a rebuild so a burst of events settles.
    """

    def __init__(self, rebuild: Callable[[], None], debounce_seconds: float = 0.1):
        self._rebuild = rebuild
        self.debounce_seconds = debounce_seconds
        self._cond = threading.Condition()
        self._pending = False
        self._stopped = False
        self._thread: threading.Thread | None = None

    @property
    def pending(self) -> bool:
        with self._cond:
            return self._pending

    def request(self) -> None:
        """Ask for a rebuild; repeated requests before it starts collapse into one."""
        with self._cond:
            self._pending = True
            self._cond.notify()

    def run_pending(self) -> bool:
        """Run one rebuild if one was requested.

        Returns:
            True if a rebuild ran.
        """
        with self._cond:
            if not self._pending:
                return False
            self._pending = False
        try:
            self._rebuild()
        except Exception:
            logger.exception("Rebuild failed; waiting for the next change")
        return True

    def start(self) -> None:
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        with self._cond:
            self._stopped = True
            self._cond.notify()
        if self._thread is not None:
            self._thread.join()

    def _loop(self) -> None:
        while True:
            with self._cond:
                while not self._pending and not self._stopped:
                    self._cond.wait()
                if self._stopped:
                    return
            if self.debounce_seconds:
                time.sleep(self.debounce_seconds)
            self.run_pending()


class _ReloadHandler(SimpleHTTPRequestHandler):
    """Serves the built site and injects the live reload script into HTML."""

    reload_script_template = """
    <script>
    (() => {{
      const ws = new WebSocket('ws://' + location.hostname + ':{ws_port}');
      ws.onmessage = (event) => {{
        const data = JSON.parse(event.data || '{{}}');
        if (data.type === 'reload') location.reload();
      }};
    }})();
    </script>
    """
    reload_script = reload_script_template.format(ws_port=4568)

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        return self._serve_html(Path(self.directory) / "404.html", 404)

    def _inject(self, content: str) -> str:
        if "</body>" in content:
            return content.replace("</body>", f"{self.reload_script}</body>")
        return content + self.reload_script

    def _serve_html(self, path: Path, status: int):
        if not path.exists():
            self.send_error(404, "File not found")
            return None
        encoded = self._inject(path.read_text(encoding="utf-8")).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)
        return None

    def send_head(self):
        path = Path(self.translate_path(self.path))
        if path.is_dir():
            path = path / "index.html"
        if not path.exists():
            return self._serve_html(Path(self.directory) / "404.html", 404)
        if path.suffix == ".html":
            return self._serve_html(path, 200)
        return super().send_head()


class _ChangeHandler(FileSystemEventHandler):
    """Requests a rebuild for relevant source changes."""

    def __init__(self, server: DevServer):
        super().__init__()
        self.server = server

    def on_any_event(self, event):
        if event.is_directory:
            return
        path = Path(event.src_path)
        output_dir = self.server.output_dir
        for ignored in (output_dir, self.server.staging_dir, backup_dir_for(output_dir)):
            if path.is_relative_to(ignored):
                return
        if path.suffix.lower() not in WATCHED_SUFFIXES:
            return
        logger.info("Change detected: %s", path)
        self.server.scheduler.request()


class DevServer:
    """Local preview server with watch-and-rebuild and live reload.

    Attributes:
        project_root: Root directory of the project.
        http_port: Port for the HTTP server.
        ws_port: Port for the live reload websocket server.
        output_dir: Directory being served.
        staging_dir: Directory builds are written to before activation.
        scheduler: Coalescing rebuild scheduler.
    """

    def __init__(self, project_root: Path, http_port: int | None = None, ws_port: int | None = None):
        self.project_root = project_root
        config = load_site_config(project_root, local=True, port=http_port)
        self.http_port = config.port
        self.ws_port = ws_port if ws_port is not None else self.http_port + 1
        self.output_dir = config.output_dir
        self.staging_dir = staging_dir_for(config.output_dir)
        self.content_dir = config.content_dir
        self._reload_script = _ReloadHandler.reload_script_template.format(ws_port=self.ws_port)
        self.scheduler = RebuildScheduler(self.rebuild)
        self._observer: Observer | None = None
        self._ws_clients: set = set()
        self._loop = asyncio.new_event_loop()

    def build(self):
        """Build the site for local preview with freshly loaded configuration."""
        config = load_site_config(self.project_root, local=True, port=self.http_port)
        result = SiteBuilder(config).build()
        for failure in result.failures:
            logger.error("  %s: %s", failure.source_path, failure.describe())
        return result

    def rebuild(self) -> None:
        """Rebuild the site and tell connected browsers to reload."""
        logger.info("Rebuilding site...")
        self.build()
        self._broadcast_reload()
        logger.info("Rebuild complete.")

    def start(self) -> None:  # pragma: no cover - integration path
        self.build()
        threading.Thread(target=self._start_http, daemon=True).start()
        threading.Thread(target=self._start_ws, daemon=True).start()
        self.scheduler.start()
        self._start_watcher()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
        self.scheduler.stop()
        self._loop.call_soon_threadsafe(self._loop.stop)

    def _start_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type(
            "_ReloadHandlerWithPort",
            (_ReloadHandler,),
            {"reload_script": self._reload_script},
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer((LOCAL_HOST, self.http_port), handler)
        logger.info("Serving %s at http://%s:%d/", self.output_dir, LOCAL_HOST, self.http_port)
        httpd.serve_forever()

    def _start_ws(self) -> None:  # pragma: no cover - integration path
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._run_ws_server())
        except OSError as exc:
            logger.warning("Live reload server failed to start (port %d): %s", self.ws_port, exc)

    async def _run_ws_server(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self._ws_handler, LOCAL_HOST, self.ws_port):
            await asyncio.Future()

    async def _ws_handler(self, websocket):
        self._ws_clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._ws_clients.discard(websocket)

    def _broadcast_reload(self) -> None:
        if not self._loop.is_running():
            return
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._async_broadcast(message), self._loop)

    async def _async_broadcast(self, message: str) -> None:
        stale = set()
        for ws in self._ws_clients:
            try:
                await ws.send(message)
            except websockets.ConnectionClosed:
                stale.add(ws)
        for ws in stale:
            self._ws_clients.discard(ws)

    def _start_watcher(self) -> None:
        handler = _ChangeHandler(self)
        observer = Observer()
        watched = [self.content_dir, *(self.project_root / name for name in ("css", "js", "images", "layouts"))]
        for folder in watched:
            if folder.exists():
                observer.schedule(handler, str(folder), recursive=True)
        # Config and defaults files live in the project root.
        observer.schedule(handler, str(self.project_root), recursive=False)
        observer.start()
        self._observer = observer
