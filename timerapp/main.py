"""Main FastAPI application."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, Response

from .api.models import (
    CategoryActionResponse,
    CategoryCreate,
    HalfwayAlertUpdate,
    ImportResponse,
    TimerCreate,
    TimerLogResponse,
    TimerResponse,
    TimerUpdate,
)
from .config import Settings, settings
from .events.hub import EventHub
from .storage.gateway import create_storage
from .timers.notifications import NotificationBridge
from .timers.store import TimerStore
from .timers.timer import Timer
from .timers.transfer import (
    TransferError,
    export_timers_to_file,
    import_timers_from_text,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """Build the application around a store created at startup."""
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        storage = create_storage(config.storage_backend, config.storage_path)
        store = TimerStore(storage, config=config)
        hub = EventHub()
        bridge = NotificationBridge(
            store,
            on_complete=hub.timer_completed,
            on_halfway=hub.timer_halfway,
        )

        await store.load_stored_data()
        bridge.attach()

        app.state.config = config
        app.state.store = store
        app.state.hub = hub
        app.state.bridge = bridge
        logger.info("Timer service ready")

        try:
            yield
        finally:
            bridge.detach()
            await store.close()

    app = FastAPI(
        title="Category Timers",
        description="Named, categorized countdown timers with completion history",
        version=VERSION,
        lifespan=lifespan,
    )
    _register_routes(app)
    return app


def _store(request: Request) -> TimerStore:
    return request.app.state.store


def _find_timer(request: Request, timer_id: str) -> Timer:
    timer = _store(request).get_timer(timer_id)
    if timer is None:
        raise HTTPException(status_code=404, detail=f"Timer not found: {timer_id}")
    return timer


def _register_routes(app: FastAPI):
    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "Category Timers",
            "version": VERSION,
            "endpoints": {
                "timers": "/api/timers",
                "categories": "/api/categories",
                "logs": "/api/logs",
                "export": "/api/export",
                "import": "/api/import",
                "events": "/ws/events",
                "status": "/status",
            },
        }

    @app.get("/status")
    async def status(request: Request):
        """Server status endpoint."""
        store = _store(request)
        return {
            "status": "running",
            "version": VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "loaded": store.is_loaded,
            "timers": len(store.timers),
            "running": sum(1 for t in store.timers if t.has_countdown),
            "event_subscribers": request.app.state.hub.subscriber_count,
        }

    # Timers

    @app.get("/api/timers")
    async def list_timers(request: Request) -> dict[str, list[TimerResponse]]:
        """Timers grouped by category, in creation order."""
        return {
            category: [TimerResponse.from_timer(t) for t in timers]
            for category, timers in _store(request).timers_by_category.items()
        }

    @app.post("/api/timers", response_model=TimerResponse, status_code=201)
    async def create_timer(request: Request, body: TimerCreate):
        timer = _store(request).add_timer(
            body.name, body.duration, body.category, body.is_halfway_alert_enabled
        )
        return TimerResponse.from_timer(timer)

    @app.get("/api/timers/{timer_id}", response_model=TimerResponse)
    async def get_timer(request: Request, timer_id: str):
        return TimerResponse.from_timer(_find_timer(request, timer_id))

    @app.patch("/api/timers/{timer_id}", response_model=TimerResponse)
    async def update_timer(request: Request, timer_id: str, body: TimerUpdate):
        timer = _find_timer(request, timer_id)
        _store(request).update_timer(
            timer, name=body.name, duration=body.duration, category=body.category
        )
        return TimerResponse.from_timer(timer)

    @app.delete("/api/timers/{timer_id}", status_code=204)
    async def delete_timer(request: Request, timer_id: str):
        _store(request).remove_timer(_find_timer(request, timer_id))
        return Response(status_code=204)

    @app.post("/api/timers/{timer_id}/start", response_model=TimerResponse)
    async def start_timer(request: Request, timer_id: str):
        timer = _find_timer(request, timer_id)
        timer.start()
        return TimerResponse.from_timer(timer)

    @app.post("/api/timers/{timer_id}/pause", response_model=TimerResponse)
    async def pause_timer(request: Request, timer_id: str):
        timer = _find_timer(request, timer_id)
        timer.pause()
        return TimerResponse.from_timer(timer)

    @app.post("/api/timers/{timer_id}/reset", response_model=TimerResponse)
    async def reset_timer(request: Request, timer_id: str):
        timer = _find_timer(request, timer_id)
        timer.reset()
        _store(request).save_timers()
        return TimerResponse.from_timer(timer)

    @app.post("/api/timers/{timer_id}/acknowledge", response_model=TimerResponse)
    async def acknowledge_timer(request: Request, timer_id: str):
        timer = _find_timer(request, timer_id)
        _store(request).acknowledge_completion(timer)
        return TimerResponse.from_timer(timer)

    @app.put("/api/timers/{timer_id}/halfway-alert", response_model=TimerResponse)
    async def set_halfway_alert(request: Request, timer_id: str, body: HalfwayAlertUpdate):
        timer = _find_timer(request, timer_id)
        _store(request).toggle_halfway_alert(timer, body.enabled)
        return TimerResponse.from_timer(timer)

    # Categories

    @app.get("/api/categories")
    async def list_categories(request: Request) -> list[str]:
        return _store(request).categories

    @app.post("/api/categories", status_code=201)
    async def create_category(request: Request, body: CategoryCreate):
        store = _store(request)
        added = store.add_new_category(body.name)
        return {"added": added, "categories": store.categories}

    @app.post(
        "/api/categories/{category}/{action}", response_model=CategoryActionResponse
    )
    async def category_action(request: Request, category: str, action: str):
        """Start, pause or reset every timer in a category."""
        store = _store(request)
        handlers = {
            "start": store.start_category_timers,
            "pause": store.pause_category_timers,
            "reset": store.reset_category_timers,
        }
        if action not in handlers:
            raise HTTPException(status_code=404, detail=f"Unknown action: {action}")

        affected = handlers[action](category)
        return CategoryActionResponse(category=category, action=action, affected=affected)

    # History

    @app.get("/api/logs", response_model=list[TimerLogResponse])
    async def list_logs(request: Request):
        """Completed runs, newest first."""
        return [TimerLogResponse.from_log(log) for log in _store(request).sorted_timer_logs]

    # Import / export

    @app.get("/api/export")
    async def export_timers(request: Request):
        store = _store(request)
        if not store.timers:
            raise HTTPException(status_code=404, detail="There are no timers to export")

        path = export_timers_to_file(store, request.app.state.config.export_dir)
        return FileResponse(path, media_type="application/json", filename=path.name)

    @app.post("/api/import", response_model=ImportResponse)
    async def import_timers(request: Request):
        """Import timers from the body of an export file."""
        body = await request.body()
        try:
            count = import_timers_from_text(_store(request), body.decode("utf-8"))
        except (TransferError, UnicodeDecodeError) as e:
            raise HTTPException(status_code=400, detail=str(e))

        if count:
            message = f"{count} new timer(s) imported and saved."
        else:
            message = "No new timers to import or all timers already exist (by ID)."
        return ImportResponse(imported=count, message=message)

    # Notifications

    @app.websocket("/ws/events")
    async def events(websocket: WebSocket):
        """Push completion and halfway events to the client."""
        await websocket.accept()
        await stream_events(websocket, websocket.app.state.hub)


async def stream_events(websocket: WebSocket, hub: EventHub):
    """
    Forward hub events to an accepted websocket until the client goes away.

    The socket is read alongside the sends so that a client close drops the
    subscription immediately.
    """
    queue = hub.connect()

    async def forward():
        while True:
            await websocket.send_json(await queue.get())

    async def wait_for_disconnect():
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return

    tasks = {asyncio.create_task(forward()), asyncio.create_task(wait_for_disconnect())}
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                logger.warning(f"Event stream closed with error: {error}")
    finally:
        for task in tasks:
            task.cancel()
        hub.disconnect(queue)


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
