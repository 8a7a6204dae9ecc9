"""
Tula Turismo FastAPI Application

Main entry point: serves the explorer and super-admin APIs and streams map
commands to the browser over Server-Sent Events.

Date: 2026-10-18
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Depends
from fastapi.responses import StreamingResponse

from database import init_db
from server.admin import router as admin_router
from server.broadcast import event_generator, subscribers
from server.routes import router as routes_router
from server.state import AppState, get_state, set_state

# Load environment variables
load_dotenv()

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(name)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield
    set_state(None)


app = FastAPI(title="Tula Turismo", lifespan=lifespan)

# Include all routers
app.include_router(routes_router)
app.include_router(admin_router)

# ============================================================
# SSE Endpoint
# ============================================================


@app.get("/api/stream")
async def stream(state: AppState = Depends(get_state)):
    """Server-Sent Events (SSE) endpoint for map commands.

    The first event is a snapshot of the active view's map so a page that
    connects late can rebuild its markers; marker and camera commands follow.

    Returns:
        StreamingResponse with text/event-stream content type.
    """
    engine = state.view.engine
    if engine is not None and not state.view.disposed:
        snapshot = engine.snapshot()
    else:
        snapshot = {"type": "map_snapshot", "created": False, "camera": {}, "markers": []}
    snapshot["route"] = state.routes.route.value

    queue = asyncio.Queue()
    subscribers.add(queue)

    return StreamingResponse(event_generator(queue, initial=snapshot), media_type="text/event-stream")


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("TULA_HOST", "0.0.0.0"),
        port=int(os.getenv("TULA_PORT", "8000")),
        reload=True,
    )
