"""
Server-sent events (SSE) broadcasting module.

This module manages the SSE subscribers (the browser pages that own the real
map surface) and fans map commands and view updates out to all of them.

Date: 2026-10-18
"""

import asyncio
import json
from datetime import datetime
from typing import Any, Dict, Optional, Set

# Global set of SSE subscribers (asyncio.Queue instances)
subscribers: Set[asyncio.Queue] = set()


async def event_generator(queue: asyncio.Queue, initial: Optional[Dict[str, Any]] = None):
    """Generate SSE events from the queue.

    Args:
        queue: Async queue to read events from.
        initial: Optional event sent before anything queued.

    Yields:
        SSE formatted event strings.
    """
    try:
        if initial is not None:
            yield f"data: {json.dumps(initial)}\n\n"
        while True:
            data = await queue.get()
            yield f"data: {json.dumps(data)}\n\n"
    except asyncio.CancelledError:
        pass
    finally:
        subscribers.discard(queue)


def publish(event: Dict[str, Any]) -> int:
    """Queue an event for every subscriber.

    Safe to call from synchronous code running on the event loop; queues are
    unbounded so ``put_nowait`` never blocks.

    Args:
        event: JSON-serialisable event payload; a ``time`` field is added.

    Returns:
        Number of subscribers the event was queued for.
    """
    payload = dict(event)
    payload.setdefault("time", datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
    for queue in list(subscribers):
        queue.put_nowait(payload)
    return len(subscribers)


async def notify_view_updated(route: str, state: Dict[str, Any]):
    """Broadcast a view state change to all SSE subscribers.

    Args:
        route: Active route name.
        state: Serialised view state.
    """
    publish({"type": "view_update", "route": route, "state": state})
