from fastapi import APIRouter
from fastapi.responses import StreamingResponse
import asyncio, json, logging
from typing import Dict, Any, Set, Tuple

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/events", tags=["events"])

_subscribers: Set[Tuple[asyncio.AbstractEventLoop, asyncio.Queue]] = set()

async def _event_stream():
    queue: asyncio.Queue = asyncio.Queue()
    entry = (asyncio.get_running_loop(), queue)
    _subscribers.add(entry)
    try:
        while True:
            data = await queue.get()
            yield f"data: {json.dumps(data, default=str)}\n\n"
    finally:
        _subscribers.discard(entry)

@router.get("/sse")
async def sse():
    headers = {
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",
    }
    return StreamingResponse(_event_stream(), media_type="text/event-stream", headers=headers)

def publish_event(event: Dict[str, Any]):
    """Fan an event out to every SSE client; safe to call from any thread"""
    for loop, q in list(_subscribers):
        try:
            loop.call_soon_threadsafe(q.put_nowait, event)
        except RuntimeError:
            # the client's loop is already closed
            _subscribers.discard((loop, q))

def subscriber_count() -> int:
    return len(_subscribers)
