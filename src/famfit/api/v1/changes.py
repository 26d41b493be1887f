"""Server-sent events stream of ledger and redemption changes."""

from __future__ import annotations

import asyncio
import json
from typing import AsyncIterator, Awaitable, Callable
from uuid import UUID

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from ...services.change_feed import ChangeEvent, feed

router = APIRouter(tags=["changes"])

KEEPALIVE_SECONDS = 15


async def change_stream(
    family_id: UUID,
    is_disconnected: Callable[[], Awaitable[bool]],
    keepalive: float = KEEPALIVE_SECONDS,
) -> AsyncIterator[str]:
    """Yield SSE frames for the family until the client goes away."""

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
    unsubscribe = feed.subscribe(family_id, lambda change: loop.call_soon_threadsafe(queue.put_nowait, change))
    try:
        while not await is_disconnected():
            try:
                change = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield f"event: change\ndata: {json.dumps(change.as_payload())}\n\n"
    finally:
        unsubscribe()


@router.get("/families/{family_id}/changes", summary="Stream family point changes")
async def stream_changes(family_id: UUID, request: Request) -> StreamingResponse:
    """Push an event whenever the family's ledger or redemption history changes."""

    return StreamingResponse(change_stream(family_id, request.is_disconnected), media_type="text/event-stream")
