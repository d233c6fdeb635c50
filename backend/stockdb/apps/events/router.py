from __future__ import annotations

import asyncio
import json
import queue
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from stockdb.security import CallerContext, get_caller
from .broker import broker, format_sse, keepalive_message

router = APIRouter(prefix="/api", tags=["events"])

KEEPALIVE_SECONDS = 15


async def _event_generator(request: Request, caller: CallerContext) -> AsyncGenerator[str, None]:
    q = broker.subscribe()
    try:
        last_event_id = request.headers.get("last-event-id") or request.query_params.get("lastEventId")
        if last_event_id:
            replay, requires_reset = broker.replay_since(
                last_event_id=last_event_id,
                organization_id=caller.organization_id,
            )
            if requires_reset:
                yield format_sse(
                    json.dumps({"type": "reset", "reason": "last_event_id_out_of_window", "lastEventId": last_event_id}),
                    event="reset",
                )
            else:
                for event in replay:
                    yield format_sse(event.to_json(), event=event.type, event_id=event.id)
        while True:
            if await request.is_disconnected():
                break
            try:
                event = await asyncio.to_thread(q.get, True, KEEPALIVE_SECONDS)
                if event.organization_id and event.organization_id != caller.organization_id:
                    continue
                yield format_sse(event.to_json(), event=event.type, event_id=event.id)
            except queue.Empty:
                yield keepalive_message()
    finally:
        broker.unsubscribe(q)


@router.get("/events/stream")
async def stream_events(
    request: Request,
    caller: CallerContext = Depends(get_caller),
) -> StreamingResponse:
    return StreamingResponse(
        _event_generator(request, caller),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )
