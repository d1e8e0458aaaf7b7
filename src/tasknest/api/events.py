"""Server-sent change feed for live clients."""

import asyncio
import json
from collections.abc import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.api.auth import CurrentIdentity
from tasknest.database import get_async_session_maker
from tasknest.events import ChangeEvent, get_broker
from tasknest.identity import CallerContext
from tasknest.services.user_service import UserService

router = APIRouter(tags=["events"])

KEEPALIVE_SECONDS = 15.0


def format_event(event: ChangeEvent) -> str:
    """Encode an event as one SSE frame."""
    return f"event: {event.resource}\ndata: {json.dumps(event.to_dict())}\n\n"


async def commit_and_publish(
    db: AsyncSession,
    caller: CallerContext,
    resource: str,
    action: str,
    ids: list[str] | None = None,
) -> None:
    """Commit the request's work, then tell the caller's live clients about it.

    Committing first means a client that refetches on the event sees the
    new state.
    """
    await db.commit()
    get_broker().publish(caller.user_id, ChangeEvent(resource, action, ids or []))


async def stream_events(
    request: Request,
    queue: asyncio.Queue[ChangeEvent],
    keepalive: float = KEEPALIVE_SECONDS,
) -> AsyncIterator[str]:
    """Yield SSE frames from a subscription queue until the client leaves."""
    yield ": connected\n\n"
    while not await request.is_disconnected():
        try:
            event = await asyncio.wait_for(queue.get(), timeout=keepalive)
        except asyncio.TimeoutError:
            yield ": keepalive\n\n"
            continue
        yield format_event(event)


@router.get("/events")
async def change_feed(request: Request, identity: CurrentIdentity):
    """Stream change notifications for the caller's todos and categories.

    Each frame is named after the changed collection and carries
    ``{"resource", "action", "ids"}``; clients refetch on receipt.
    """
    # Short-lived session so the stream does not pin a connection
    async with get_async_session_maker()() as session:
        caller = await UserService(session).resolve_context(identity)
        await session.commit()

    async def generator():
        async with get_broker().subscribe(caller.user_id) as queue:
            async for frame in stream_events(request, queue):
                yield frame

    return StreamingResponse(
        generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
