import asyncio
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from typing import Any, Dict

from verao_fitness.core.auth import SessionRegistry
from verao_fitness.core.context import AppContext, get_context
from verao_fitness.services.live_views import keys_for_table, watched_tables
from verao_fitness.services.logger import logger

router = APIRouter()


@router.websocket("/live")
async def live_updates(
    websocket: WebSocket,
    token: str = Query(...),
    context: AppContext = Depends(get_context),
):
    """
    Stream change events to a client for as long as it stays connected.

    Each message names the changed table, the event type and the query keys
    the client should refetch. The connection holds one listener per watched
    table and releases them when it closes.
    """
    user = SessionRegistry(context.redis).get(token) or context.gateway.get_current_user(
        token
    )
    if not user:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    if not context.realtime.available:
        await websocket.close(
            code=status.WS_1013_TRY_AGAIN_LATER, reason="Live updates unavailable"
        )
        return

    await websocket.accept()

    changes: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()
    subscriptions = []

    async def forward() -> None:
        while True:
            change = await changes.get()
            await websocket.send_json(
                {**change, "invalidate": keys_for_table(change["table"])}
            )

    forwarder = None
    try:
        for table in watched_tables():
            subscriptions.append(
                await context.realtime.acquire(table, changes.put_nowait)
            )
        forwarder = asyncio.create_task(forward())
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug(f"Live client {user['id']} disconnected")
    finally:
        if forwarder is not None:
            forwarder.cancel()
        for subscription in subscriptions:
            await context.realtime.release(subscription)
