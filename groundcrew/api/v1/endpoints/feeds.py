"""
Live feed endpoints.
Stream full-scope snapshots over WebSockets until the client disconnects.
"""
import asyncio
import logging
from typing import Optional
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from groundcrew.api.deps import get_channel, get_store, get_turnaround_service
from groundcrew.api.v1.endpoints.auth import resolve_user
from groundcrew.exceptions import ConnectivityError, GroundCrewException
from groundcrew.services.realtime.scopes import TaskListScope, VisibleTurnaroundsScope
from groundcrew.services.realtime.subscription_channel import Snapshot, Subscription

logger = logging.getLogger(__name__)

router = APIRouter()


def snapshot_message(snapshot: Snapshot) -> dict:
    return {
        "type": "snapshot",
        "scope": snapshot.scope.label,
        "sequence": snapshot.sequence,
        "documents": [
            document.model_dump(mode="json", by_alias=True) for document in snapshot.documents
        ],
    }


def error_message(exc: GroundCrewException) -> dict:
    return {"type": "error", "error": exc.code, "detail": exc.user_message}


async def _forward(websocket: WebSocket, subscription: Subscription) -> None:
    while not subscription.closed:
        try:
            async for snapshot in subscription:
                await websocket.send_json(snapshot_message(snapshot))
        except ConnectivityError as e:
            await websocket.send_json(error_message(e))
        except GroundCrewException as e:
            # The subscription has ended after any error other than connectivity
            await websocket.send_json(error_message(e))
            return


async def _until_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def stream(websocket: WebSocket, subscription: Subscription) -> None:
    """Forward snapshots until the client leaves or the scope ends"""
    forward = asyncio.create_task(_forward(websocket, subscription))
    listen = asyncio.create_task(_until_disconnect(websocket))
    try:
        done, pending = await asyncio.wait({forward, listen}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                raise exc
        if forward in done:
            await websocket.close()
    finally:
        await subscription.close()


async def _accept_actor(websocket: WebSocket, token: Optional[str]):
    user = await resolve_user(get_store(websocket), token)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    await websocket.accept()
    return user.as_crew_member()


@router.websocket("/turnarounds")
async def turnarounds_feed(websocket: WebSocket, token: Optional[str] = Query(None)):
    """Dashboard feed: the turnarounds visible to the signed-in crew member"""
    actor = await _accept_actor(websocket, token)
    if actor is None:
        return

    subscription = get_channel(websocket).subscribe(VisibleTurnaroundsScope(actor))
    logger.info("Dashboard feed opened", extra={"actor_uid": actor.uid})
    await stream(websocket, subscription)


@router.websocket("/turnarounds/{turnaround_id}/tasks")
async def tasks_feed(websocket: WebSocket, turnaround_id: str, token: Optional[str] = Query(None)):
    """Checklist feed for one turnaround"""
    actor = await _accept_actor(websocket, token)
    if actor is None:
        return

    try:
        await get_turnaround_service(websocket).get_turnaround(actor, turnaround_id)
    except GroundCrewException as e:
        await websocket.send_json(error_message(e))
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    subscription = get_channel(websocket).subscribe(TaskListScope(turnaround_id))
    logger.info(
        "Checklist feed opened",
        extra={"actor_uid": actor.uid, "turnaround_id": turnaround_id}
    )
    await stream(websocket, subscription)
