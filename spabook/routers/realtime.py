# spabook/routers/realtime.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from spabook.core.exceptions import AuthError, ForbiddenError, RealtimeError
from spabook.db.sql import AsyncSessionLocal
from spabook.dependencies import user_from_token
from spabook.modules.realtime.hub import TOPIC_NOTIFICATIONS, RealtimeEvent, RealtimeHub, get_hub
from spabook.modules.users.models import User

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


def event_visible_to(event: RealtimeEvent, user: User) -> bool:
    """Status notifications go to the affected patient and to admins only."""
    if event.topic != TOPIC_NOTIFICATIONS or user.is_admin:
        return True
    return str(event.payload.get("patientId")) == str(user.id)


def parse_topics(raw: Optional[str]) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(t.strip() for t in raw.split(",") if t.strip())


async def _wait_disconnect(websocket: WebSocket) -> None:
    # client messages are ignored; this only returns when the socket closes
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


@router.websocket("/realtime")
async def realtime_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    topics: Optional[str] = Query(None),
    hub: RealtimeHub = Depends(get_hub),
):
    """
    Stream {topic, event, payload} JSON messages for the requested topics
    (all topics when none are given). Authenticate with ?token=<access token>.
    """
    try:
        async with AsyncSessionLocal() as session:
            user = await user_from_token(session, token)
        sub = hub.subscribe(*parse_topics(topics))
    except (AuthError, ForbiddenError) as exc:
        logger.info("Realtime connection refused: %s", exc.code)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.code)
        return
    except RealtimeError as exc:
        await websocket.close(code=status.WS_1003_UNSUPPORTED_DATA, reason=exc.code)
        return

    await websocket.accept()
    logger.info("Realtime subscriber %s on %s", user.id, sorted(sub.topics))

    async with sub:
        closed = asyncio.create_task(_wait_disconnect(websocket))
        try:
            while True:
                getter = asyncio.create_task(sub.get())
                done, _ = await asyncio.wait({getter, closed}, return_when=asyncio.FIRST_COMPLETED)
                if closed in done:
                    getter.cancel()
                    break
                try:
                    event = getter.result()
                except RealtimeError:
                    # hub shut down
                    await websocket.close()
                    break
                if event_visible_to(event, user):
                    await websocket.send_json(event.as_message())
        finally:
            closed.cancel()
    logger.info("Realtime subscriber %s disconnected", user.id)
