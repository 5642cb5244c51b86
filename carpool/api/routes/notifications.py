"""
Notification inbox endpoints
============================

GET  /api/v1/notifications                    -- caller's inbox, newest first
POST /api/v1/notifications/{id}/read          -- mark one as read
GET  /api/v1/notifications/stream             -- live feed (server-sent events)
"""

import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from carpool.api.dependencies import get_current_user_id, get_notifier, get_publisher
from carpool.api.middleware import limiter
from carpool.api.schemas import InboxResponse, NotificationResponse
from carpool.config import settings
from carpool.infrastructure.publisher import NotificationPublisher
from carpool.services.notifications import NotificationEmitter

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=InboxResponse, summary="List the caller's notifications")
@limiter.limit(settings.rate_limit)
async def list_notifications(
    request: Request,
    unread_only: bool = False,
    user_id: str = Depends(get_current_user_id),
    notifier: NotificationEmitter = Depends(get_notifier),
):
    notifications = await notifier.list_notifications(user_id, unread_only)
    return InboxResponse(
        unread_count=await notifier.unread_count(user_id),
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
    )


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification as read",
)
@limiter.limit(settings.rate_limit)
async def mark_read(
    request: Request,
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    notifier: NotificationEmitter = Depends(get_notifier),
):
    return await notifier.mark_read(notification_id, user_id)


@router.get(
    "/stream",
    summary="Live notification feed",
    description=(
        "Server-sent events for notifications committed after the stream "
        "opens.  Closing the connection unsubscribes."
    ),
)
async def stream_notifications(
    user_id: str = Depends(get_current_user_id),
    publisher: Optional[NotificationPublisher] = Depends(get_publisher),
):
    if publisher is None:
        raise HTTPException(status_code=503, detail="Live notifications unavailable")

    async def events():
        async with publisher.subscribe(user_id) as subscription:
            async for payload in subscription:
                yield f"event: notification\ndata: {json.dumps(payload)}\n\n"

    return StreamingResponse(events(), media_type="text/event-stream")
