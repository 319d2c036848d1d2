"""Offline cache manager events: push, notification clicks, background sync"""

from fastapi import APIRouter, Body, Depends, Response, status
from typing import Any, Dict, List, Optional

from digistore.api.deps import get_notification_center, get_offline_cache
from digistore.schemas.worker import (
    CacheSnapshot,
    Notification,
    NotificationClickResponse,
    RegisterClientRequest,
    SyncResponse,
    WindowClient,
)
from digistore.services.offline_cache import OfflineCacheManager
from digistore.services.push_notifications import NotificationCenter

router = APIRouter()


@router.post("/push", response_model=Optional[Notification])
async def push(
    payload: Optional[Dict[str, Any]] = Body(None),
    notifications: NotificationCenter = Depends(get_notification_center)
):
    """Show a notification for a push payload; an empty push yields 204"""
    notification = await notifications.handle_push(payload)
    if notification is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return notification


@router.post("/clients", response_model=WindowClient, status_code=status.HTTP_201_CREATED)
async def register_client(
    body: RegisterClientRequest,
    notifications: NotificationCenter = Depends(get_notification_center)
):
    return notifications.clients.register(body.url, body.id)


@router.get("/clients", response_model=List[WindowClient])
async def list_clients(notifications: NotificationCenter = Depends(get_notification_center)):
    return notifications.clients.match_all()


@router.delete("/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unregister_client(
    client_id: str,
    notifications: NotificationCenter = Depends(get_notification_center)
):
    notifications.clients.unregister(client_id)


@router.post("/notifications/{notification_id}/click", response_model=NotificationClickResponse)
async def notification_click(
    notification_id: str,
    notifications: NotificationCenter = Depends(get_notification_center)
):
    return await notifications.handle_notification_click(notification_id)


@router.post("/sync/{tag}", response_model=SyncResponse)
async def sync(tag: str, manager: OfflineCacheManager = Depends(get_offline_cache)):
    handled = await manager.handle_sync(tag)
    return SyncResponse(tag=tag, handled=handled)


@router.get("/caches", response_model=List[CacheSnapshot])
async def list_caches(manager: OfflineCacheManager = Depends(get_offline_cache)):
    snapshots = []
    for name in await manager.caches.keys():
        cache = await manager.caches.open(name)
        snapshots.append(CacheSnapshot(name=name, keys=await cache.keys()))
    return snapshots
