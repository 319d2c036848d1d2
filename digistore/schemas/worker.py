"""
Offline cache manager schemas: push payloads, notifications, window clients
"""

from pydantic import Field
from typing import Optional, List, Dict, Any

from .base import BaseSchema


class NotificationAction(BaseSchema):
    action: str
    title: str
    icon: Optional[str] = None


class PushPayload(BaseSchema):
    """JSON body of a push event"""
    title: Optional[str] = None
    body: Optional[str] = None
    url: Optional[str] = None
    actions: Optional[List[NotificationAction]] = None


class Notification(BaseSchema):
    id: str
    title: str
    body: str
    icon: str
    badge: str
    vibrate: List[int]
    data: Dict[str, Any]
    actions: List[NotificationAction] = Field(default_factory=list)


class WindowClient(BaseSchema):
    """An open storefront window/tab"""
    id: str
    url: str
    focused: bool = False


class RegisterClientRequest(BaseSchema):
    url: str
    id: Optional[str] = None


class NotificationClickResponse(BaseSchema):
    action: str  # "focus" | "open"
    client: WindowClient


class CacheSnapshot(BaseSchema):
    name: str
    keys: List[str]


class SyncResponse(BaseSchema):
    tag: str
    handled: bool
