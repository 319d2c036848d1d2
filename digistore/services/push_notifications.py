"""
Push notification handling for the offline cache manager:
push payload -> notification, notification click -> window client
"""

from collections import OrderedDict
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin
import logging
import uuid

from pydantic import ValidationError

from digistore.core.config import settings
from digistore.core.exceptions import BadRequestException, NotFoundException
from digistore.schemas.worker import (
    Notification,
    NotificationClickResponse,
    PushPayload,
    WindowClient,
)

logger = logging.getLogger(__name__)

DEFAULT_BODY = "You have a new notification"
VIBRATE_PATTERN = [100, 50, 100]


class ClientRegistry:
    """Open storefront windows known to the manager"""

    def __init__(self, origin: Optional[str] = None, max_clients: Optional[int] = None):
        self.origin = (origin or settings.ORIGIN_URL).rstrip("/") + "/"
        self.max_clients = max_clients or settings.WINDOW_CLIENT_LIMIT
        self._clients: "OrderedDict[str, WindowClient]" = OrderedDict()

    def resolve(self, url: str) -> str:
        return urljoin(self.origin, url)

    def register(self, url: str, client_id: Optional[str] = None) -> WindowClient:
        client = WindowClient(id=client_id or str(uuid.uuid4()), url=self.resolve(url))
        self._clients.pop(client.id, None)
        self._clients[client.id] = client
        # Oldest registrations go first
        while len(self._clients) > self.max_clients:
            self._clients.popitem(last=False)
        return client

    def unregister(self, client_id: str) -> None:
        self._clients.pop(client_id, None)

    def match_all(self) -> List[WindowClient]:
        return list(self._clients.values())

    def focus(self, client_id: str) -> WindowClient:
        for client in self._clients.values():
            client.focused = client.id == client_id
        return self._clients[client_id]

    def open_window(self, url: str) -> WindowClient:
        client = self.register(url)
        return self.focus(client.id)


class NotificationCenter:
    """Shows push notifications and routes clicks to a window"""

    def __init__(self, clients: ClientRegistry, max_notifications: Optional[int] = None):
        self.clients = clients
        self.max_notifications = max_notifications or settings.NOTIFICATION_LIMIT
        self.notifications: "OrderedDict[str, Notification]" = OrderedDict()

    async def handle_push(self, data: Optional[Dict[str, Any]]) -> Optional[Notification]:
        """Display a notification for a push payload; empty pushes are ignored"""
        if not data:
            return None

        try:
            payload = PushPayload.model_validate(data)
        except ValidationError as e:
            raise BadRequestException(f"Invalid push payload: {e}", error_code="INVALID_PUSH") from e

        return await self.show_notification(
            payload.title or settings.DEFAULT_NOTIFICATION_TITLE,
            body=payload.body or DEFAULT_BODY,
            url=payload.url or "/",
            actions=payload.actions or [],
        )

    async def show_notification(self, title: str, body: str, url: str, actions: list) -> Notification:
        notification = Notification(
            id=str(uuid.uuid4()),
            title=title,
            body=body,
            icon=settings.NOTIFICATION_ICON,
            badge=settings.NOTIFICATION_BADGE,
            vibrate=VIBRATE_PATTERN,
            data={"url": url},
            actions=actions,
        )
        self.notifications[notification.id] = notification
        while len(self.notifications) > self.max_notifications:
            self.notifications.popitem(last=False)
        logger.info(f"Showing notification {notification.id}: {title}")
        return notification

    async def handle_notification_click(self, notification_id: str) -> NotificationClickResponse:
        """
        Close (drop) the notification, then focus a window already showing its
        URL or open a new one.
        """
        notification = self.notifications.pop(notification_id, None)
        if notification is None:
            raise NotFoundException("Notification not found")

        target = self.clients.resolve(notification.data.get("url") or "/")

        for client in self.clients.match_all():
            if client.url == target:
                return NotificationClickResponse(action="focus", client=self.clients.focus(client.id))

        return NotificationClickResponse(action="open", client=self.clients.open_window(target))
