import logging
import re

from channels.generic.websocket import AsyncJsonWebsocketConsumer
from rest_framework.exceptions import AuthenticationFailed

from users.authentication import JWTAuthMixin

from .broadcast import ADMINS_ROOM, BROADCAST_GROUP, envelope, room_group, user_group

logger = logging.getLogger("rest_framework")

ROOM_NAME = re.compile(r"^[A-Za-z0-9_.-]{1,80}$")

HEARTBEAT_INTERVAL_MS = 30000
RECONNECT_INTERVAL_MS = 5000
MAX_RECONNECT_ATTEMPTS = 10


class LiveUpdatesConsumer(JWTAuthMixin, AsyncJsonWebsocketConsumer):
    """
    Single socket for live updates. Everyone joins the broadcast group;
    authenticated users also get their notification group, admins the
    `admins` room. Clients may join further rooms by name.
    """

    async def connect(self):
        try:
            self.user = await self.get_user_from_scope()
        except AuthenticationFailed:
            await self.close(code=4001)
            return

        self.groups_joined = set()
        await self.accept()

        await self._join(BROADCAST_GROUP)
        if self.user is not None:
            await self._join(user_group(self.user.id))
            if self.user.is_admin:
                await self._join(room_group(ADMINS_ROOM))

        await self.send_json(envelope("connection", {
            "status": "connected",
            "authenticated": self.user is not None,
            "heartbeatInterval": HEARTBEAT_INTERVAL_MS,
            "reconnectInterval": RECONNECT_INTERVAL_MS,
            "maxReconnectAttempts": MAX_RECONNECT_ATTEMPTS,
        }))

    async def disconnect(self, close_code):
        for group in getattr(self, "groups_joined", set()):
            try:
                await self.channel_layer.group_discard(group, self.channel_name)
            except Exception as exc:
                logger.error(f"LiveUpdatesConsumer.disconnect failed for group {group}: {exc}")

    async def _join(self, group):
        await self.channel_layer.group_add(group, self.channel_name)
        self.groups_joined.add(group)

    async def _leave(self, group):
        await self.channel_layer.group_discard(group, self.channel_name)
        self.groups_joined.discard(group)

    async def receive_json(self, content, **kwargs):
        message_type = content.get("type") if isinstance(content, dict) else None
        data = (content.get("data") or {}) if isinstance(content, dict) else {}

        if message_type == "heartbeat":
            await self.send_json(envelope("heartbeat_ack"))
        elif message_type in ("join_room", "leave_room"):
            await self._handle_room(message_type, data)
        else:
            await self.send_json(envelope("error", {"message": f"Unknown message type: {message_type}"}))

    async def _handle_room(self, message_type, data):
        room = data.get("roomId") if isinstance(data, dict) else None
        if not isinstance(room, str) or not ROOM_NAME.match(room):
            await self.send_json(envelope("error", {"message": "Invalid room id."}))
            return
        if room == ADMINS_ROOM and not (self.user is not None and self.user.is_admin):
            await self.send_json(envelope("error", {"message": "Admin access required."}))
            return

        if message_type == "join_room":
            await self._join(room_group(room))
            await self.send_json(envelope("room_joined", {"roomId": room}))
        else:
            await self._leave(room_group(room))
            await self.send_json(envelope("room_left", {"roomId": room}))

    async def relay_message(self, event):
        message = event.get("message")
        if not isinstance(message, dict):
            return await self.send_json(envelope("error", {"message": "Malformed message."}))
        await self.send_json(message)
