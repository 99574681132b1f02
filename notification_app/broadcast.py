"""
Server-side publishing to WebSocket clients over the channel layer.

Every message uses the `{type, data, timestamp, id}` envelope. Delivery is
best effort: a missing or failing channel layer is logged and the caller
carries on, since clients re-fetch state from the API after reconnecting.
"""
import logging
import random
import string
import time

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger("rest_framework")

BROADCAST_GROUP = "broadcast"
ADMINS_ROOM = "admins"
USER_GROUP_TEMPLATE = "notifications_{user_id}"
ROOM_GROUP_TEMPLATE = "room_{room}"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def envelope(message_type, data=None):
    return {
        "type": message_type,
        "data": data if data is not None else {},
        "timestamp": int(time.time() * 1000),
        "id": "".join(random.choices(_ID_ALPHABET, k=9)),
    }


def room_group(room):
    return ROOM_GROUP_TEMPLATE.format(room=room)


def user_group(user_id):
    return USER_GROUP_TEMPLATE.format(user_id=user_id)


class Broadcaster:
    def __init__(self, channel_layer=None):
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    def _send(self, group, message):
        layer = self.channel_layer
        if layer is None:
            logger.debug(f"No channel layer configured; dropping {message['type']} for {group}")
            return False
        try:
            async_to_sync(layer.group_send)(group, {"type": "relay.message", "message": message})
        except Exception as exc:
            logger.error(f"Broadcast of {message['type']} to {group} failed: {exc}")
            return False
        return True

    def to_all(self, message_type, data=None):
        return self._send(BROADCAST_GROUP, envelope(message_type, data))

    def to_room(self, room, message_type, data=None):
        return self._send(room_group(room), envelope(message_type, data))

    def to_user(self, user_id, message_type, data=None):
        return self._send(user_group(user_id), envelope(message_type, data))

    def review_update(self, review):
        return self.to_all("review_update", {
            "reviewId": str(review.pk),
            "status": review.status,
            "sentiment": review.sentiment,
            "sentimentScore": review.sentiment_score,
            "isFake": review.is_fake,
            "blockchainHash": review.blockchain_hash,
            "helpful": review.helpful,
        })

    def analytics_update(self, data):
        return self.to_room(ADMINS_ROOM, "analytics_update", data)
