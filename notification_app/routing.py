from django.urls import path
from .consumers import LiveUpdatesConsumer

from django.conf import settings

websocket_urlpatterns = [
    path(f'{settings.WS_PATH}/live/', LiveUpdatesConsumer.as_asgi()),
]
