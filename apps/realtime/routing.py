from django.urls import path
from .consumers import UserEventConsumer

websocket_urlpatterns = [
    path('ws/events/', UserEventConsumer.as_asgi()),
]
