from django.urls import re_path

from . import consumers

websocket_urlpatterns = [
    re_path(r"ws/orders/events/(?P<group>[\w-]+)/$", consumers.OrderEventsConsumer.as_asgi()),
]
