import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from .conf import engine_settings

logger = logging.getLogger(__name__)


class OrderEventsConsumer(AsyncJsonWebsocketConsumer):
    """
    Streams order events for one interest group (``orders``, ``display``,
    ``dashboard``) to a websocket client.

    Clients only listen; anything they send is ignored.
    """

    @staticmethod
    def known_groups():
        groups = set()
        for names in engine_settings.EVENT_GROUPS.values():
            groups.update(names)
        return groups

    async def connect(self):
        self.group_name = self.scope["url_route"]["kwargs"]["group"]
        if self.group_name not in self.known_groups():
            logger.warning(f"OrderEventsConsumer: Unknown group '{self.group_name}'. Closing connection.")
            await self.close()
            return

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        logger.info(f"OrderEventsConsumer: Joined group {self.group_name}")

    async def disconnect(self, close_code):
        if getattr(self, "group_name", None) in self.known_groups():
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
        logger.info(f"OrderEventsConsumer: Disconnected from {getattr(self, 'group_name', None)} ({close_code})")

    async def receive_json(self, content, **kwargs):
        logger.debug(f"OrderEventsConsumer: Ignoring client message on {self.group_name}")

    async def order_event(self, event):
        """Handler for ``order.event`` messages sent by OrderEventPublisher."""
        await self.send_json(event["data"])
