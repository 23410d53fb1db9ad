import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from .bus import user_group

logger = logging.getLogger(__name__)


class UserEventConsumer(AsyncJsonWebsocketConsumer):
    """
    One websocket session of an authenticated user.

    The session receives nothing until the client sends
    ``{"action": "subscribe"}``, which joins the user's own group. Events
    arrive as ``{"event": name, "data": snapshot}``.
    """

    async def connect(self):
        user = self.scope.get('user')
        if user is None or not user.is_authenticated:
            logger.info("Rejected websocket connection without an authenticated user")
            await self.close()
            return
        self.user_id = user.pk
        self.group_name = user_group(user.pk)
        self.subscribed = False
        await self.accept()

    async def disconnect(self, code):
        if getattr(self, 'subscribed', False):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
            self.subscribed = False
            logger.info(f"User {self.user_id} left {self.group_name} on disconnect ({code})")

    async def receive_json(self, content, **kwargs):
        action = content.get('action') if isinstance(content, dict) else None
        if action == 'subscribe':
            if not self.subscribed:
                await self.channel_layer.group_add(self.group_name, self.channel_name)
                self.subscribed = True
                logger.info(f"User {self.user_id} subscribed to {self.group_name}")
            await self.send_json({'event': 'subscribed', 'data': {'user_id': self.user_id}})
        elif action == 'unsubscribe':
            if self.subscribed:
                await self.channel_layer.group_discard(self.group_name, self.channel_name)
                self.subscribed = False
            await self.send_json({'event': 'unsubscribed', 'data': {'user_id': self.user_id}})
        elif action == 'ping':
            await self.send_json({'event': 'pong'})
        else:
            await self.send_json({
                'event': 'error',
                'data': {'message': f"Unknown action: {action}", 'code': 'UNKNOWN_ACTION'},
            })

    async def realtime_event(self, message):
        await self.send_json({'event': message['event'], 'data': message['data']})
