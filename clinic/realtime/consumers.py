import json
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from channels.middleware import BaseMiddleware
from rest_framework.authtoken.models import Token

from clinic.services.notifications import user_group


@database_sync_to_async
def _user_for_token(key: str):
    token = Token.objects.select_related('user').filter(key=key).first()
    if token is None or not token.user.is_active:
        return None
    return token.user


class TokenQueryAuthMiddleware(BaseMiddleware):
    """Authenticate sockets with ``?token=<key>``; browsers cannot set headers on a WebSocket."""

    async def __call__(self, scope, receive, send):
        params = parse_qs(scope.get('query_string', b'').decode())
        key = (params.get('token') or [''])[0]
        if key:
            user = await _user_for_token(key)
            if user is not None:
                scope = dict(scope, user=user)
        return await super().__call__(scope, receive, send)


class AppointmentUpdatesConsumer(AsyncWebsocketConsumer):
    """Per-user stream of appointment and notification events."""

    async def connect(self):
        user = self.scope.get('user')
        if not (user and user.is_authenticated):
            await self.close(code=4001)
            return
        self.group_name = user_group(user.id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send(json.dumps({'type': 'welcome', 'message': 'connected'}))

    async def disconnect(self, close_code):
        if hasattr(self, 'group_name'):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def appointment_updated(self, event):
        # event: {"type": "appointment.updated", "appointment": {...}}
        await self.send(json.dumps(event))

    async def notification_created(self, event):
        await self.send(json.dumps(event))
