import asyncio
import logging
import uuid
from collections import defaultdict
from typing import Any

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

PARCEL_ARRIVED = 'parcel:arrived'
CONSOLIDATION_OPPORTUNITY = 'consolidation:opportunity'
VEHICLE_UPDATED = 'vehicle:updated'
DECISION_MADE = 'decision:made'

JOIN_ROOM = 'join-room'
ROOM_JOINED = 'room-joined'


class WebsocketGateway:
    """
    Registry of connected websocket clients and the events pushed to them.

    Delivery is best effort: every emit goes to all connected clients once,
    with no queueing, acknowledgment or replay. A client whose send fails is
    dropped from the registry without affecting the others.
    """

    def __init__(self):
        self.connections: dict[str, WebSocket] = {}
        self.rooms: dict[str, set[str]] = defaultdict(set)

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        client_id = uuid.uuid4().hex
        self.connections[client_id] = websocket
        logger.info(f'Client connected: {client_id}')
        return client_id

    def disconnect(self, client_id: str):
        if self.connections.pop(client_id, None) is None:
            return
        for room in list(self.rooms):
            self.rooms[room].discard(client_id)
            if not self.rooms[room]:
                del self.rooms[room]
        logger.info(f'Client disconnected: {client_id}')

    async def join_room(self, client_id: str, room: str):
        websocket = self.connections.get(client_id)
        if websocket is None:
            logger.warning(f'Ignoring join-room from disconnected client {client_id}')
            return
        self.rooms[room].add(client_id)
        logger.info(f'Client {client_id} joined room: {room}')
        await self._send(client_id, websocket, {'event': ROOM_JOINED, 'data': room})

    async def handle_message(self, client_id: str, message: Any):
        if not isinstance(message, dict) or 'event' not in message:
            logger.warning(f'Ignoring malformed message from {client_id}: {message!r}')
            return

        event, data = message['event'], message.get('data')
        if event == JOIN_ROOM:
            if not isinstance(data, str) or not data:
                logger.warning(f'Client {client_id} sent join-room without a room name')
                return
            await self.join_room(client_id, data)
        else:
            logger.warning(f'Ignoring unknown event "{event}" from {client_id}')

    async def broadcast(self, event: str, data: Any) -> int:
        """
        Send an event to every connected client.

        @param event: Event name.
        @param data: Any JSON-encodable payload.
        @return: Number of clients the event was handed to.
        """
        message = {'event': event, 'data': jsonable_encoder(data)}
        results = await asyncio.gather(
            *(self._send(client_id, websocket, message) for client_id, websocket in list(self.connections.items()))
        )
        delivered = sum(results)
        logger.debug(f'Broadcast {event} to {delivered} client(s)')
        return delivered

    async def _send(self, client_id: str, websocket: WebSocket, message: dict) -> bool:
        try:
            await websocket.send_json(message)
            return True
        except Exception as e:
            logger.warning(f'Dropping client {client_id} after failed send: {e}')
            self.disconnect(client_id)
            await self._close(client_id, websocket)
            return False

    async def _close(self, client_id: str, websocket: WebSocket):
        try:
            await websocket.close()
        except Exception as e:
            logger.debug(f'Websocket of {client_id} was already closed: {e}')

    async def emit_parcel_arrived(self, parcel: Any) -> int:
        return await self.broadcast(PARCEL_ARRIVED, parcel)

    async def emit_consolidation_opportunity(self, data: Any) -> int:
        return await self.broadcast(CONSOLIDATION_OPPORTUNITY, data)

    async def emit_vehicle_update(self, vehicle: Any) -> int:
        return await self.broadcast(VEHICLE_UPDATED, vehicle)

    async def emit_decision_made(self, decision: Any) -> int:
        return await self.broadcast(DECISION_MADE, decision)


gateway = WebsocketGateway()
