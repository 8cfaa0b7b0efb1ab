import json
import logging

from fastapi import APIRouter, WebSocket

from apps.fleet.gateway import gateway

router = APIRouter(tags=['Websocket'])
logger = logging.getLogger(__name__)


@router.websocket('/ws')
async def websocket_endpoint(websocket: WebSocket):
    client_id = await gateway.connect(websocket)
    try:
        while True:
            frame = await websocket.receive()
            if frame['type'] == 'websocket.disconnect':
                break

            raw = frame.get('text')
            if raw is None:
                logger.warning(f'Ignoring binary frame from {client_id}')
                continue
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f'Ignoring non-JSON message from {client_id}')
                continue
            await gateway.handle_message(client_id, message)

            # dropped by the gateway after a failed send
            if client_id not in gateway.connections:
                break
    finally:
        gateway.disconnect(client_id)
