import pytest

from apps.fleet.gateway import (
    CONSOLIDATION_OPPORTUNITY,
    DECISION_MADE,
    PARCEL_ARRIVED,
    ROOM_JOINED,
    VEHICLE_UPDATED,
    WebsocketGateway,
)


class FakeWebSocket:
    def __init__(self, fail: bool = False, failures: int = 0):
        self.fail = fail
        self.failures = failures
        self.accepted = False
        self.closed = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.fail or self.failures:
            self.failures = max(self.failures - 1, 0)
            raise RuntimeError("connection closed")
        self.sent.append(message)

    async def close(self):
        self.closed = True


@pytest.fixture()
def gateway():
    return WebsocketGateway()


@pytest.mark.asyncio
async def test_connect_and_disconnect(gateway):
    websocket = FakeWebSocket()

    client_id = await gateway.connect(websocket)

    assert websocket.accepted
    assert gateway.connections == {client_id: websocket}

    gateway.disconnect(client_id)
    gateway.disconnect(client_id)
    assert gateway.connections == {}


@pytest.mark.asyncio
async def test_broadcast_reaches_every_client(gateway):
    sockets = [FakeWebSocket(), FakeWebSocket(), FakeWebSocket()]
    for websocket in sockets:
        await gateway.connect(websocket)

    delivered = await gateway.broadcast(PARCEL_ARRIVED, {"id": "parcel-1", "weight": 2.5})

    assert delivered == 3
    for websocket in sockets:
        assert websocket.sent == [{"event": PARCEL_ARRIVED, "data": {"id": "parcel-1", "weight": 2.5}}]


@pytest.mark.asyncio
async def test_broadcast_without_clients(gateway):
    assert await gateway.broadcast(DECISION_MADE, {"id": "decision-1"}) == 0


@pytest.mark.asyncio
async def test_failed_client_is_dropped(gateway):
    healthy = FakeWebSocket()
    broken = FakeWebSocket(fail=True)
    healthy_id = await gateway.connect(healthy)
    await gateway.connect(broken)

    delivered = await gateway.emit_decision_made({"id": "decision-1", "type": "consolidate"})

    assert delivered == 1
    assert list(gateway.connections) == [healthy_id]
    assert healthy.sent[0]["event"] == DECISION_MADE


@pytest.mark.asyncio
async def test_emit_helpers_use_their_event_names(gateway):
    websocket = FakeWebSocket()
    await gateway.connect(websocket)

    await gateway.emit_parcel_arrived({"id": "p"})
    await gateway.emit_consolidation_opportunity({"vehicle_id": 1})
    await gateway.emit_vehicle_update({"id": 1})
    await gateway.emit_decision_made({"id": "d"})

    assert [message["event"] for message in websocket.sent] == [
        PARCEL_ARRIVED,
        CONSOLIDATION_OPPORTUNITY,
        VEHICLE_UPDATED,
        DECISION_MADE,
    ]


@pytest.mark.asyncio
async def test_join_room(gateway):
    websocket = FakeWebSocket()
    client_id = await gateway.connect(websocket)

    await gateway.handle_message(client_id, {"event": "join-room", "data": "hub-delhi"})

    assert gateway.rooms["hub-delhi"] == {client_id}
    assert websocket.sent == [{"event": ROOM_JOINED, "data": "hub-delhi"}]

    # membership does not filter broadcasts
    other = FakeWebSocket()
    await gateway.connect(other)
    assert await gateway.emit_vehicle_update({"id": 1}) == 2

    gateway.disconnect(client_id)
    assert "hub-delhi" not in gateway.rooms


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "message",
    [
        "join-room",
        ["join-room", "hub"],
        {"data": "hub"},
        {"event": "join-room"},
        {"event": "join-room", "data": ""},
        {"event": "unknown", "data": "hub"},
    ],
)
async def test_malformed_messages_are_ignored(gateway, message):
    websocket = FakeWebSocket()
    client_id = await gateway.connect(websocket)

    await gateway.handle_message(client_id, message)

    assert websocket.sent == []
    assert client_id in gateway.connections
    assert not gateway.rooms


@pytest.mark.asyncio
async def test_dropped_client_is_closed(gateway):
    websocket = FakeWebSocket(failures=1)
    await gateway.connect(websocket)

    assert await gateway.emit_vehicle_update({"id": 1}) == 0

    assert gateway.connections == {}
    assert websocket.closed


@pytest.mark.asyncio
async def test_join_room_after_drop_is_ignored(gateway):
    websocket = FakeWebSocket(failures=1)
    client_id = await gateway.connect(websocket)
    await gateway.emit_vehicle_update({"id": 1})

    await gateway.handle_message(client_id, {"event": "join-room", "data": "hub"})

    assert not gateway.rooms
    assert websocket.sent == []
