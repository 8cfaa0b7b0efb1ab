from apps.fleet.gateway import gateway


def test_join_room_round_trip(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"event": "join-room", "data": "hub-delhi"})
        assert websocket.receive_json() == {"event": "room-joined", "data": "hub-delhi"}


def test_bad_messages_keep_connection_open(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text("not json")
        websocket.send_json({"event": "unknown"})
        websocket.send_json({"event": "join-room", "data": "hub-noida"})
        assert websocket.receive_json() == {"event": "room-joined", "data": "hub-noida"}


def test_vehicle_update_is_pushed_to_clients(client, create_vehicle):
    vehicle = create_vehicle()

    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"event": "join-room", "data": "dispatch"})
        websocket.receive_json()
        assert len(gateway.connections) >= 1

        response = client.patch(f"/vehicles/{vehicle['id']}", json={"driver_name": "Amit Singh"})
        assert response.status_code == 200

        message = websocket.receive_json()
        assert message["event"] == "vehicle:updated"
        assert message["data"]["id"] == vehicle["id"]
        assert message["data"]["driver_name"] == "Amit Singh"


def test_binary_frame_is_ignored_and_client_unregistered(client):
    before = set(gateway.connections)

    with client.websocket_connect("/ws") as websocket:
        websocket.send_bytes(b"\x00\x01")
        websocket.send_json({"event": "join-room", "data": "hub-gurgaon"})
        assert websocket.receive_json() == {"event": "room-joined", "data": "hub-gurgaon"}
        opened = set(gateway.connections) - before
        assert len(opened) == 1

    assert opened.isdisjoint(gateway.connections)
    assert "hub-gurgaon" not in gateway.rooms
