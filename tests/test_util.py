from datetime import datetime


def test_health(client):
    response = client.get("/util/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["database"] == "connected"
    assert datetime.fromisoformat(body["timestamp"])
