"""Tests for the room and message REST endpoints."""
from anonchat.store.schemas import RoomCreate


class TestRoomsApi:
    def test_create_and_get_room(self, api_client):
        response = api_client.post(
            "/api/rooms",
            json={"name": "general", "description": "Say hi", "createdBy": "user_a"},
        )

        assert response.status_code == 201
        room = response.json()
        assert room["name"] == "general"
        assert room["maxParticipants"] == 50
        assert room["isActive"] is True

        fetched = api_client.get(f"/api/rooms/{room['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["id"] == room["id"]

    def test_blank_name_is_rejected(self, api_client):
        assert api_client.post("/api/rooms", json={"name": "   "}).status_code == 400
        assert api_client.post("/api/rooms", json={"name": ""}).status_code == 422

    def test_unknown_room_is_404(self, api_client):
        response = api_client.get("/api/rooms/missing")
        assert response.status_code == 404
        assert response.json()["detail"] == "Room not found"

    def test_list_only_active_rooms(self, api_client):
        keep = api_client.post("/api/rooms", json={"name": "keep"}).json()
        drop = api_client.post("/api/rooms", json={"name": "drop"}).json()
        api_client.delete(f"/api/rooms/{drop['id']}")

        ids = [room["id"] for room in api_client.get("/api/rooms").json()]
        assert ids == [keep["id"]]


class TestDeleteRoom:
    def test_owner_can_delete(self, api_client):
        room = api_client.post("/api/rooms", json={"name": "mine", "createdBy": "user_a"}).json()

        response = api_client.delete(f"/api/rooms/{room['id']}?anonymousId=user_a")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Room deleted successfully"
        assert body["deletedRoom"]["isActive"] is False

    def test_other_user_cannot_delete(self, api_client):
        room = api_client.post("/api/rooms", json={"name": "mine", "createdBy": "user_a"}).json()

        response = api_client.delete(f"/api/rooms/{room['id']}?anonymousId=user_b")

        assert response.status_code == 403
        assert response.json()["detail"] == "You can only modify rooms that you created"
        assert api_client.get(f"/api/rooms/{room['id']}").json()["isActive"] is True

    def test_legacy_owner_room_can_be_deleted_by_anyone(self, api_client):
        room = api_client.post(
            "/api/rooms", json={"name": "old", "createdBy": "unknown_user"}
        ).json()
        assert api_client.delete(f"/api/rooms/{room['id']}").status_code == 200

    def test_delete_unknown_room(self, api_client):
        assert api_client.delete("/api/rooms/missing").status_code == 404

    def test_delete_drops_history(self, api_client, memory_store):
        room = memory_store.create_room(RoomCreate(name="doomed"))
        memory_store.append_message(room.id, "user_a", "#fff", "bye")

        api_client.delete(f"/api/rooms/{room.id}")

        assert api_client.get(f"/api/rooms/{room.id}/messages").json() == []


class TestMessagesApi:
    def test_room_history_oldest_first(self, api_client, memory_store):
        room = memory_store.create_room(RoomCreate(name="general"))
        for text in ("one", "two", "three"):
            memory_store.append_message(room.id, "user_a", "#fff", text)

        history = api_client.get(f"/api/rooms/{room.id}/messages").json()

        assert [m["content"] for m in history] == ["one", "two", "three"]
        assert set(history[0]) == {
            "id", "roomId", "anonymousId", "userColor", "content", "timestamp",
        }

    def test_timestamps_carry_utc_marker(self, api_client, memory_store):
        room = memory_store.create_room(RoomCreate(name="general"))
        memory_store.append_message(room.id, "user_a", "#fff", "hello")

        history = api_client.get(f"/api/rooms/{room.id}/messages").json()
        recent = api_client.get("/api/messages").json()
        fetched_room = api_client.get(f"/api/rooms/{room.id}").json()

        assert history[0]["timestamp"].endswith("Z")
        assert recent[0]["timestamp"].endswith("Z")
        assert fetched_room["createdAt"].endswith("Z")

    def test_recent_messages_newest_first(self, api_client, memory_store):
        room = memory_store.create_room(RoomCreate(name="general"))
        for text in ("one", "two"):
            memory_store.append_message(room.id, "user_a", "#fff", text)

        messages = api_client.get("/api/messages").json()

        assert [m["content"] for m in messages] == ["two", "one"]

    def test_delete_message(self, api_client, memory_store):
        room = memory_store.create_room(RoomCreate(name="general"))
        message = memory_store.append_message(room.id, "user_a", "#fff", "oops")

        response = api_client.delete(f"/api/messages/{message.id}")
        assert response.status_code == 200
        assert response.json() == {"message": "Message deleted successfully"}

        again = api_client.delete(f"/api/messages/{message.id}")
        assert again.status_code == 404
        assert again.json()["detail"] == "Message not found"


class TestServiceEndpoints:
    def test_health_reports_active_rooms(self, api_client, memory_store):
        room = memory_store.create_room(RoomCreate(name="general"))
        user = memory_store.create_user()

        assert api_client.get("/health").json()["activeRooms"] == 0

        with api_client.websocket_connect(f"/ws/chat?anonymousId={user.anonymousId}") as ws:
            ws.receive_json()
            ws.send_json({"type": "join_room", "roomId": room.id})
            ws.receive_json()
            body = api_client.get("/health").json()

        assert body["status"] == "ok"
        assert body["activeRooms"] == 1
        assert "timestamp" in body

    def test_root(self, api_client):
        body = api_client.get("/").json()
        assert body["message"] == "Anonymous Chat API is running!"
        assert body["version"] == "1.0.0"


class TestLifespan:
    def test_app_can_restart_in_one_process(self):
        """A second startup must not reuse the engine bound to the closed store."""
        from fastapi.testclient import TestClient

        from anonchat.main import app

        from anonchat.realtime import engine as engine_module

        with TestClient(app) as client:
            client.post("/api/auth/anonymous")
        assert engine_module._engine is None

        with TestClient(app) as client:
            anonymous_id = client.post("/api/auth/anonymous").json()["anonymousId"]
            with client.websocket_connect(f"/ws/chat?anonymousId={anonymous_id}") as ws:
                hello = ws.receive_json()

        assert hello["type"] == "connected"
        assert hello["anonymousId"] == anonymous_id
