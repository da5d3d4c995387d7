"""End-to-end signaling over the /ws endpoint and the HTTP status routes"""

import pytest
from fastapi import WebSocketDisconnect


def send(ws, event, data):
    ws.send_json({"event": event, "data": data})


def receive_until(ws, event):
    """Read envelopes until `event` arrives; returns its data"""
    while True:
        message = ws.receive_json()
        if message["event"] == event:
            return message["data"]


def join(ws, room_id, email, name):
    send(ws, "join-room", {"roomId": room_id, "emailId": email, "name": name})
    confirmation = receive_until(ws, "joined-room")
    receive_until(ws, "room-update")
    return confirmation


# ===== HTTP =====


def test_root_and_health(client):
    assert client.get("/").json()["message"] == "Backend is Running!"
    assert client.get("/health").json() == {"status": "healthy", "environment": "test"}


def test_status_reports_connections_and_users(client):
    assert client.get("/status").json() == {"status": "active", "connections": 0, "users": []}

    with client.websocket_connect("/ws") as ws:
        join(ws, "r1", "a@x", "Alice")

        body = client.get("/status").json()
        assert body["connections"] == 1
        assert body["users"] == ["a@x"]

    assert client.get("/status").json()["users"] == []


def test_room_routes(client):
    with client.websocket_connect("/ws") as ws:
        me = join(ws, "r1", "a@x", "Alice")

        rooms = client.get("/api/rooms").json()
        assert rooms == {"rooms": [{"roomId": "r1", "numParticipants": 1}], "total": 1}

        info = client.get("/api/room/r1").json()
        assert info["numParticipants"] == 1
        assert info["participants"] == [
            {"socketId": me["socketId"], "emailId": "a@x", "name": "Alice"}
        ]

    response = client.get("/api/room/r1")
    assert response.status_code == 404
    assert response.json()["message"] == "Room 'r1' not found"


# ===== WebSocket =====


def test_join_chat_and_call_between_two_clients(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        a = join(alice, "r1", "a@x", "Alice")
        send(bob, "join-room", {"roomId": "r1", "emailId": "b@x", "name": "Bob"})
        b = receive_until(bob, "joined-room")
        assert receive_until(bob, "user-joined") == {
            "emailId": "a@x", "name": "Alice", "socketId": a["socketId"],
        }
        assert receive_until(alice, "user-joined") == {
            "emailId": "b@x", "name": "Bob", "socketId": b["socketId"],
        }
        assert receive_until(alice, "room-update") == {"count": 2}

        send(alice, "chat-message", {"roomId": "r1", "text": "hi"})
        assert receive_until(bob, "chat-message") == {
            "from": a["socketId"], "text": "hi", "senderName": "Alice",
        }

        offer = {"type": "offer", "sdp": "v=0"}
        send(bob, "call-user", {"emailId": "a@x", "offer": offer})
        assert receive_until(alice, "incoming-call") == {
            "from": b["socketId"], "fromEmail": "b@x", "fromName": "Bob", "offer": offer,
        }

        send(alice, "call-accepted", {"to": b["socketId"], "ans": {"type": "answer"}})
        accepted = receive_until(bob, "call-accepted")
        assert accepted["from"] == a["socketId"]
        assert accepted["ans"] == {"type": "answer"}


def test_malformed_frames_do_not_close_the_connection(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        ws.send_text('["join-room", {}]')
        ws.send_json({"data": {}})

        send(ws, "call-user", {"emailId": "ghost@x", "offer": {}})
        assert ws.receive_json() == {"event": "user-not-found", "data": {"emailId": "ghost@x"}}


def test_binary_frame_keeps_participant_connected(client):
    with client.websocket_connect("/ws") as ws:
        join(ws, "r1", "a@x", "Alice")

        ws.send_bytes(b"\x00\x01")

        send(ws, "call-user", {"emailId": "ghost@x", "offer": {}})
        assert receive_until(ws, "user-not-found") == {"emailId": "ghost@x"}
        assert client.get("/status").json()["users"] == ["a@x"]


def test_disconnect_notifies_room(client):
    with client.websocket_connect("/ws") as bob:
        join(bob, "r1", "b@x", "Bob")
        with client.websocket_connect("/ws") as alice:
            a = join(alice, "r1", "a@x", "Alice")
            receive_until(bob, "room-update")

        assert receive_until(bob, "user-left") == {"emailId": "a@x", "socketId": a["socketId"]}
        assert receive_until(bob, "room-update") == {"count": 1}


def test_superseded_connection_is_closed(client):
    with client.websocket_connect("/ws") as first:
        join(first, "r1", "a@x", "Alice")
        with client.websocket_connect("/ws") as second:
            join(second, "r1", "a@x", "Alice")

            assert receive_until(first, "session-replaced")["emailId"] == "a@x"
            with pytest.raises(WebSocketDisconnect) as excinfo:
                first.receive_json()
            assert excinfo.value.code == 4001
