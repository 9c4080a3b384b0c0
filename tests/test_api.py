"""
tests.test_api
~~~~~~~~~~~~~~

HTTP / WebSocket 集成测试 —— 通过 FastAPI TestClient 驱动完整应用（含 lifespan）。
"""
from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from conftest import participant
from theatre.main import app
from theatre.services.room_codes import ROOM_CODE_ALPHABET


@pytest.fixture()
def client() -> Iterator[TestClient]:
    # 使用上下文管理器以触发 lifespan，每个测试拿到全新的注册表
    with TestClient(app) as c:
        yield c


def join_frame(room_id: str, pid: str) -> dict:
    return {"event": "join-room", "data": {"roomId": room_id, "participant": participant(pid)}}


class TestRestEndpoints:
    """测试只读 REST 接口与健康检查。"""

    def test_health_reports_counts(self, client: TestClient) -> None:
        resp = client.get("/health")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["environment"] == "test"
        assert body["rooms"] == 0
        assert body["totalParticipants"] == 0

    def test_list_rooms_empty(self, client: TestClient) -> None:
        resp = client.get("/api/rooms")

        assert resp.status_code == 200
        assert resp.json() == {"code": 200, "data": [], "msg": "success"}

    def test_unknown_room_is_404(self, client: TestClient) -> None:
        resp = client.get("/api/rooms/nope")

        assert resp.status_code == 404

    def test_room_code(self, client: TestClient) -> None:
        resp = client.post("/api/rooms/code")

        assert resp.status_code == 200
        code = resp.json()["data"]["code"]
        assert len(code) == 4
        assert all(ch in ROOM_CODE_ALPHABET for ch in code)
        assert len(resp.json()["data"]["token"]) >= 20


class TestWebSocketEndpoint:
    """测试 /ws 端点的完整收发流程。"""

    def test_join_and_snapshot(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_json(join_frame("R1", "a"))
            msg = ws.receive_json()

            assert msg["event"] == "room-joined"
            assert msg["data"]["isHost"] is True
            assert msg["data"]["id"] == "R1"

            resp = client.get("/api/rooms/R1")
            assert resp.status_code == 200
            snapshot = resp.json()["data"]
            assert snapshot["hostId"] == "a"
            assert snapshot["participantCount"] == 1

            health = client.get("/health").json()
            assert health["rooms"] == 1
            assert health["totalParticipants"] == 1

    def test_invalid_text_is_ignored(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_text("this is not json")
            ws.send_json({"event": "no-such-event", "data": {}})
            ws.send_json(join_frame("R1", "a"))

            assert ws.receive_json()["event"] == "room-joined"

    def test_disconnect_notifies_remaining_members(self, client: TestClient) -> None:
        with client.websocket_connect("/ws") as ws_a:
            ws_a.send_json(join_frame("R1", "a"))
            assert ws_a.receive_json()["event"] == "room-joined"

            with client.websocket_connect("/ws") as ws_b:
                ws_b.send_json(join_frame("R1", "b"))
                assert ws_b.receive_json()["data"]["isHost"] is False

                assert ws_a.receive_json() == {
                    "event": "participant-joined",
                    "data": {
                        "id": "b",
                        "name": "B",
                        "color": "#00ffff",
                        "position": {"x": 0.0, "y": 1.6, "z": 5.0},
                        "seatIndex": None,
                    },
                }
                assert ws_a.receive_json() == {
                    "event": "participant-count-update", "data": {"count": 2},
                }

            assert ws_a.receive_json() == {
                "event": "participant-left", "data": {"participantId": "b"},
            }
            assert ws_a.receive_json() == {
                "event": "participant-count-update", "data": {"count": 1},
            }

        assert client.get("/api/rooms").json()["data"] == []

    def test_binary_frame_is_ignored(self, client: TestClient) -> None:
        """二进制帧被丢弃，连接与参与者身份保持不变。"""
        with client.websocket_connect("/ws") as ws_a:
            ws_a.send_json(join_frame("R1", "a"))
            assert ws_a.receive_json()["event"] == "room-joined"

            with client.websocket_connect("/ws") as ws_b:
                ws_b.send_json(join_frame("R1", "b"))
                assert ws_b.receive_json()["event"] == "room-joined"
                assert ws_a.receive_json()["event"] == "participant-joined"
                assert ws_a.receive_json()["event"] == "participant-count-update"

                ws_b.send_bytes(b"\x00\x01")
                ws_b.send_json({"event": "request-seat", "data": {"roomId": "R1", "seatIndex": 3}})

                seat = {"participantId": "b", "seatIndex": 3}
                assert ws_b.receive_json() == {"event": "seat-assigned", "data": seat}
                # A 收到的下一条是座位分配，而不是 participant-left
                assert ws_a.receive_json() == {"event": "seat-assigned", "data": seat}

                snapshot = client.get("/api/rooms/R1").json()["data"]
                assert snapshot["participantCount"] == 2
                assert snapshot["hostId"] == "a"


class TestRoomCodeRateLimit:
    """测试房间码接口限流。"""

    def test_burst_is_limited(self, client: TestClient) -> None:
        statuses = [client.post("/api/rooms/code").status_code for _ in range(25)]

        assert 429 in statuses
