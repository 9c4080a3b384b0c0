"""
tests.test_signaling
~~~~~~~~~~~~~~~~~~~~

SignalingRelay 单元测试，以及经由网关的端到端信令转发。
"""
from __future__ import annotations

from collections.abc import Callable
from unittest.mock import MagicMock

import pytest

from conftest import frame, participant
from theatre.services.connection import Connection
from theatre.services.gateway import SessionGateway
from theatre.services.signaling import SignalingRelay

OFFER = {"type": "offer", "sdp": "v=0\r\no=- 1 2 IN IP4 127.0.0.1"}


class TestSignalingRelay:
    """测试信令路由本身（不经过网关）。"""

    def test_route_to_online_target(self) -> None:
        target = MagicMock(spec=Connection)
        lookup = MagicMock()
        lookup.find.return_value = target
        relay = SignalingRelay(lookup)

        routed = relay.route(
            "voice-offer", room_id="R1", sender_id="a", target_participant_id="b", payload=OFFER,
        )

        lookup.find.assert_called_once_with("R1", "b")
        assert routed == (
            target,
            {"event": "voice-offer", "data": {"fromParticipantId": "a", "payload": OFFER}},
        )

    def test_missing_target_is_dropped(self) -> None:
        lookup = MagicMock()
        lookup.find.return_value = None
        relay = SignalingRelay(lookup)

        routed = relay.route(
            "voice-answer", room_id="R1", sender_id="a", target_participant_id="ghost", payload={},
        )

        assert routed is None

    def test_non_signaling_event_raises(self) -> None:
        relay = SignalingRelay(MagicMock())

        with pytest.raises(ValueError):
            relay.route(
                "chat-message", room_id="R1", sender_id="a", target_participant_id="b", payload={},
            )


class TestGatewaySignaling:
    """测试网关层面的信令转发：只送达目标，不广播。"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("event", ["voice-offer", "voice-answer", "voice-ice-candidate"])
    async def test_signal_reaches_only_target(
        self, gateway: SessionGateway, make_conn: Callable[[str], Connection], event: str,
    ) -> None:
        a, b, c = make_conn("a"), make_conn("b"), make_conn("c")
        for conn, pid in ((a, "a"), (b, "b"), (c, "c")):
            await gateway.handle(conn, frame("join-room", roomId="R1", participant=participant(pid)))
        for conn in (a, b, c):
            conn.websocket.clear()

        await gateway.handle(a, frame(event, roomId="R1", targetParticipantId="b", payload=OFFER))

        assert b.websocket.sent == [
            {"event": event, "data": {"fromParticipantId": "a", "payload": OFFER}},
        ]
        assert a.websocket.sent == []
        assert c.websocket.sent == []

    @pytest.mark.asyncio
    async def test_target_in_other_room_is_not_reached(
        self, gateway: SessionGateway, make_conn: Callable[[str], Connection],
    ) -> None:
        a, b = make_conn("a"), make_conn("b")
        await gateway.handle(a, frame("join-room", roomId="R1", participant=participant("a")))
        await gateway.handle(b, frame("join-room", roomId="R2", participant=participant("b")))
        b.websocket.clear()

        await gateway.handle(
            a, frame("voice-offer", roomId="R1", targetParticipantId="b", payload=OFFER),
        )

        assert b.websocket.sent == []

    @pytest.mark.asyncio
    async def test_unknown_target_is_silently_dropped(
        self, gateway: SessionGateway, make_conn: Callable[[str], Connection],
    ) -> None:
        a = make_conn("a")
        await gateway.handle(a, frame("join-room", roomId="R1", participant=participant("a")))
        a.websocket.clear()

        await gateway.handle(
            a, frame("voice-ice-candidate", roomId="R1", targetParticipantId="ghost", payload={}),
        )

        assert a.websocket.sent == []

    @pytest.mark.asyncio
    async def test_sender_must_be_member(
        self, gateway: SessionGateway, make_conn: Callable[[str], Connection],
    ) -> None:
        a, outsider = make_conn("a"), make_conn("outsider")
        await gateway.handle(a, frame("join-room", roomId="R1", participant=participant("a")))
        await gateway.handle(
            outsider, frame("join-room", roomId="R2", participant=participant("outsider")),
        )
        a.websocket.clear()

        await gateway.handle(
            outsider, frame("voice-offer", roomId="R1", targetParticipantId="a", payload=OFFER),
        )

        assert a.websocket.sent == []
