"""ConnectionManager: registration, fan-out and best-effort delivery."""

import asyncio
import uuid

from zord.services.websocket_manager import (
    ConnectionManager,
    EventTypes,
    RealtimeEvent,
    notification_event,
)


def _event(message: str = "hello") -> RealtimeEvent:
    return notification_event(
        notification_type="like",
        message=message,
        sender_id=uuid.uuid4(),
        sender_name="Asha",
        sender_avatar="",
        post_id=uuid.uuid4(),
    )


class StallingWebSocket:
    """Never completes a send."""

    async def accept(self):
        pass

    async def send_text(self, data: str):
        await asyncio.sleep(60)

    async def close(self, code: int = 1000):
        pass


class TestConnectionRegistry:

    async def test_connect_accepts_and_confirms(self, connections, make_socket):
        socket = make_socket()
        user_id = uuid.uuid4()

        await connections.connect(socket, user_id)

        assert socket.accepted
        assert socket.of_type(EventTypes.CONNECTED)[0]["payload"]["user_id"] == str(user_id)
        assert connections.connection_count(user_id) == 1

    async def test_disconnect_removes_only_that_socket(self, connections, make_socket):
        user_id = uuid.uuid4()
        phone, laptop = make_socket(), make_socket()
        await connections.connect(phone, user_id)
        await connections.connect(laptop, user_id)

        connections.disconnect(phone)
        connections.disconnect(phone)

        assert connections.connection_count(user_id) == 1

    async def test_reregistering_moves_socket_to_new_user(self, connections, make_socket):
        socket = make_socket()
        first, second = uuid.uuid4(), uuid.uuid4()

        connections.register(socket, first)
        connections.register(socket, second)

        assert connections.connection_count(first) == 0
        assert connections.connection_count(second) == 1


class TestDelivery:

    async def test_send_reaches_every_connection_of_user(self, connections, make_socket):
        user_id = uuid.uuid4()
        sockets = [make_socket() for _ in range(3)]
        for socket in sockets:
            await connections.connect(socket, user_id)

        delivered = await connections.send(user_id, _event())

        assert delivered == 3
        for socket in sockets:
            assert len(socket.of_type(EventTypes.NOTIFICATION)) == 1

    async def test_send_to_offline_user_is_noop(self, connections):
        assert await connections.send(uuid.uuid4(), _event()) == 0

    async def test_failing_socket_is_dropped_without_error(self, connections, make_socket):
        user_id = uuid.uuid4()
        healthy = make_socket()
        broken = make_socket()
        await connections.connect(healthy, user_id)
        await connections.connect(broken, user_id)
        broken.fail = True

        delivered = await connections.send(user_id, _event())

        assert delivered == 1
        assert connections.connection_count(user_id) == 1
        assert len(healthy.of_type(EventTypes.NOTIFICATION)) == 1

    async def test_stalled_socket_times_out(self, make_socket):
        manager = ConnectionManager(backend="local", send_timeout=0.05)
        user_id = uuid.uuid4()
        healthy = make_socket()
        manager.register(healthy, user_id)
        manager.register(StallingWebSocket(), user_id)

        delivered = await manager.send(user_id, _event())

        assert delivered == 1
        assert manager.connection_count(user_id) == 1

    async def test_push_returns_before_delivery(self, connections, make_socket):
        user_id = uuid.uuid4()
        socket = make_socket()
        connections.register(socket, user_id)

        connections.push(user_id, _event("queued"))
        assert socket.frames == []

        await connections.drain()
        assert [f["payload"]["message"] for f in socket.frames] == ["queued"]

    async def test_redis_publish_falls_back_to_local_delivery(self, make_socket):
        async def unavailable_redis():
            raise ConnectionError("redis is down")

        manager = ConnectionManager(backend="redis", redis_factory=unavailable_redis)
        user_id = uuid.uuid4()
        socket = make_socket()
        manager.register(socket, user_id)

        manager.push(user_id, _event())
        await manager.drain()

        assert len(socket.of_type(EventTypes.NOTIFICATION)) == 1

    async def test_shutdown_closes_sockets(self, connections, make_socket):
        socket = make_socket()
        await connections.connect(socket, uuid.uuid4())

        await connections.shutdown()

        assert socket.closed


class TestRealtimeEvent:

    def test_json_round_trip_keeps_payload(self):
        event = _event("round trip")
        restored = RealtimeEvent.from_json(event.to_json())

        assert restored.type == EventTypes.NOTIFICATION
        assert restored.payload == event.payload
        assert restored.timestamp == event.timestamp
