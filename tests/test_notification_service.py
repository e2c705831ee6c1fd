"""
NotificationService: creation, self-suppression, push fan-out,
read state, access control and cleanup with the post.
"""

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from zord.core.exceptions import AccessDeniedError, NotFoundError, ValidationFailedError
from zord.models import Comment, Follow, Like, Notification, NotificationType, User
from zord.repositories.notification_repo import NotificationRepository
from zord.repositories.post_repo import PostRepository
from zord.services.notification_service import NotificationService
from zord.services.post_service import PostService
from zord.services.user_service import UserService


async def _notification_count(db, **filters) -> int:
    query = select(func.count(Notification.id))
    for column, value in filters.items():
        query = query.where(getattr(Notification, column) == value)
    return (await db.execute(query)).scalar_one()


async def _rows(db, model) -> int:
    return (await db.execute(select(func.count(model.id)))).scalar_one()


class TestNotify:

    async def test_self_notification_is_suppressed(self, db, connections, make_user, make_socket):
        user = await make_user()
        socket = make_socket()
        await connections.connect(socket, user.id)

        service = NotificationService(db, connections)
        result = await service.notify(user.id, user, NotificationType.LIKE.value, "liked your post")
        await connections.drain()

        assert result is None
        assert await _notification_count(db) == 0
        assert socket.of_type("notification") == []

    async def test_notify_persists_and_pushes_once(self, db, connections, make_user, make_socket):
        sender = await make_user("Asha")
        receiver = await make_user("Ravi")
        bystander = await make_user("Meera")

        receiver_socket = make_socket()
        bystander_socket = make_socket()
        await connections.connect(receiver_socket, receiver.id)
        await connections.connect(bystander_socket, bystander.id)

        service = NotificationService(db, connections)
        notification = await service.notify(
            receiver.id, sender, NotificationType.FOLLOW.value, "Asha started following you"
        )
        await connections.drain()

        assert notification.seen is False
        assert await _notification_count(db, receiver_id=receiver.id) == 1

        frames = receiver_socket.of_type("notification")
        assert len(frames) == 1
        assert set(frames[0]) == {"type", "payload", "timestamp"}
        assert frames[0]["payload"]["type"] == "follow"
        assert frames[0]["payload"]["sender"] == {
            "id": str(sender.id),
            "name": "Asha",
            "avatar": "",
        }
        assert "postId" not in frames[0]["payload"]
        assert bystander_socket.of_type("notification") == []

    async def test_offline_receiver_still_gets_a_record(self, db, connections, make_user):
        sender = await make_user()
        receiver = await make_user()

        service = NotificationService(db, connections)
        await service.notify(receiver.id, sender, NotificationType.COMMENT.value, "commented")
        await connections.drain()

        assert await service.unread_count(receiver.id) == 1

    async def test_create_manual_rejects_self_and_unknown_receiver(self, db, connections, make_user):
        user = await make_user()
        service = NotificationService(db, connections)

        with pytest.raises(ValidationFailedError):
            await service.create_manual(user, user.id, "like", "hi")
        with pytest.raises(NotFoundError):
            await service.create_manual(user, uuid.uuid4(), "like", "hi")


class TestReadState:

    async def test_mark_seen_is_idempotent(self, db, connections, make_user):
        sender = await make_user()
        receiver = await make_user()
        service = NotificationService(db, connections)
        notification = await service.notify(receiver.id, sender, "like", "liked your post")

        first = await service.mark_seen(notification.id, receiver.id)
        second = await service.mark_seen(notification.id, receiver.id)

        assert first.seen is True
        assert second.seen is True
        assert await service.unread_count(receiver.id) == 0

    async def test_only_receiver_may_mark_or_delete(self, db, connections, make_user):
        sender = await make_user()
        receiver = await make_user()
        service = NotificationService(db, connections)
        notification = await service.notify(receiver.id, sender, "like", "liked your post")

        with pytest.raises(AccessDeniedError):
            await service.mark_seen(notification.id, sender.id)
        with pytest.raises(AccessDeniedError):
            await service.delete_notification(notification.id, sender.id)
        with pytest.raises(NotFoundError):
            await service.mark_seen(uuid.uuid4(), receiver.id)

        await service.delete_notification(notification.id, receiver.id)
        assert await _notification_count(db) == 0

    async def test_mark_all_seen_only_touches_own(self, db, connections, make_user):
        alice = await make_user()
        bob = await make_user()
        carol = await make_user()
        service = NotificationService(db, connections)

        await service.notify(alice.id, carol, "like", "liked your post")
        await service.notify(alice.id, carol, "comment", "commented on your post")
        await service.notify(bob.id, carol, "follow", "started following you")

        assert await service.mark_all_seen(alice.id) == 2
        assert await service.unread_count(alice.id) == 0
        assert await service.unread_count(bob.id) == 1

    async def test_list_notifications_newest_first(self, db, connections, make_user):
        sender = await make_user()
        receiver = await make_user()
        service = NotificationService(db, connections)
        for i in range(3):
            await service.notify(receiver.id, sender, "like", f"like {i}")

        result = await service.list_notifications(receiver.id, page=1, limit=2)

        assert result["total"] == 3
        assert result["total_pages"] == 2
        assert result["unread_count"] == 3
        assert len(result["notifications"]) == 2


class TestPostCleanup:

    async def test_deleting_post_deletes_its_notifications(
        self, db, connections, make_user, make_post
    ):
        owner = await make_user()
        fans = [await make_user() for _ in range(3)]
        post = await make_post(owner)

        posts = PostService(db, connections)
        for fan in fans:
            await posts.toggle_like(fan, post.id)
        await connections.drain()
        assert await _notification_count(db, post_id=post.id) == 3

        await posts.delete_post(owner, post.id)

        assert await _notification_count(db, post_id=post.id) == 0
        assert await _notification_count(db) == 0


class TestFailedInsert:
    """A notification that cannot be stored takes its action down with it."""

    @pytest.fixture
    def broken_insert(self, monkeypatch):
        async def _create(self, **kwargs):
            raise SQLAlchemyError("notification insert failed")

        monkeypatch.setattr(NotificationRepository, "create", _create)

    @pytest.fixture
    async def scene(self, make_user, make_post, make_socket, connections):
        owner = await make_user()
        fan = await make_user()
        post = await make_post(owner)
        socket = make_socket()
        connections.register(socket, owner.id)
        return owner, fan, post, socket

    async def test_like_is_rolled_back(
        self, db, session_factory, connections, scene, broken_insert
    ):
        owner, fan, post, socket = scene

        async with session_factory() as session:
            actor = await session.get(User, fan.id)
            with pytest.raises(SQLAlchemyError):
                await PostService(session, connections).toggle_like(actor, post.id)
        await connections.drain()

        assert await PostRepository(db).get_counters(post.id) == (0, 0)
        assert await _rows(db, Like) == 0
        assert await _notification_count(db) == 0
        assert socket.frames == []

    async def test_comment_is_rolled_back(
        self, db, session_factory, connections, scene, broken_insert
    ):
        owner, fan, post, socket = scene

        async with session_factory() as session:
            actor = await session.get(User, fan.id)
            with pytest.raises(SQLAlchemyError):
                await PostService(session, connections).add_comment(actor, post.id, "nice")
        await connections.drain()

        assert await PostRepository(db).get_counters(post.id) == (0, 0)
        assert await _rows(db, Comment) == 0
        assert socket.frames == []

    async def test_follow_is_rolled_back(
        self, db, session_factory, connections, scene, broken_insert
    ):
        owner, fan, post, socket = scene

        async with session_factory() as session:
            actor = await session.get(User, fan.id)
            with pytest.raises(SQLAlchemyError):
                await UserService(session, connections).toggle_follow(actor, owner.id)
        await connections.drain()

        assert await _rows(db, Follow) == 0
        assert socket.frames == []
