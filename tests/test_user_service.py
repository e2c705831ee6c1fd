"""UserService: follow graph, profiles and the college directory."""

import uuid

import pytest
from sqlalchemy import func, select

from zord.core.exceptions import AccessDeniedError, NotFoundError, ValidationFailedError
from zord.models import Notification, UserRole
from zord.repositories.user_repo import UserRepository
from zord.schemas.user import ProfileUpdate
from zord.services.user_service import UserService


class TestFollow:

    async def test_follow_notifies_and_unfollow_does_not(
        self, db, connections, make_user, make_socket
    ):
        asha = await make_user("Asha")
        ravi = await make_user("Ravi")
        socket = make_socket()
        connections.register(socket, ravi.id)
        service = UserService(db, connections)

        assert await service.toggle_follow(asha, ravi.id) is True
        assert await service.toggle_follow(asha, ravi.id) is False
        await connections.drain()

        notifications = (await db.execute(select(func.count(Notification.id)))).scalar_one()
        assert notifications == 1
        assert socket.frames[0]["payload"]["message"] == "Asha started following you"

    async def test_cannot_follow_yourself(self, db, connections, make_user):
        user = await make_user()
        with pytest.raises(ValidationFailedError):
            await UserService(db, connections).toggle_follow(user, user.id)

    async def test_cannot_follow_missing_user(self, db, connections, make_user):
        user = await make_user()
        with pytest.raises(NotFoundError):
            await UserService(db, connections).toggle_follow(user, uuid.uuid4())

    async def test_profile_counts(self, db, connections, make_user):
        a, b, c = await make_user(), await make_user(), await make_user()
        service = UserService(db, connections)
        await service.toggle_follow(a, c.id)
        await service.toggle_follow(b, c.id)
        await service.toggle_follow(c, a.id)

        profile = await service.get_profile(a, c.id)
        assert profile.followers_count == 2
        assert profile.following_count == 1
        assert profile.is_following is True

        followers = await service.list_followers(c.id)
        assert {u.id for u in followers["followers"]} == {a.id, b.id}


class TestProfiles:

    async def test_update_own_profile(self, db, connections, make_user):
        user = await make_user("Old Name")
        profile = await UserService(db, connections).update_profile(
            user, user.id, ProfileUpdate(name="  New   Name ", bio="Hello")
        )
        assert profile.name == "New Name"
        assert profile.bio == "Hello"

    async def test_only_self_or_admin_updates(self, db, connections, make_user):
        user = await make_user()
        other = await make_user()
        admin = await make_user(role=UserRole.ADMIN)
        service = UserService(db, connections)

        with pytest.raises(AccessDeniedError):
            await service.update_profile(other, user.id, ProfileUpdate(bio="hacked"))

        profile = await service.update_profile(admin, user.id, ProfileUpdate(bio="moderated"))
        assert profile.bio == "moderated"

    async def test_college_members_filtered_by_role(self, db, connections, make_user):
        viewer = await make_user(college_id="X")
        await make_user(college_id="X")
        await make_user(college_id="X", role=UserRole.TEACHER)
        await make_user(college_id="Y")
        service = UserService(db, connections)

        everyone = await service.list_college_members(viewer, "X")
        teachers = await service.list_college_members(viewer, "X", role=UserRole.TEACHER)

        assert everyone["total"] == 2
        assert teachers["total"] == 1


class TestDirectory:

    async def test_college_lookups_skip_inactive_and_other_colleges(self, db, make_user):
        student = await make_user(college_id="X")
        teacher = await make_user(college_id="X", role=UserRole.TEACHER)
        await make_user(college_id="X", is_active=False)
        await make_user(college_id="Y")
        repo = UserRepository(db)

        assert set(await repo.find_users_by_college("X")) == {student.id, teacher.id}
        assert await repo.find_students_by_college("X") == [student.id]
