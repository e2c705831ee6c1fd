"""AdminService: role and status changes, account deletion, listings and stats."""

import uuid

import pytest
from sqlalchemy import func, select

from zord.core.exceptions import (
    AccessDeniedError,
    AuthorizationContextMissingError,
    NotFoundError,
    ValidationFailedError,
)
from zord.models import Comment, Follow, Like, Notification, Post, User, UserRole, Visibility
from zord.repositories.post_repo import PostRepository
from zord.services.admin_service import AdminService
from zord.services.feed_service import FeedService
from zord.services.post_service import PostService
from zord.services.user_service import UserService


async def _rows(db, model) -> int:
    return (await db.execute(select(func.count(model.id)))).scalar_one()


@pytest.fixture
async def admin(make_user):
    return await make_user("Admin", college_id="HQ", role=UserRole.ADMIN)


class TestRoles:

    async def test_admin_changes_role(self, db, connections, admin, make_user):
        user = await make_user()

        updated = await AdminService(db, connections).update_role(admin, user.id, UserRole.TEACHER)

        assert updated.role == UserRole.TEACHER
        assert (await db.get(User, user.id)).role == UserRole.TEACHER

    async def test_non_admin_cannot_change_roles(self, db, connections, make_user):
        teacher = await make_user(role=UserRole.TEACHER)
        student = await make_user()

        with pytest.raises(AccessDeniedError):
            await AdminService(db, connections).update_role(teacher, student.id, UserRole.ADMIN)
        assert student.role == UserRole.STUDENT

    async def test_unknown_user(self, db, connections, admin):
        with pytest.raises(NotFoundError):
            await AdminService(db, connections).update_role(admin, uuid.uuid4(), UserRole.TEACHER)

    async def test_promoted_admin_sees_every_tier(self, db, connections, admin, make_user, make_post):
        owner = await make_user(college_id="X")
        outsider = await make_user(college_id="Y")
        hidden = await make_post(owner, Visibility.STUDENTS_ONLY)
        feed = FeedService(db)

        before = await feed.get_feed(outsider.id, limit=50)
        assert hidden.id not in {p.id for p in before["posts"]}

        await AdminService(db, connections).update_role(admin, outsider.id, UserRole.ADMIN)

        after = await feed.get_feed(outsider.id, limit=50)
        assert hidden.id in {p.id for p in after["posts"]}


class TestStatus:

    async def test_cannot_change_own_status(self, db, connections, admin):
        with pytest.raises(ValidationFailedError):
            await AdminService(db, connections).set_status(admin, admin.id, False)
        assert admin.is_active is True

    async def test_non_admin_cannot_change_status(self, db, connections, make_user):
        student = await make_user()
        other = await make_user()

        with pytest.raises(AccessDeniedError):
            await AdminService(db, connections).set_status(student, other.id, False)

    async def test_deactivation_hides_college_posts_until_reactivated(
        self, db, connections, admin, make_user, make_post
    ):
        owner = await make_user(college_id="X")
        peer = await make_user(college_id="X")
        scoped = await make_post(owner, Visibility.COLLEGE_ONLY)
        service = AdminService(db, connections)
        posts = PostService(db, connections)

        await service.set_status(admin, owner.id, False)

        with pytest.raises(NotFoundError):
            await posts.get_post(peer, scoped.id)
        with pytest.raises(AuthorizationContextMissingError):
            await FeedService(db).get_feed(owner.id)

        await service.set_status(admin, owner.id, True)

        assert (await posts.get_post(peer, scoped.id)).id == scoped.id


class TestDeleteUser:

    async def test_removes_account_and_gives_counters_back(
        self, db, connections, admin, make_user, make_post
    ):
        leaving = await make_user()
        staying = await make_user()
        own_post = await make_post(leaving)
        other_post = await make_post(staying)

        posts = PostService(db, connections)
        users = UserService(db, connections)
        await posts.toggle_like(leaving, other_post.id)
        await posts.add_comment(leaving, other_post.id, "great")
        await posts.toggle_like(staying, own_post.id)
        await posts.add_comment(staying, own_post.id, "thanks")
        await users.toggle_follow(leaving, staying.id)
        await users.toggle_follow(staying, leaving.id)
        await connections.drain()

        await AdminService(db, connections).delete_user(admin, leaving.id)

        assert await db.get(User, leaving.id) is None
        assert await db.get(Post, own_post.id) is None
        assert await PostRepository(db).get_counters(other_post.id) == (0, 0)
        assert await _rows(db, Like) == 0
        assert await _rows(db, Comment) == 0
        assert await _rows(db, Follow) == 0
        assert await _rows(db, Notification) == 0

    async def test_cannot_delete_self(self, db, connections, admin):
        with pytest.raises(ValidationFailedError):
            await AdminService(db, connections).delete_user(admin, admin.id)


class TestListings:

    async def test_list_users_filters_and_counts_roles(self, db, connections, admin, make_user):
        await make_user("Priya", college_id="X")
        await make_user("Kabir", college_id="X", role=UserRole.TEACHER)
        await make_user("Isha", college_id="Y", is_active=False)
        service = AdminService(db, connections)

        everyone = await service.list_users(admin)
        assert everyone["total"] == 4
        assert everyone["stats"] == {"admin": 1, "student": 2, "teacher": 1}

        college_x = await service.list_users(admin, college_id="X")
        assert {u.name for u in college_x["users"]} == {"Priya", "Kabir"}

        searched = await service.list_users(admin, search="ish")
        assert [u.name for u in searched["users"]] == ["Isha"]
        assert searched["users"][0].is_active is False

    async def test_list_posts_includes_every_tier(self, db, connections, admin, make_user, make_post):
        owner = await make_user(college_id="X")
        await make_post(owner, Visibility.EVERYONE)
        await make_post(owner, Visibility.STUDENTS_ONLY)
        service = AdminService(db, connections)

        result = await service.list_posts(admin)
        assert result["total"] == 2
        assert result["stats"] == {"everyone": 1, "studentsOnly": 1}

        tier = await service.list_posts(admin, visibility=Visibility.STUDENTS_ONLY)
        assert [p.visibility for p in tier["posts"]] == [Visibility.STUDENTS_ONLY]

    async def test_non_admin_cannot_list(self, db, connections, make_user):
        student = await make_user()
        with pytest.raises(AccessDeniedError):
            await AdminService(db, connections).list_users(student)


class TestStats:

    async def test_platform_and_college_counts(self, db, connections, admin, make_user, make_post):
        student = await make_user(college_id="X")
        await make_user(college_id="X", role=UserRole.TEACHER)
        await make_user(college_id="X", is_active=False)
        await make_post(student, Visibility.COLLEGE_ONLY)
        await make_post(student, Visibility.EVERYONE)

        stats = await AdminService(db, connections).get_stats(admin, college_id="X")

        assert stats.overview.total_users == 4
        assert stats.overview.active_users == 3
        assert stats.overview.total_posts == 2
        assert stats.posts_by_visibility == {"collegeOnly": 1, "everyone": 1}
        assert sum(day.posts for day in stats.recent_activity) == 2
        assert stats.top_colleges[0].college_name == "College X"
        assert stats.top_colleges[0].user_count == 3
        # only active accounts count towards college visibility
        assert stats.college.members == 2
        assert stats.college.students == 1
