"""
Visibility rules: the predicate on plain values, its use on Post rows,
and the SQL filter agreeing with it through FeedService.
"""

import uuid

import pytest
from hypothesis import given, strategies as st

from zord.core.exceptions import AuthorizationContextMissingError, NotFoundError
from zord.models import Post, User, UserRole, Visibility
from zord.services.feed_service import FeedService
from zord.services.post_service import PostService
from zord.services.visibility import Viewer, can_view, filter_visible, is_visible

# =============================================================================
# STRATEGIES
# =============================================================================

colleges = st.sampled_from(["IITD", "IITB", "BITS", "NITK"])
roles = st.sampled_from(list(UserRole))


@st.composite
def viewers(draw, role=roles):
    return Viewer(id=uuid.uuid4(), role=draw(role), college_id=draw(colleges))


# =============================================================================
# PREDICATE PROPERTIES
# =============================================================================

class TestCanView:

    @given(viewer=viewers(), owner_college=colleges)
    def test_everyone_is_visible_to_all(self, viewer, owner_college):
        assert can_view(viewer, Visibility.EVERYONE, owner_college)

    @given(viewer=viewers(), owner_college=colleges)
    def test_college_only_requires_same_college_unless_admin(self, viewer, owner_college):
        expected = viewer.is_admin or viewer.college_id == owner_college
        assert can_view(viewer, Visibility.COLLEGE_ONLY, owner_college) == expected

    @given(viewer=viewers(), owner_college=colleges)
    def test_students_only_requires_same_college_student_unless_admin(self, viewer, owner_college):
        expected = viewer.is_admin or (
            viewer.college_id == owner_college and viewer.role == UserRole.STUDENT
        )
        assert can_view(viewer, Visibility.STUDENTS_ONLY, owner_college) == expected

    def test_teacher_excluded_from_students_only_in_own_college(self):
        teacher = Viewer(id=uuid.uuid4(), role=UserRole.TEACHER, college_id="IITD")
        assert not can_view(teacher, Visibility.STUDENTS_ONLY, "IITD")
        assert can_view(teacher, Visibility.COLLEGE_ONLY, "IITD")

    def test_accepts_raw_visibility_values(self):
        student = Viewer(id=uuid.uuid4(), role=UserRole.STUDENT, college_id="IITD")
        assert can_view(student, "studentsOnly", "IITD")
        assert not can_view(student, "collegeOnly", "IITB")

    def test_unknown_owner_college_is_not_same_college(self):
        student = Viewer(id=uuid.uuid4(), role=UserRole.STUDENT, college_id="IITD")
        assert not can_view(student, Visibility.COLLEGE_ONLY, None)

    @given(viewer=viewers(role=st.sampled_from([UserRole.STUDENT, UserRole.TEACHER])))
    def test_inactive_owner_matches_no_college_tier(self, viewer):
        college = viewer.college_id
        assert can_view(viewer, Visibility.EVERYONE, college, owner_active=False)
        assert not can_view(viewer, Visibility.COLLEGE_ONLY, college, owner_active=False)
        assert not can_view(viewer, Visibility.STUDENTS_ONLY, college, owner_active=False)


class TestViewer:

    def test_missing_user_fails_visibility(self):
        with pytest.raises(AuthorizationContextMissingError):
            Viewer.from_user(None)

    def test_inactive_user_fails_visibility(self):
        user = User(id=uuid.uuid4(), role=UserRole.STUDENT, college_id="IITD", is_active=False)
        with pytest.raises(AuthorizationContextMissingError):
            Viewer.from_user(user)

    def test_is_visible_uses_owner_college(self):
        owner = User(id=uuid.uuid4(), role=UserRole.STUDENT, college_id="IITB", is_active=True)
        post = Post(visibility=Visibility.COLLEGE_ONLY, owner=owner)
        viewer = Viewer(id=uuid.uuid4(), role=UserRole.STUDENT, college_id="IITD")

        assert not is_visible(viewer, post)
        assert filter_visible(viewer, [post]) == []


# =============================================================================
# FEED SCENARIOS
# =============================================================================

class TestFeedVisibility:

    async def _feed_ids(self, db, viewer):
        result = await FeedService(db).get_feed(viewer.id, page=1, limit=50)
        return {p.id for p in result["posts"]}

    async def test_students_only_posts_in_same_college(self, db, make_user, make_post):
        student_a = await make_user("Student A", college_id="X")
        teacher_b = await make_user("Teacher B", college_id="X", role=UserRole.TEACHER)
        student_c = await make_user("Student C", college_id="X")

        post_a = await make_post(student_a, Visibility.STUDENTS_ONLY)
        post_b = await make_post(teacher_b, Visibility.STUDENTS_ONLY)

        seen_by_c = await self._feed_ids(db, student_c)
        assert post_a.id in seen_by_c
        assert post_b.id in seen_by_c

        seen_by_b = await self._feed_ids(db, teacher_b)
        assert post_a.id not in seen_by_b

    async def test_admin_sees_every_tier_across_colleges(self, db, make_user, make_post):
        owner = await make_user(college_id="Y")
        admin = await make_user(college_id="Z", role=UserRole.ADMIN)
        student = await make_user(college_id="Z")
        teacher = await make_user(college_id="Z", role=UserRole.TEACHER)

        posts = [
            await make_post(owner, Visibility.EVERYONE),
            await make_post(owner, Visibility.COLLEGE_ONLY),
            await make_post(owner, Visibility.STUDENTS_ONLY),
        ]

        assert await self._feed_ids(db, admin) == {p.id for p in posts}
        assert await self._feed_ids(db, student) == {posts[0].id}
        assert await self._feed_ids(db, teacher) == {posts[0].id}

    async def test_filter_and_predicate_agree(self, db, make_user, make_post):
        users = [
            await make_user(college_id=college, role=role)
            for college in ("X", "Y")
            for role in (UserRole.STUDENT, UserRole.TEACHER, UserRole.ADMIN)
        ]
        posts = [
            await make_post(owner, visibility)
            for owner in users
            for visibility in Visibility
        ]
        # posts of a deactivated owner must agree too
        users[0].is_active = False
        await db.commit()

        for user in users[1:]:
            viewer = Viewer.from_user(user)
            expected = {p.id for p in posts if is_visible(viewer, p)}
            assert await self._feed_ids(db, user) == expected

    async def test_total_counts_visible_posts(self, db, make_user, make_post):
        owner = await make_user(college_id="X")
        outsider = await make_user(college_id="Y")
        await make_post(owner, Visibility.EVERYONE)
        await make_post(owner, Visibility.COLLEGE_ONLY)

        result = await FeedService(db).get_feed(outsider.id)
        assert result["total"] == 1
        assert result["total_pages"] == 1

    async def test_unknown_viewer_fails_the_feed(self, db):
        with pytest.raises(AuthorizationContextMissingError):
            await FeedService(db).get_feed(uuid.uuid4())

    async def test_inactive_owner_college_posts_hidden_everywhere(
        self, db, connections, make_user, make_post
    ):
        owner = await make_user(college_id="X")
        viewer = await make_user(college_id="X")
        scoped = await make_post(owner, Visibility.COLLEGE_ONLY)
        public = await make_post(owner, Visibility.EVERYONE)

        owner.is_active = False
        await db.commit()

        feed_ids = await self._feed_ids(db, viewer)
        assert scoped.id not in feed_ids
        assert public.id in feed_ids

        posts = PostService(db, connections)
        with pytest.raises(NotFoundError):
            await posts.get_post(viewer, scoped.id)
        with pytest.raises(NotFoundError):
            await posts.toggle_like(viewer, scoped.id)
        with pytest.raises(NotFoundError):
            await posts.add_comment(viewer, scoped.id, "hello")
        assert (await posts.get_post(viewer, public.id)).id == public.id
