"""
Visibility Resolver

Decides which posts a viewer may see. One predicate, used by the feed,
trending, search, single-post and per-user listings:

    viewer role   everyone   collegeOnly      studentsOnly
    -----------   --------   -----------      ------------
    admin         yes        yes              yes
    student       yes        same college     same college
    teacher       yes        same college     no

`build_visibility_filter` pushes the same rules into the SQL query so the
database does the selection work. College tiers only match posts whose
owner is an active member of the viewer's college, in both the filter
and the predicate. The filter may admit rows the predicate rejects;
every retrieved post is re-checked with `is_visible`, and that check wins.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.sql.elements import ColumnElement

from zord.core.exceptions import AuthorizationContextMissingError
from zord.models import Post, User, UserRole, Visibility
from zord.repositories.user_repo import college_member_ids


@dataclass(frozen=True)
class Viewer:
    """The identity a visibility decision is made for."""
    id: UUID
    role: UserRole
    college_id: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_user(cls, user: Optional[User]) -> "Viewer":
        """
        Build a viewer from a directory record.

        Raises:
            AuthorizationContextMissingError: If the user could not be
                resolved or is deactivated
        """
        if user is None:
            raise AuthorizationContextMissingError("Viewer could not be resolved")
        if not user.is_active:
            raise AuthorizationContextMissingError("Viewer account is deactivated")
        return cls(id=user.id, role=UserRole(user.role), college_id=user.college_id)


def can_view(
    viewer: Viewer,
    visibility: Visibility,
    owner_college_id: Optional[str],
    owner_active: bool = True,
) -> bool:
    """
    The visibility rules on plain values.

    College-scoped tiers only match owners whose account is active.
    """
    if viewer.is_admin:
        return True

    visibility = Visibility(visibility)
    if visibility == Visibility.EVERYONE:
        return True

    same_college = (
        owner_active
        and owner_college_id is not None
        and owner_college_id == viewer.college_id
    )
    if visibility == Visibility.COLLEGE_ONLY:
        return same_college
    if visibility == Visibility.STUDENTS_ONLY:
        return same_college and viewer.role == UserRole.STUDENT
    return False


def is_visible(viewer: Viewer, post: Post) -> bool:
    """Whether viewer may see post. post.owner must be loaded."""
    owner = post.owner
    if owner is None:
        return can_view(viewer, post.visibility, None)
    return can_view(viewer, post.visibility, owner.college_id, owner.is_active is not False)


def filter_visible(viewer: Viewer, posts: Iterable[Post]) -> List[Post]:
    """Keep the posts viewer may see, preserving order."""
    return [post for post in posts if is_visible(viewer, post)]


def build_visibility_filter(viewer: Viewer) -> Optional[ColumnElement]:
    """
    SQL clause restricting Post rows to those viewer may see.

    Returns None for admins (no restriction).
    """
    if viewer.is_admin:
        return None

    college_members = college_member_ids(viewer.college_id)
    clauses = [
        Post.visibility == Visibility.EVERYONE,
        and_(
            Post.visibility == Visibility.COLLEGE_ONLY,
            Post.user_id.in_(college_members),
        ),
    ]
    if viewer.role == UserRole.STUDENT:
        clauses.append(
            and_(
                Post.visibility == Visibility.STUDENTS_ONLY,
                Post.user_id.in_(college_members),
            )
        )
    return or_(*clauses)
