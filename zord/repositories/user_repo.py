"""
User Repository

Data access layer for User model. Doubles as the identity directory
that visibility checks consult for role and college affiliation.
"""

from typing import Dict, Optional, List, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import Select, delete, func, select, or_

from zord.repositories.base import BaseRepository
from zord.models import User, UserRole


def college_member_ids(college_id: str, role: Optional[UserRole] = None) -> Select:
    """
    Select the ids of active users in a college, optionally of one role.

    Returned unexecuted so it can be embedded as an IN (...) subquery.
    """
    query = select(User.id).where(
        User.college_id == college_id,
        User.is_active == True,
    )
    if role is not None:
        query = query.where(User.role == role)
    return query


class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    # =================
    # Identity lookups
    # =================
    async def find_user(self, user_id: UUID) -> Optional[User]:
        """Get a user by id, active or not."""
        return await self.get_by_id(user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by email address."""
        result = await self.db.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def find_users_by_college(self, college_id: str) -> List[UUID]:
        """Ids of all active members of a college."""
        result = await self.db.execute(college_member_ids(college_id))
        return list(result.scalars().all())

    async def find_students_by_college(self, college_id: str) -> List[UUID]:
        """Ids of the active students of a college."""
        result = await self.db.execute(college_member_ids(college_id, UserRole.STUDENT))
        return list(result.scalars().all())

    # =================
    # Listings
    # =================
    async def list_college_members(
        self,
        college_id: str,
        exclude_id: Optional[UUID] = None,
        role: Optional[UserRole] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[User], int]:
        """Active members of a college, newest first."""
        query = select(User).where(
            User.college_id == college_id,
            User.is_active == True,
        )
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        if role is not None:
            query = query.where(User.role == role)
        query = query.order_by(User.created_at.desc())

        return await self._paginate(query, page, limit), await self._count(query)

    async def search(
        self,
        term: str,
        exclude_id: UUID,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[User], int]:
        """Case-insensitive substring match on name, email and bio."""
        pattern = f"%{term}%"
        query = (
            select(User)
            .where(
                User.is_active == True,
                User.id != exclude_id,
                or_(
                    User.name.ilike(pattern),
                    User.email.ilike(pattern),
                    User.bio.ilike(pattern),
                ),
            )
            .order_by(User.name.asc())
        )

        return await self._paginate(query, page, limit), await self._count(query)

    # =================
    # Create user
    # =================
    async def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        college_id: str,
        college_name: str,
        role: UserRole = UserRole.STUDENT,
    ) -> User:
        """Create a new user."""
        return await self.create(
            name=name,
            email=email.lower(),
            password_hash=password_hash,
            college_id=college_id,
            college_name=college_name,
            role=role,
            is_active=True,
        )

    # =================
    # Administration
    # =================
    async def list_accounts(
        self,
        role: Optional[UserRole] = None,
        college_id: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[User], int]:
        """Every account, active or not, newest first."""
        query = select(User)
        if role is not None:
            query = query.where(User.role == role)
        if college_id:
            query = query.where(User.college_id == college_id)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    User.name.ilike(pattern),
                    User.email.ilike(pattern),
                    User.college_name.ilike(pattern),
                )
            )
        query = query.order_by(User.created_at.desc())

        return await self._paginate(query, page, limit), await self._count(query)

    async def count_by_role(self) -> Dict[str, int]:
        result = await self.db.execute(
            select(User.role, func.count(User.id)).group_by(User.role)
        )
        return {UserRole(role).value: count for role, count in result.all()}

    async def count_accounts(self, active_only: bool = False) -> int:
        query = select(func.count(User.id))
        if active_only:
            query = query.where(User.is_active == True)
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def top_colleges(self, limit: int = 10) -> List[Tuple[str, int]]:
        """(college_name, account count), largest first."""
        count = func.count(User.id).label("user_count")
        result = await self.db.execute(
            select(User.college_name, count)
            .group_by(User.college_name)
            .order_by(count.desc(), User.college_name.asc())
            .limit(limit)
        )
        return [(row.college_name, row.user_count) for row in result.all()]

    async def delete_account(self, user_id: UUID) -> bool:
        """Remove the user row. Dependent rows must already be gone."""
        result = await self.db.execute(delete(User).where(User.id == user_id))
        return result.rowcount == 1
