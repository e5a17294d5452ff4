"""
User service — CRUD operations for the User aggregate.

Users are an external concern for the post core: it only reads their id
and role.  This module exists so that posts, comments and reactions have
someone to point at.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blog.models import User
from blog.schemas import UserCreate


def _user_to_dict(user: User) -> dict:
    """Serialise a User ORM instance to a plain dict."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


async def get_users(db: AsyncSession) -> list[dict]:
    """Return all users ordered by creation date (newest first)."""
    q = select(User).order_by(User.created_at.desc(), User.id.desc())

    result = await db.execute(q)
    return [_user_to_dict(u) for u in result.scalars().all()]


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    """
    Return the User ORM instance for *user_id*, or None.

    The instance (not a dict) is returned because the post service's
    visibility and authorship checks take a user object.
    """
    return await db.get(User, user_id)


async def create_user(db: AsyncSession, data: UserCreate) -> User:
    """
    Create a new user.

    Email and username uniqueness is enforced at the database level; the
    resulting ``IntegrityError`` propagates to the caller.
    """
    user = User(username=data.username, email=data.email, role=data.role.value)
    db.add(user)
    await db.flush()
    return user
