"""
Comment service — append-only comment creation for the Post aggregate.

Comments cannot be edited or deleted through the service layer; they go
away with their post (``ON DELETE CASCADE``).  Existence of the post is
checked by the caller (``post_service.add_comment``), not here.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blog.models import Comment

logger = logging.getLogger(__name__)


def _comment_to_dict(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "user_id": comment.user_id,
        "post_id": comment.post_id,
        "comment": comment.comment,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
    }


async def create(db: AsyncSession, user_id: int, post_id: int, comment: str) -> dict:
    """Persist a comment by *user_id* on *post_id* and return it."""
    record = Comment(user_id=user_id, post_id=post_id, comment=comment)
    db.add(record)
    await db.flush()
    logger.debug("User %s commented on post %s", user_id, post_id)
    return _comment_to_dict(record)


async def get_for_post(db: AsyncSession, post_id: int) -> list[dict]:
    """Return the comments on *post_id*, oldest first."""
    q = select(Comment).where(Comment.post_id == post_id).order_by(Comment.id)
    result = await db.execute(q)
    return [_comment_to_dict(c) for c in result.scalars().all()]
