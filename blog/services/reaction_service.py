"""
Reaction service — like/favorite state per (user, post).

A reaction record carries two independent facets, ``liked`` and
``favorite``.  ``update_or_create`` is a single
``INSERT ... ON CONFLICT (user_id, post_id) DO UPDATE`` statement, so
concurrent like/favorite calls from the same user can never produce two
records for one post.  Only the facets that are passed are written; the
other facet keeps its stored value.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from blog.models import Reaction

logger = logging.getLogger(__name__)

# Dialects whose ``insert()`` construct supports ``on_conflict_do_update``.
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _reaction_to_dict(reaction: Reaction) -> dict:
    return {
        "user_id": reaction.user_id,
        "post_id": reaction.post_id,
        "liked": reaction.liked,
        "favorite": reaction.favorite,
    }


async def update_or_create(
    db: AsyncSession,
    user_id: int,
    post_id: int,
    liked: bool | None = None,
    favorite: bool | None = None,
) -> None:
    """
    Upsert the reaction for (*user_id*, *post_id*), setting only the
    facets that are not None.
    """
    dialect = db.get_bind().dialect.name
    try:
        insert = _UPSERT_INSERTS[dialect]
    except KeyError:
        raise NotImplementedError(f"Reaction upsert is not supported on {dialect!r}") from None

    facets = {}
    if liked is not None:
        facets["liked"] = liked
    if favorite is not None:
        facets["favorite"] = favorite

    stmt = insert(Reaction).values(
        user_id=user_id,
        post_id=post_id,
        liked=facets.get("liked", False),
        favorite=facets.get("favorite", False),
    )
    if facets:
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "post_id"],
            set_={**facets, "updated_at": datetime.now(timezone.utc)},
        )
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=["user_id", "post_id"])

    await db.execute(stmt)
    logger.debug("Reaction upsert user=%s post=%s %s", user_id, post_id, facets)


async def get_all(db: AsyncSession) -> list[dict]:
    """Return every reaction record."""
    # populate_existing: upserts bypass the identity map, so refresh any
    # Reaction instances this session already holds.
    q = select(Reaction).order_by(Reaction.id).execution_options(populate_existing=True)
    result = await db.execute(q)
    return [_reaction_to_dict(r) for r in result.scalars().all()]
