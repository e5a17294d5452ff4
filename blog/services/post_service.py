"""
Post service — business logic for the Post aggregate.

Design notes
------------
- The service owns the Post store: every query against ``posts`` lives
  here.  Categories, comments and reactions are reached through their own
  service modules.
- Relationships are ``lazy="noload"``; author and category are joined
  explicitly with ``joinedload`` wherever a post is returned.
- Slugs are de-duplicated by counting existing slugs that *contain* the
  new base slug (case-insensitive) and suffixing that count.  The count is
  over-inclusive: ``hello`` also matches ``hello-world``, so the suffix can
  skip numbers.  Existing slugs depend on this numbering, so it stays.
- Nothing is cached; every call re-reads the database.
- Service functions flush but do not commit; the transaction boundary is
  owned by the caller (``blog.database.session_scope``).
"""
import logging
import re

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from blog.exceptions import NotFoundError, ValidationFailure
from blog.models import Post, Reaction, Role
from blog.schemas import CommentCreate, PostCreate, PostUpdate
from blog.services import category_service, comment_service, reaction_service

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_SLUG_STRIP_RE = re.compile(r"[^\w\s-]")
_SLUG_SPACE_RE = re.compile(r"[\s_]+")
_SLUG_DASH_RE = re.compile(r"-+")


def slugify(text: str) -> str:
    """Return a URL-safe, lowercase slug derived from *text*."""
    text = _SLUG_STRIP_RE.sub("", text.lower().strip())
    text = _SLUG_SPACE_RE.sub("-", text)
    return _SLUG_DASH_RE.sub("-", text).strip("-")


def is_admin_role(role: str | None) -> bool:
    return role == Role.ADMIN.value


def is_visible_to(post: Post, role: str | None) -> bool:
    """A non-admin sees a post iff it is not private; admins see everything."""
    return is_admin_role(role) or not post.private


def _with_relations(q):
    return q.options(joinedload(Post.author), joinedload(Post.category))


def _visibility_filter(q, role: str | None):
    if is_admin_role(role):
        return q
    return q.where(Post.private.is_(False))


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _serialize_author(author) -> dict | None:
    if author is None:
        return None
    return {
        "id": author.id,
        "username": author.username,
        "email": author.email,
        "role": author.role,
    }


def _serialize_category(category) -> dict | None:
    if category is None:
        return None
    return {"id": category.id, "name": category.name}


def _post_to_dict(post: Post) -> dict:
    """Serialise a Post ORM instance (with whatever relations are loaded)."""
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "description": post.description,
        "author_id": post.author_id,
        "category_id": post.category_id,
        "private": post.private,
        "created_at": post.created_at.isoformat() if post.created_at else None,
        "updated_at": post.updated_at.isoformat() if post.updated_at else None,
        "author": _serialize_author(post.author),
        "category": _serialize_category(post.category),
    }


# ---------------------------------------------------------------------------
# Post store queries
# ---------------------------------------------------------------------------

async def _load_post(db: AsyncSession, *criteria) -> Post | None:
    q = _with_relations(select(Post).where(*criteria)).order_by(Post.id)
    result = await db.execute(q.execution_options(populate_existing=True))
    return result.unique().scalars().first()


async def _get_by_slug_or_fail(db: AsyncSession, slug: str) -> Post:
    post = await _load_post(db, Post.slug == slug)
    if post is None:
        logger.warning("Post with slug %r not found", slug)
        raise NotFoundError("Post", slug)
    return post


async def count_slug_matches(db: AsyncSession, slug: str) -> int:
    """
    Count posts whose slug contains *slug* as a case-insensitive
    substring.  Wildcards in *slug* are matched literally.
    """
    q = (
        select(func.count())
        .select_from(Post)
        .where(Post.slug.icontains(slug, autoescape=True))
    )
    return (await db.execute(q)).scalar_one()


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def list_all(db: AsyncSession) -> list[dict]:
    """Return every post with author and category joined, unfiltered."""
    result = await db.execute(_with_relations(select(Post)).order_by(Post.id))
    return [_post_to_dict(p) for p in result.unique().scalars().all()]


async def create(db: AsyncSession, author_id: int, data: PostCreate) -> dict:
    """
    Create a post by *author_id* and return it.

    Raises ``NotFoundError`` when the category does not exist and
    ``ValidationFailure`` when the title yields an empty slug.
    """
    category = await category_service.get_or_fail(db, data.category_id)

    base = slugify(data.title)
    if not base:
        raise ValidationFailure(f"Title {data.title!r} does not produce a slug")

    matches = await count_slug_matches(db, base)
    slug = f"{base}-{matches}" if matches > 0 else base

    post = Post(
        title=data.title,
        slug=slug,
        description=data.description,
        author_id=author_id,
        category_id=category.id,
        private=data.private,
    )
    db.add(post)
    await db.flush()
    logger.info("Created post %s with slug %r", post.id, slug)

    return _post_to_dict(await _load_post(db, Post.id == post.id))


async def update(db: AsyncSession, post_id: int, data: PostUpdate) -> dict:
    """
    Change the description and/or category of *post_id*.

    Title and slug are never touched.  Raises ``NotFoundError`` for an
    unknown category or post.
    """
    category = await category_service.get_or_fail(db, data.category_id)

    post = await _load_post(db, Post.id == post_id)
    if post is None:
        logger.warning("Post %s not found for update", post_id)
        raise NotFoundError("Post", post_id)

    changes = data.model_dump(exclude_unset=True, exclude={"category_id"})
    if changes.get("description") is not None:
        post.description = changes["description"]
    post.category = category

    await db.flush()
    logger.info("Updated post %s", post_id)
    return _post_to_dict(post)


async def delete_post(db: AsyncSession, post_id: int) -> dict:
    """Delete *post_id* and return it as it was.  Raises ``NotFoundError``."""
    post = await _load_post(db, Post.id == post_id)
    if post is None:
        logger.warning("Post %s not found for delete", post_id)
        raise NotFoundError("Post", post_id)

    removed = _post_to_dict(post)
    await db.delete(post)
    await db.flush()
    logger.info("Deleted post %s", post_id)
    return removed


async def get_by_slug(db: AsyncSession, slug: str) -> dict | None:
    """Exact slug lookup.  Returns None when there is no such post."""
    post = await _load_post(db, Post.slug == slug)
    return _post_to_dict(post) if post is not None else None


async def add_comment(db: AsyncSession, data: CommentCreate) -> dict:
    """Comment on the post identified by ``data.slug`` and return the post."""
    post = await _get_by_slug_or_fail(db, data.slug)
    await comment_service.create(db, user_id=data.user_id, post_id=post.id, comment=data.comment)
    return _post_to_dict(post)


async def like(db: AsyncSession, user_id: int, slug: str) -> dict:
    post = await _get_by_slug_or_fail(db, slug)
    await reaction_service.update_or_create(db, user_id=user_id, post_id=post.id, liked=True)
    return _post_to_dict(post)


async def favorite(db: AsyncSession, user_id: int, slug: str) -> dict:
    post = await _get_by_slug_or_fail(db, slug)
    await reaction_service.update_or_create(db, user_id=user_id, post_id=post.id, favorite=True)
    return _post_to_dict(post)


async def list_with_reaction_counts(db: AsyncSession, viewer_role: str | None) -> list[dict]:
    """
    Return the posts visible to *viewer_role*, each annotated with
    ``likes`` and ``favorites`` counts.

    Counting is done in one grouped query: posts LEFT JOIN reactions,
    GROUP BY post id, summing the two facets separately.
    """
    likes = func.coalesce(func.sum(case((Reaction.liked.is_(True), 1), else_=0)), 0)
    favorites = func.coalesce(func.sum(case((Reaction.favorite.is_(True), 1), else_=0)), 0)

    counts = (
        select(
            Post.id.label("post_id"),
            likes.label("likes"),
            favorites.label("favorites"),
        )
        .outerjoin(Reaction, Reaction.post_id == Post.id)
        .group_by(Post.id)
        .subquery()
    )

    q = (
        _with_relations(select(Post, counts.c.likes, counts.c.favorites))
        .join(counts, counts.c.post_id == Post.id)
        .order_by(Post.id)
    )
    q = _visibility_filter(q, viewer_role)

    result = await db.execute(q)
    posts = []
    for post, like_count, favorite_count in result.unique().all():
        data = _post_to_dict(post)
        data["likes"] = int(like_count)
        data["favorites"] = int(favorite_count)
        posts.append(data)
    return posts


async def list_private_aware(db: AsyncSession, user) -> list[dict]:
    """All posts for admins; only non-private posts for everyone else."""
    q = _visibility_filter(_with_relations(select(Post)).order_by(Post.id), user.role)
    result = await db.execute(q)
    return [_post_to_dict(p) for p in result.unique().scalars().all()]


# ---------------------------------------------------------------------------
# Authorship predicates
# ---------------------------------------------------------------------------

async def is_owner_or_admin(db: AsyncSession, user, post_id: int) -> bool:
    """True for admins, or when *user* authored the post *post_id*."""
    if is_admin_role(user.role):
        return True
    q = select(Post.id).where(Post.id == post_id, Post.author_id == user.id)
    return (await db.execute(q)).first() is not None


async def is_slug_author(db: AsyncSession, user, slug: str) -> bool:
    """True when a post with *slug* exists and *user* authored it."""
    q = select(Post.id).where(Post.slug == slug, Post.author_id == user.id).limit(1)
    return (await db.execute(q)).first() is not None


async def is_forbidden(db: AsyncSession, user, slug: str) -> bool:
    """
    True when *user* authored the post with *slug*.

    The name reads as the opposite of what it returns.  Callers that want
    "may not act on this post" should use ``is_not_slug_author``.
    """
    return await is_slug_author(db, user, slug)


async def is_not_slug_author(db: AsyncSession, user, slug: str) -> bool:
    return not await is_slug_author(db, user, slug)
