"""
Collaborator store tests — categories, comments, reactions, users, and
the ``session_scope`` transaction helper.
"""
import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blog.database import session_scope
from blog.exceptions import NotFoundError
from blog.models import Category, Post, Role
from blog.schemas import CategoryCreate, UserCreate
from blog.services import category_service, comment_service, reaction_service, user_service



async def _post(db: AsyncSession, author, category: dict, slug: str = "p") -> Post:
    post = Post(title=slug, slug=slug, description="D", author_id=author.id, category_id=category["id"])
    db.add(post)
    await db.flush()
    return post


# ---------------------------------------------------------------------------
# category_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_or_fail(db_session: AsyncSession, category):
    found = await category_service.get_or_fail(db_session, category["id"])
    assert found.name == "python"


@pytest.mark.asyncio
async def test_get_or_fail_missing(db_session: AsyncSession):
    with pytest.raises(NotFoundError) as exc_info:
        await category_service.get_or_fail(db_session, 424242)
    assert exc_info.value.key == 424242
    assert "Category not found" in str(exc_info.value)


@pytest.mark.asyncio
async def test_get_categories_sorted_by_name(db_session: AsyncSession):
    for name in ("zeta", "alpha"):
        await category_service.create_category(db_session, CategoryCreate(name=name))
    names = [c["name"] for c in await category_service.get_categories(db_session)]
    assert names == ["alpha", "zeta"]


# ---------------------------------------------------------------------------
# comment_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_comments_are_appended_in_order(db_session: AsyncSession, author, category):
    post = await _post(db_session, author, category)
    await comment_service.create(db_session, user_id=author.id, post_id=post.id, comment="first")
    await comment_service.create(db_session, user_id=author.id, post_id=post.id, comment="second")
    comments = await comment_service.get_for_post(db_session, post.id)
    assert [c["comment"] for c in comments] == ["first", "second"]
    assert all(c["created_at"] is not None for c in comments)


# ---------------------------------------------------------------------------
# reaction_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_or_create_leaves_other_facet(db_session: AsyncSession, author, reader, category):
    post = await _post(db_session, author, category)
    await reaction_service.update_or_create(db_session, reader.id, post.id, favorite=True)
    await reaction_service.update_or_create(db_session, reader.id, post.id, liked=True)
    await reaction_service.update_or_create(db_session, reader.id, post.id, liked=True)

    reactions = await reaction_service.get_all(db_session)
    assert len(reactions) == 1
    assert reactions[0]["liked"] is True
    assert reactions[0]["favorite"] is True


@pytest.mark.asyncio
async def test_update_or_create_can_clear_a_facet(db_session: AsyncSession, author, reader, category):
    post = await _post(db_session, author, category)
    await reaction_service.update_or_create(db_session, reader.id, post.id, liked=True, favorite=True)
    assert (await reaction_service.get_all(db_session))[0]["liked"] is True

    await reaction_service.update_or_create(db_session, reader.id, post.id, liked=False)
    reaction = (await reaction_service.get_all(db_session))[0]
    assert reaction["liked"] is False
    assert reaction["favorite"] is True


@pytest.mark.asyncio
async def test_update_or_create_without_facets(db_session: AsyncSession, author, reader, category):
    post = await _post(db_session, author, category)
    await reaction_service.update_or_create(db_session, reader.id, post.id)
    await reaction_service.update_or_create(db_session, reader.id, post.id)
    assert await reaction_service.get_all(db_session) == [
        {"user_id": reader.id, "post_id": post.id, "liked": False, "favorite": False}
    ]


@pytest.mark.asyncio
async def test_reactions_are_per_user(db_session: AsyncSession, author, reader, category):
    post = await _post(db_session, author, category)
    await reaction_service.update_or_create(db_session, reader.id, post.id, liked=True)
    await reaction_service.update_or_create(db_session, author.id, post.id, liked=True)
    assert len(await reaction_service.get_all(db_session)) == 2


# ---------------------------------------------------------------------------
# user_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_and_get_user(db_session: AsyncSession):
    user = await user_service.create_user(
        db_session, UserCreate(username="boss", email="boss@example.com", role=Role.ADMIN)
    )
    fetched = await user_service.get_user(db_session, user.id)
    assert fetched is not None
    assert fetched.is_admin
    assert await user_service.get_user(db_session, 99999) is None


@pytest.mark.asyncio
async def test_get_users(db_session: AsyncSession, author, reader):
    users = await user_service.get_users(db_session)
    assert {u["username"] for u in users} == {"author", "reader"}
    assert all(u["role"] == "user" for u in users)


@pytest.mark.asyncio
async def test_duplicate_username_propagates(db_session: AsyncSession, author):
    with pytest.raises(IntegrityError):
        await user_service.create_user(
            db_session, UserCreate(username="author", email="other@example.com")
        )


# ---------------------------------------------------------------------------
# session_scope
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_session_scope_commits(session_factory):
    async with session_scope(session_factory) as session:
        await category_service.create_category(session, CategoryCreate(name="committed"))

    async with session_factory() as session:
        names = (await session.execute(select(Category.name))).scalars().all()
    assert names == ["committed"]


@pytest.mark.asyncio
async def test_session_scope_rolls_back_on_error(session_factory):
    with pytest.raises(NotFoundError):
        async with session_scope(session_factory) as session:
            await category_service.create_category(session, CategoryCreate(name="discarded"))
            await category_service.get_or_fail(session, 99999)

    async with session_factory() as session:
        names = (await session.execute(select(Category.name))).scalars().all()
    assert names == []
