"""
Category service — categories are referenced by id and must exist.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blog.exceptions import NotFoundError
from blog.models import Category
from blog.schemas import CategoryCreate

logger = logging.getLogger(__name__)


def _category_to_dict(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "created_at": category.created_at.isoformat() if category.created_at else None,
    }


async def get_or_fail(db: AsyncSession, category_id: int) -> Category:
    """Return the Category for *category_id* or raise ``NotFoundError``."""
    category = await db.get(Category, category_id)
    if category is None:
        logger.warning("Category %s not found", category_id)
        raise NotFoundError("Category", category_id)
    return category


async def get_categories(db: AsyncSession) -> list[dict]:
    result = await db.execute(select(Category).order_by(Category.name))
    return [_category_to_dict(c) for c in result.scalars().all()]


async def create_category(db: AsyncSession, data: CategoryCreate) -> dict:
    category = Category(name=data.name)
    db.add(category)
    await db.flush()
    logger.info("Created category %s (%r)", category.id, category.name)
    return _category_to_dict(category)
