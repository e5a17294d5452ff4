"""Database seeder for local development."""
import asyncio
import argparse
import logging
import random
import time

from blog.config import configure_logging
from blog.database import engine, session_scope, Base
from blog.models import Role
from blog.schemas import CategoryCreate, CommentCreate, PostCreate, UserCreate
from blog.services import category_service, post_service, user_service

logger = logging.getLogger("seed")

CATEGORIES = ["python", "databases", "devops", "testing", "security", "frontend"]

TOPICS = ["async io", "query planning", "connection pools", "fixtures", "migrations", "caching"]


async def seed(small: bool = False) -> None:
    num_users = 5 if small else 25
    num_posts = 20 if small else 500
    private_ratio = 0.1

    logger.info("Seeding: %d users, %d posts", num_users, num_posts)
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with session_scope() as session:
        categories = [
            await category_service.create_category(session, CategoryCreate(name=name))
            for name in CATEGORIES
        ]

        users = []
        for i in range(num_users):
            role = Role.ADMIN if i == 0 else Role.USER
            users.append(
                await user_service.create_user(
                    session,
                    UserCreate(username=f"user_{i:04d}", email=f"user_{i:04d}@example.com", role=role),
                )
            )

        total_comments = 0
        for i in range(num_posts):
            # Titles repeat on purpose so slug suffixing gets exercised.
            post = await post_service.create(
                session,
                random.choice(users).id,
                PostCreate(
                    title=f"Notes on {random.choice(TOPICS)}",
                    description=f"Post {i}: what I learned this week.",
                    category_id=random.choice(categories)["id"],
                    private=random.random() < private_ratio,
                ),
            )

            for reader in random.sample(users, k=random.randint(0, min(5, len(users)))):
                if random.random() < 0.7:
                    await post_service.like(session, reader.id, post["slug"])
                if random.random() < 0.3:
                    await post_service.favorite(session, reader.id, post["slug"])
                if random.random() < 0.5:
                    await post_service.add_comment(
                        session,
                        CommentCreate(slug=post["slug"], user_id=reader.id, comment="Nice write-up."),
                    )
                    total_comments += 1

    elapsed = time.perf_counter() - start
    logger.info(
        "Seeding complete in %.1fs: %d users, %d categories, %d posts, %d comments",
        elapsed, num_users, len(CATEGORIES), num_posts, total_comments,
    )


def main():
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (20 posts)")
    args = parser.parse_args()
    configure_logging()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
