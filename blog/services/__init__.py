# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single aggregate:
#
#   post_service      — create/update/delete, slug search, reactions, visibility
#   category_service  — lookup-or-fail plus simple CRUD for Category
#   comment_service   — append-only comment creation for Post
#   reaction_service  — atomic like/favorite upsert for (user, post)
#   user_service      — CRUD for User
#
# All service functions accept an AsyncSession as their first argument
# so that the caller controls the transaction boundary via
# ``blog.database.session_scope``.
