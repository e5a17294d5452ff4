from pydantic import BaseModel, Field

from blog.models import Role


# --- User ---

class UserCreate(BaseModel):
    username: str = Field(max_length=50)
    email: str = Field(max_length=255)
    role: Role = Role.USER


# --- Category ---

class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)


# --- Post ---

class PostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    category_id: int
    private: bool = False


class PostUpdate(BaseModel):
    """Only description and category are mutable; title and slug are fixed."""

    description: str | None = Field(None, min_length=1)
    category_id: int


# --- Comment ---

class CommentCreate(BaseModel):
    slug: str
    user_id: int
    comment: str = Field(min_length=1)
