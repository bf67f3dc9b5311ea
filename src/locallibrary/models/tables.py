import uuid

from sqlmodel import Field

from .base import UserBase, BookBase


class User(UserBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    password: str  # argon2 hash


class Book(BookBase, table=True):
    id: int | None = Field(default=None, primary_key=True)
    owner_id: uuid.UUID = Field(foreign_key="user.id", index=True)
