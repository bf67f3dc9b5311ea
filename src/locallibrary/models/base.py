from typing import Annotated

from pydantic import StringConstraints, field_validator
from sqlmodel import Field, SQLModel


PLACEHOLDER_COVER = "https://via.placeholder.com/300x400?text=No+Cover"

TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True)]
Email = Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True)]


def cover_or_placeholder(cover: str | None) -> str:
    """Cover URL to render, falling back to the placeholder image"""
    return cover or PLACEHOLDER_COVER


class UserBase(SQLModel):
    email: Email = Field(unique=True, index=True)
    name: TrimmedStr | None = None


class BookBase(SQLModel):
    title: TrimmedStr
    author: TrimmedStr
    category: TrimmedStr = Field(index=True)
    cover: TrimmedStr | None = None

    @field_validator("cover", mode="before")
    @classmethod
    def blank_cover_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def display_cover(self) -> str:
        return cover_or_placeholder(self.cover)
