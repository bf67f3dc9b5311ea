import uuid

from pydantic import BaseModel, ConfigDict

from .base import UserBase, BookBase, Email, TrimmedStr


class RegisterPayload(UserBase):
    password: str  # plaintext


class LoginPayload(BaseModel):
    email: Email
    password: str


class UserInfoResp(UserBase):
    id: uuid.UUID


class AuthResp(BaseModel):
    token: str
    user: UserInfoResp


class BookAddPayload(BookBase):
    pass


class BookModifyPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: TrimmedStr | None = None
    author: TrimmedStr | None = None
    category: TrimmedStr | None = None
    cover: TrimmedStr | None = None


class BookResp(BookBase):
    id: int
    owner_id: uuid.UUID


class MessageResp(BaseModel):
    message: str
