from .base import UserBase, BookBase, PLACEHOLDER_COVER, cover_or_placeholder
from .tables import User, Book
from .payloads import (
    RegisterPayload,
    LoginPayload,
    UserInfoResp,
    AuthResp,
    BookAddPayload,
    BookModifyPayload,
    BookResp,
    MessageResp,
)
