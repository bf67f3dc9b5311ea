import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Mapping

from .config import Settings
from .errors import (
    InvalidCredentials,
    InvalidRequest,
    InvalidToken,
    MissingField,
    NotFound,
)
from .models import Book, User
from .security import (
    burn_verification,
    decode_token,
    hash_password,
    issue_token,
    verify_password,
)
from .stores import BookStore, CredentialStore

logger = logging.getLogger(__name__)

BOOK_REQUIRED_FIELDS = ("title", "author", "category")
BOOK_PATCHABLE_FIELDS = BOOK_REQUIRED_FIELDS + ("cover",)
# ids are signed 64-bit integers in the database
MAX_BOOK_ID = 2**63 - 1


@dataclass(frozen=True)
class TokenClaims:
    user_id: uuid.UUID
    email: str


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: User


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


class AuthService:
    def __init__(self, users: CredentialStore, settings: Settings) -> None:
        self.users = users
        self.settings = settings

    def issue(self, user: User) -> str:
        return issue_token(
            {"sub": str(user.id), "email": user.email},
            self.settings.jwt_secret,
            algorithm=self.settings.jwt_algorithm,
            expires_delta=timedelta(minutes=self.settings.token_expire_minutes),
        )

    def register(
        self, email: str, password: str, name: str | None = None
    ) -> AuthResult:
        """Create an account and log it in

        :raises MissingField: email or password is empty
        :raises DuplicateEmail: the email is already registered
        """
        email = _clean(email)
        if not email or not password:
            raise MissingField("Email & password required")
        user = self.users.create_user(
            email, hash_password(password), _clean(name) or None
        )
        logger.info("registered user %s", user.id)
        return AuthResult(self.issue(user), user)

    def login(self, email: str, password: str) -> AuthResult:
        """Check credentials and issue a fresh token

        :raises InvalidCredentials: unknown email or wrong password
        """
        user = self.users.find_by_email(_clean(email)) if email else None
        if user is None:
            burn_verification(password or "")
            ok = False
        else:
            ok = bool(password) and verify_password(password, user.password)
        if not ok:
            logger.info("failed login for %s", email)
            raise InvalidCredentials()
        return AuthResult(self.issue(user), user)

    def verify_token(self, token: str) -> TokenClaims:
        """Validate `token` and return the identity it carries

        :raises TokenExpired: the token is past its expiry
        :raises InvalidToken: anything else wrong with the token
        """
        claims = decode_token(
            token, self.settings.jwt_secret, self.settings.jwt_algorithm
        )
        try:
            return TokenClaims(uuid.UUID(claims["sub"]), claims["email"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidToken() from e


class BookService:
    def __init__(self, books: BookStore) -> None:
        self.books = books

    def list_books(
        self,
        user_id: uuid.UUID,
        search: str | None = None,
        category: str | None = None,
    ) -> list[Book]:
        return self.books.find(
            user_id, _clean(search) or None, _clean(category) or None
        )

    def add_book(
        self,
        user_id: uuid.UUID,
        title: str,
        author: str,
        category: str,
        cover: str | None = None,
    ) -> Book:
        fields = {
            "title": _clean(title),
            "author": _clean(author),
            "category": _clean(category),
        }
        if not all(fields.values()):
            raise MissingField("Title, author, category required")
        fields["cover"] = _clean(cover) or None
        return self.books.create(fields, user_id)

    def update_book(
        self, user_id: uuid.UUID, book_id: int, patch: Mapping[str, Any]
    ) -> None:
        """Apply a partial update to a book owned by `user_id`

        Only title, author, category and cover can change.

        :raises MissingField: a required field would become empty
        :raises NotFound: no such book, or it belongs to someone else
        """
        if not 1 <= book_id <= MAX_BOOK_ID:
            raise NotFound("Book not found")
        unknown = set(patch) - set(BOOK_PATCHABLE_FIELDS)
        if unknown:
            raise InvalidRequest(
                f"Cannot update fields: {', '.join(sorted(unknown))}"
            )
        changes = {}
        for key, value in patch.items():
            value = _clean(value)
            if key in BOOK_REQUIRED_FIELDS and not value:
                raise MissingField(f"{key} cannot be empty")
            changes[key] = value or None
        if not changes:
            if self.books.get_owned(book_id, user_id) is None:
                raise NotFound("Book not found")
            return
        if self.books.update_owned(book_id, user_id, changes) == 0:
            raise NotFound("Book not found")

    def delete_book(self, user_id: uuid.UUID, book_id: int) -> None:
        if not 1 <= book_id <= MAX_BOOK_ID:
            raise NotFound("Book not found")
        if self.books.delete_owned(book_id, user_id) == 0:
            raise NotFound("Book not found")

    def categories(self, user_id: uuid.UUID) -> list[str]:
        return self.books.categories(user_id)
