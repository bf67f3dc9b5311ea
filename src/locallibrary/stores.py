import functools
import logging
import uuid
from typing import Any, Mapping

from sqlalchemy import delete, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from .errors import DuplicateEmail, InternalFailure, LibraryError
from .models import Book, User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def store_operation(message: str):
    """Turn unexpected database errors into `InternalFailure`

    The session is rolled back and the original error logged; callers only
    ever see `message`.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapped(self: "_Store", *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except LibraryError:
                raise
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.exception("%s", message)
                raise InternalFailure(message) from e

        return wrapped

    return decorator


class _Store:
    def __init__(self, session: Session) -> None:
        self.session = session


class CredentialStore(_Store):
    @store_operation("User creation failed")
    def create_user(
        self, email: str, password_hash: str, name: str | None = None
    ) -> User:
        """Insert a new user

        :raises DuplicateEmail: another user already has this email
        """
        user = User(email=normalize_email(email), password=password_hash, name=name)
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise DuplicateEmail() from e
        self.session.refresh(user)
        return user

    @store_operation("User lookup failed")
    def find_by_email(self, email: str) -> User | None:
        return self.session.exec(
            select(User).where(User.email == normalize_email(email))
        ).first()

    @store_operation("User lookup failed")
    def get(self, user_id: uuid.UUID) -> User | None:
        return self.session.get(User, user_id)


class BookStore(_Store):
    """Book persistence. Every operation is scoped by `owner_id`."""

    @store_operation("Failed to add book")
    def create(self, book: Mapping[str, Any], owner_id: uuid.UUID) -> Book:
        record = Book.model_validate(book, update={"owner_id": owner_id})
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    @store_operation("Failed to fetch books")
    def find(
        self,
        owner_id: uuid.UUID,
        search: str | None = None,
        category: str | None = None,
    ) -> list[Book]:
        query = select(Book).where(Book.owner_id == owner_id)
        if search:
            query = query.where(
                or_(
                    col(Book.title).icontains(search, autoescape=True),
                    col(Book.author).icontains(search, autoescape=True),
                )
            )
        if category:
            query = query.where(Book.category == category)
        return list(self.session.exec(query.order_by(col(Book.id))).all())

    @store_operation("Failed to fetch book")
    def get_owned(self, book_id: int, owner_id: uuid.UUID) -> Book | None:
        return self.session.exec(
            select(Book).where(Book.id == book_id, Book.owner_id == owner_id)
        ).first()

    @store_operation("Failed to update book")
    def update_owned(
        self, book_id: int, owner_id: uuid.UUID, patch: Mapping[str, Any]
    ) -> int:
        """Apply `patch` to the book if `owner_id` owns it

        :return: number of updated rows, 0 or 1
        :rtype: int
        """
        if not patch:
            return 0
        result = self.session.exec(
            update(Book)
            .where(col(Book.id) == book_id, col(Book.owner_id) == owner_id)
            .values(**patch)
        )
        self.session.commit()
        return result.rowcount

    @store_operation("Failed to delete book")
    def delete_owned(self, book_id: int, owner_id: uuid.UUID) -> int:
        """Delete the book if `owner_id` owns it

        :return: number of deleted rows, 0 or 1
        :rtype: int
        """
        result = self.session.exec(
            delete(Book).where(
                col(Book.id) == book_id, col(Book.owner_id) == owner_id
            )
        )
        self.session.commit()
        return result.rowcount

    @store_operation("Failed to fetch categories")
    def categories(self, owner_id: uuid.UUID) -> list[str]:
        return list(
            self.session.exec(
                select(Book.category)
                .where(Book.owner_id == owner_id)
                .distinct()
                .order_by(col(Book.category))
            ).all()
        )
