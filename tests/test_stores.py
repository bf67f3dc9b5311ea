import uuid

import pytest

from locallibrary.errors import DuplicateEmail, InternalFailure
from locallibrary.models import Book
from locallibrary.stores import BookStore, CredentialStore


def make_book(title, author="Anon", category="Misc", cover=None):
    return {"title": title, "author": author, "category": category, "cover": cover}


def test_create_user_normalizes_email(session):
    users = CredentialStore(session)
    user = users.create_user("  Reader@Mail.COM ", "hash", "Reader")
    assert user.email == "reader@mail.com"
    assert users.find_by_email("READER@mail.com").id == user.id
    assert users.get(user.id).name == "Reader"
    assert users.find_by_email("nobody@mail.com") is None


def test_duplicate_email_rejected(session):
    users = CredentialStore(session)
    users.create_user("a@x.com", "hash1")
    with pytest.raises(DuplicateEmail):
        users.create_user("A@X.com", "hash2")
    # the session is still usable after the conflict
    assert users.find_by_email("a@x.com").password == "hash1"


def test_find_is_owner_scoped(session):
    books = BookStore(session)
    alice, bob = uuid.uuid4(), uuid.uuid4()
    mine = books.create(make_book("Dune"), alice)
    books.create(make_book("Emma"), bob)
    assert [b.id for b in books.find(alice)] == [mine.id]
    assert books.find(uuid.uuid4()) == []


def test_find_filters(session):
    books = BookStore(session)
    owner = uuid.uuid4()
    dune = books.create(make_book("Dune", "Frank Herbert", "Sci-Fi"), owner)
    books.create(make_book("Dune Messiah", "Frank Herbert", "Classics"), owner)
    books.create(make_book("Foundation", "Isaac Asimov", "Sci-Fi"), owner)
    assert len(books.find(owner, search="HERBERT")) == 2
    assert len(books.find(owner, category="Sci-Fi")) == 2
    assert [b.id for b in books.find(owner, "dune", "Sci-Fi")] == [dune.id]


def test_search_wildcards_are_literal(session):
    books = BookStore(session)
    owner = uuid.uuid4()
    pure = books.create(make_book("100% Pure"), owner)
    books.create(make_book("Plain"), owner)
    assert [b.id for b in books.find(owner, search="%")] == [pure.id]


def test_update_owned(session):
    books = BookStore(session)
    owner, other = uuid.uuid4(), uuid.uuid4()
    book = books.create(make_book("Dune"), owner)
    assert books.update_owned(book.id, other, {"title": "Stolen"}) == 0
    assert books.update_owned(book.id, owner, {"title": "Dune II"}) == 1
    assert books.get_owned(book.id, owner).title == "Dune II"
    assert books.get_owned(book.id, other) is None


def test_delete_owned(session):
    books = BookStore(session)
    owner, other = uuid.uuid4(), uuid.uuid4()
    book = books.create(make_book("Dune"), owner)
    assert books.delete_owned(book.id, other) == 0
    assert books.delete_owned(book.id, owner) == 1
    assert books.delete_owned(book.id, owner) == 0
    assert books.find(owner) == []


def test_categories(session):
    books = BookStore(session)
    owner = uuid.uuid4()
    for title, category in [("A", "Sci-Fi"), ("B", "Fantasy"), ("C", "Sci-Fi")]:
        books.create(make_book(title, category=category), owner)
    books.create(make_book("D", category="Horror"), uuid.uuid4())
    assert books.categories(owner) == ["Fantasy", "Sci-Fi"]


def test_database_failure_is_internal(session):
    Book.__table__.drop(session.get_bind())
    with pytest.raises(InternalFailure) as exc_info:
        BookStore(session).find(uuid.uuid4())
    assert exc_info.value.message == "Failed to fetch books"
