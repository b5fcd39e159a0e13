"""Pytest fixtures shared across the bookshelf tests."""

import pytest
from fastapi.testclient import TestClient

from bookshelf import config
from bookshelf.api import app, get_repository
from bookshelf.books import BookRepository
from bookshelf.models import Book
from bookshelf.storage import JsonStorage


@pytest.fixture
def make_book():
    """Return a factory for Book records with throwaway ids and titles."""

    counter = {"n": 0}

    def _make(**fields) -> Book:
        counter["n"] += 1
        n = counter["n"]
        fields.setdefault("id", str(n))
        fields.setdefault("title", f"Book {n}")
        fields.setdefault("author", f"Author {n}")
        fields.setdefault("created_at", "2023-01-01T00:00:00.000Z")
        fields.setdefault("updated_at", "2023-01-01T00:00:00.000Z")
        return Book(**fields)

    return _make


@pytest.fixture
def sample_books(make_book):
    """The four-book collection used across the statistics tests."""

    return [
        make_book(genre="Fantasy", rating=5, date_completed="2023-01-15", page_count=300),
        make_book(genre="Fantasy", rating=4, date_completed="2023-02-20", page_count=250),
        make_book(genre="Science Fiction", rating=3, date_completed="2023-03-10", page_count=400),
        make_book(genre="Mystery", rating=4, date_completed="2022-12-15", page_count=350),
    ]


@pytest.fixture
def storage(tmp_path):
    return JsonStorage(tmp_path)


@pytest.fixture
def repository(storage):
    return BookRepository(storage, "books.json")


@pytest.fixture
def client(repository):
    """Return an API client whose repository lives in a temporary directory."""

    app.dependency_overrides[get_repository] = lambda: repository
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"X-API-Key": config.API_KEY}
