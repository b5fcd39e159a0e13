import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from bookshelf import config
from bookshelf.models import BackupInfo, Book, BookCreate, BookUpdate
from bookshelf.storage import JsonStorage, StorageError

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class BookRepository:
    """CRUD over the books file.

    Writes work on the raw JSON records so fields this version does not know
    about survive a round trip.
    """

    def __init__(self, storage: JsonStorage, filename: str = config.BOOKS_FILENAME):
        self.storage = storage
        self.filename = filename

    def _load_records(self) -> List[Dict[str, Any]]:
        data = self.storage.read(self.filename)
        if not isinstance(data, list):
            raise StorageError(f"Expected a list of books in {self.filename}")
        return data

    def _save_records(self, records: List[Dict[str, Any]]) -> None:
        self.storage.write(self.filename, records)

    def get_all(self) -> List[Book]:
        books: List[Book] = []
        for record in self._load_records():
            try:
                books.append(Book.model_validate(record))
            except ValidationError as e:
                logger.error(f"Invalid book record skipped: {record} | Error: {e}")
        return books

    def get_by_id(self, book_id: str) -> Optional[Book]:
        for book in self.get_all():
            if book.id == book_id:
                return book
        return None

    def add(self, data: BookCreate) -> Book:
        records = self._load_records()
        now = _now()
        record = data.model_dump(mode="json", by_alias=True, exclude_none=True)
        record.update({"id": str(uuid.uuid4()), "createdAt": now, "updatedAt": now})

        records.append(record)
        self._save_records(records)
        logger.info(f"Book added: {record['id']} ({data.title})")
        return Book.model_validate(record)

    def update(self, book_id: str, data: BookUpdate) -> Optional[Book]:
        records = self._load_records()
        for index, record in enumerate(records):
            if record.get("id") != book_id:
                continue

            merged = dict(record)
            for key, value in data.model_dump(mode="json", by_alias=True, exclude_unset=True).items():
                if value is None:
                    merged.pop(key, None)
                else:
                    merged[key] = value
            merged["updatedAt"] = _now()

            try:
                book = Book.model_validate(merged)
            except ValidationError as e:
                logger.warning(f"Rejected update of {book_id}: {e}")
                raise StorageError("Invalid book data format", status_code=400) from e

            records[index] = merged
            self._save_records(records)
            logger.info(f"Book updated: {book_id}")
            return book

        return None

    def delete(self, book_id: str) -> bool:
        records = self._load_records()
        remaining = [r for r in records if r.get("id") != book_id]
        if len(remaining) == len(records):
            return False

        self._save_records(remaining)
        logger.info(f"Book deleted: {book_id}")
        return True

    def prepare_records(self, records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Fill in missing ids and timestamps and check every record is a valid book.

        Raises StorageError (400) when any record would not load back.
        """
        now = _now()
        prepared = []
        for record in records:
            record = dict(record)
            book_id = record.get("id")
            record["id"] = str(book_id) if book_id is not None and book_id != "" else str(uuid.uuid4())
            record["createdAt"] = record.get("createdAt") or now
            record["updatedAt"] = record.get("updatedAt") or now
            try:
                Book.model_validate(record)
            except ValidationError as e:
                logger.warning(f"Rejected book record: {record} | Error: {e}")
                raise StorageError("Invalid book data format", status_code=400) from e
            prepared.append(record)
        return prepared

    def save_all(self, records: Iterable[Dict[str, Any]]) -> int:
        """Replace the whole collection with *records*; nothing is written if one is invalid."""
        prepared = self.prepare_records(records)
        self._save_records(prepared)
        logger.info(f"Saved {len(prepared)} books to {self.filename}")
        return len(prepared)

    def backup(self) -> str:
        # reading first creates an empty collection when there is none yet
        self._load_records()
        return self.storage.backup(self.filename)

    def list_backups(self) -> List[BackupInfo]:
        return self.storage.list_backups()

    def get_genres(self) -> List[str]:
        genres: List[str] = []
        for book in self.get_all():
            if book.genre and book.genre not in genres:
                genres.append(book.genre)
        return genres


# ------------------------------
# Queries
# ------------------------------

def parse_completed_date(value: Optional[str]) -> Optional[date]:
    """Lenient date parsing for filters: unparseable dates count as missing."""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def search_books(books: Iterable[Book], query: str) -> List[Book]:
    """Case-insensitive substring match on title, author or genre."""
    q = query.lower()
    return [
        b for b in books
        if q in b.title.lower()
        or q in b.author.lower()
        or (b.genre is not None and q in b.genre.lower())
    ]


def filter_books(
    books: Iterable[Book],
    genre: Optional[str] = None,
    min_rating: Optional[int] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
) -> List[Book]:
    """Apply every given criterion; date bounds are inclusive and skip undated books."""
    results = list(books)

    if genre:
        results = [b for b in results if b.genre == genre]

    if min_rating is not None:
        results = [b for b in results if (b.rating or 0) >= min_rating]

    if from_date is not None or to_date is not None:
        results = [b for b in results if _completed_within(b, from_date, to_date)]

    return results


def _completed_within(book: Book, from_date: Optional[date], to_date: Optional[date]) -> bool:
    completed = parse_completed_date(book.date_completed)
    if completed is None:
        return False
    if from_date is not None and completed < from_date:
        return False
    if to_date is not None and completed > to_date:
        return False
    return True
