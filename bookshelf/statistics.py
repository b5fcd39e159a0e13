"""Reading statistics derived from a book collection.

Every function here is a pure pass over a sequence of ``Book`` records.
Optional fields that are missing simply exclude the record from the metric
that needs them.
"""

import logging
from collections import Counter
from datetime import date, datetime
from typing import Dict, Optional, Sequence

from bookshelf.models import Book, MostReadGenre, StatisticsSummary

logger = logging.getLogger(__name__)

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

RATING_VALUES = (1, 2, 3, 4, 5)


def _completed_date(book: Book) -> Optional[date]:
    """Return the completion date of *book*, or None when it was never set.

    Only the leading ``YYYY-MM-DD`` part is read, so full timestamps work too.
    A malformed value raises ``ValueError``.
    """
    if not book.date_completed:
        return None
    return date.fromisoformat(book.date_completed.strip()[:10])


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------

def calculate_total_books(books: Sequence[Book]) -> int:
    return len(books)


def calculate_average_rating(books: Sequence[Book]) -> float:
    """Mean rating rounded to one decimal, 0 when nothing is rated."""
    ratings = [b.rating for b in books if b.rating is not None]
    if not ratings:
        return 0
    return round(sum(ratings) / len(ratings), 1)


def calculate_total_pages_read(books: Sequence[Book]) -> int:
    return sum(b.page_count for b in books if b.page_count is not None)


# ---------------------------------------------------------------------------
# Genres
# ---------------------------------------------------------------------------

def _genre_counts(books: Sequence[Book]) -> Counter:
    # Counter keeps keys in first-insertion order
    return Counter(b.genre for b in books if b.genre)


def find_most_read_genre(books: Sequence[Book]) -> Optional[MostReadGenre]:
    """Genre with the most books; on a tie the genre counted first wins."""
    counts = _genre_counts(books)
    if not counts:
        return None

    leader, highest = None, 0
    for genre, count in counts.items():
        if count > highest:
            leader, highest = genre, count

    return MostReadGenre(genre=leader, count=highest)


def calculate_genre_distribution(books: Sequence[Book]) -> Dict[str, int]:
    """Books per genre, most common first. Equal counts keep first-seen order."""
    return dict(_genre_counts(books).most_common())


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------

def calculate_rating_distribution(books: Sequence[Book]) -> Dict[int, int]:
    distribution = {r: 0 for r in RATING_VALUES}
    for b in books:
        if b.rating in distribution:
            distribution[b.rating] += 1
    return distribution


# ---------------------------------------------------------------------------
# Reading pace
# ---------------------------------------------------------------------------

def calculate_books_per_month(books: Sequence[Book], year: Optional[int] = None) -> Dict[str, int]:
    """Books completed in each month of *year* (defaults to the current year).

    All twelve months are present, in calendar order.
    """
    if year is None:
        year = datetime.now().year

    months = {name: 0 for name in MONTH_NAMES}
    for b in books:
        completed = _completed_date(b)
        if completed is None or completed.year != year:
            continue
        months[MONTH_NAMES[completed.month - 1]] += 1
    return months


def calculate_books_per_year(books: Sequence[Book]) -> Dict[str, int]:
    """Books completed per year, newest year first. Empty years are omitted."""
    year_counts = Counter()
    for b in books:
        completed = _completed_date(b)
        if completed is not None:
            year_counts[completed.year] += 1

    return {str(y): year_counts[y] for y in sorted(year_counts, reverse=True)}


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

def calculate_all_statistics(books: Sequence[Book], year: Optional[int] = None) -> Optional[StatisticsSummary]:
    """Compute every metric at once.

    Statistics are best effort: if any metric fails the error is logged and
    None is returned instead of a partial summary.
    """
    try:
        return StatisticsSummary(
            total_books=calculate_total_books(books),
            average_rating=calculate_average_rating(books),
            most_read_genre=find_most_read_genre(books),
            total_pages_read=calculate_total_pages_read(books),
            books_per_month=calculate_books_per_month(books, year),
            books_per_year=calculate_books_per_year(books),
            rating_distribution=calculate_rating_distribution(books),
            genre_distribution=calculate_genre_distribution(books),
        )
    except Exception as e:
        logger.error(f"Error calculating statistics: {e}", exc_info=True)
        return None
