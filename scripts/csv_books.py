"""CSV interchange for book collections.

Usage:
    python -m scripts.csv_books ./data/books.csv
"""
import argparse
import logging
import os
from typing import IO, Any, Dict, Iterable, List, Union

import pandas as pd

from bookshelf import config
from bookshelf.books import BookRepository
from bookshelf.models import Book
from bookshelf.storage import JsonStorage

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "id",
    "title",
    "author",
    "genre",
    "rating",
    "dateCompleted",
    "notes",
    "coverUrl",
    "pageCount",
    "createdAt",
    "updatedAt",
]
INT_COLUMNS = ["rating", "pageCount"]


def books_to_dataframe(books: Iterable[Book]) -> pd.DataFrame:
    df = pd.DataFrame(
        [b.model_dump(by_alias=True) for b in books],
        columns=CSV_COLUMNS,
    )
    for col in INT_COLUMNS:
        df[col] = df[col].astype("Int64")
    return df


def books_to_csv(books: Iterable[Book]) -> str:
    return books_to_dataframe(books).to_csv(index=False)


def load_books_from_csv(source: Union[str, os.PathLike, IO]) -> List[Dict[str, Any]]:
    """Read book records from CSV. Empty cells are left out of each record.

    Raises ValueError when the CSV cannot be parsed or a number column holds text.
    """
    df = pd.read_csv(source, dtype=str, keep_default_na=False)

    records = []
    for row in df.to_dict(orient="records"):
        record = {k: v for k, v in row.items() if v != ""}
        for col in INT_COLUMNS:
            if col in record:
                record[col] = int(float(record[col]))
        records.append(record)

    logger.info(f"Books loaded from CSV. Total: {len(records)}")
    return records


def export_csv(output_path: str) -> str:
    repository = BookRepository(JsonStorage(config.DATA_DIR))
    books = repository.get_all()

    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    books_to_dataframe(books).to_csv(output_path, index=False, header=True)
    logger.info(f"Data saved to {output_path}. Total books: {len(books)}")
    return output_path


def main():
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    parser = argparse.ArgumentParser(description="Export the book collection to CSV.")
    parser.add_argument("output", nargs="?", default="./data/books.csv", help="Destination CSV file.")
    args = parser.parse_args()
    export_csv(args.output)


if __name__ == "__main__":
    main()
