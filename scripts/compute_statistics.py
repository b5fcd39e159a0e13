#!/usr/bin/env python3
"""Read a books JSON document and print its reading statistics as JSON.

Usage:
    python -m scripts.compute_statistics ./data/books.json
    cat export.json | python -m scripts.compute_statistics > stats.json

The input may be a plain list of books or an export document with a
``books`` list.
"""

import argparse
import json
import logging
import sys
from typing import Any, List

from pydantic import ValidationError

from bookshelf import config
from bookshelf.models import Book
from bookshelf.statistics import calculate_all_statistics

logger = logging.getLogger(__name__)


def parse_books(data: Any) -> List[Book]:
    if isinstance(data, dict):
        data = data.get("books", [])
    if not isinstance(data, list):
        return []

    books = []
    for record in data:
        try:
            books.append(Book.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Invalid book record skipped: {record} | Error: {e}")
    return books


def main(argv=None) -> int:
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT, stream=sys.stderr)
    parser = argparse.ArgumentParser(description="Compute reading statistics for a books JSON file.")
    parser.add_argument("path", nargs="?", help="Books JSON file. Reads stdin when omitted.")
    parser.add_argument("--year", type=int, default=None, help="Year used for the per-month counts.")
    args = parser.parse_args(argv)

    if args.path:
        with open(args.path, encoding="utf-8") as f:
            raw = f.read()
    else:
        raw = sys.stdin.read()

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error(f"Invalid JSON input: {exc}")
        return 1

    summary = calculate_all_statistics(parse_books(data), year=args.year)
    if summary is None:
        logger.error("Statistics unavailable")
        return 1

    sys.stdout.write(summary.model_dump_json(by_alias=True, indent=2))
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
