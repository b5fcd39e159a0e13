#!/usr/bin/env python3
"""Back up the books file, list existing backups, or restore from a JSON file.

Usage:
    python -m scripts.backup_books
    python -m scripts.backup_books --list
    python -m scripts.backup_books --import ./data/books_backup_1700000000000.json
"""

import argparse
import logging
import sys

from bookshelf import config
from bookshelf.books import BookRepository
from bookshelf.storage import JsonStorage, StorageError

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    parser = argparse.ArgumentParser(description="Back up the book collection.")
    parser.add_argument("--list", action="store_true", help="List backups instead of creating one.")
    parser.add_argument("--import", dest="import_path", metavar="PATH",
                        help="Replace the books file with this JSON file, backing up the current one first.")
    parser.add_argument("--data-dir", default=str(config.DATA_DIR), help="Directory holding the books file.")
    args = parser.parse_args(argv)

    repository = BookRepository(JsonStorage(args.data_dir), config.BOOKS_FILENAME)

    if args.list:
        for backup in repository.list_backups():
            print(f"{backup.filename}\t{backup.size}\t{backup.created_at}")
        return 0

    if args.import_path:
        try:
            repository.storage.import_file(args.import_path, repository.filename)
        except StorageError as e:
            logger.error(f"Import failed: {e.message}")
            return 1
        print(f"Imported {args.import_path}")
        return 0

    try:
        filename = repository.backup()
    except StorageError as e:
        logger.error(f"Backup failed: {e.message}")
        return 1

    print(filename)
    return 0


if __name__ == "__main__":
    sys.exit(main())
