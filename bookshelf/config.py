import os
from pathlib import Path


DATA_DIR = Path(os.environ.get("BOOKSHELF_DATA_DIR", "./data"))
BOOKS_FILENAME = os.environ.get("BOOKSHELF_BOOKS_FILE", "books.json")
API_KEY = os.environ.get("BOOKSHELF_API_KEY", "mysecretkey")
LOG_LEVEL = os.environ.get("BOOKSHELF_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(message)s"

EXPORT_VERSION = "1.0"
