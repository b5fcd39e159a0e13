import io
import json
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Path, Query, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse, Response

from bookshelf import config
from bookshelf.auth import verify_api_key
from bookshelf.books import BookRepository, filter_books, search_books
from bookshelf.models import (BackupList, BackupResult, Book, BookCreate, BookUpdate,
                              HealthResponse, ImportResult, StatisticsSummary)
from bookshelf.statistics import calculate_all_statistics
from bookshelf.storage import JsonStorage, StorageError
from scripts.csv_books import books_to_csv, load_books_from_csv

# Logging setup
logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
logger = logging.getLogger(__name__)

REPOSITORY: Optional[BookRepository] = None


def get_repository() -> BookRepository:
    global REPOSITORY
    if REPOSITORY is None:
        REPOSITORY = BookRepository(JsonStorage(config.DATA_DIR), config.BOOKS_FILENAME)
    return REPOSITORY


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ---- Startup ----
    logger.info("Starting application...")
    books = get_repository().get_all()
    logger.info(f"Loaded {len(books)} books from {config.DATA_DIR / config.BOOKS_FILENAME}")

    yield

    # ---- Shutdown ----
    logger.info("Shutting down application...")

app = FastAPI(
    title="Bookshelf API",
    version="1.0.0",
    lifespan=lifespan,
)


# Logging middleware
@app.middleware(middleware_type="http")
async def log_requests(request, call_next):
    logger.info(f"Request: {request.method} {request.url}")
    response = await call_next(request)
    logger.info(f"Response status: {response.status_code}")
    return response


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# ------------------------------
# Book Endpoints
# ------------------------------

@app.get(
    "/api/v1/books/",
    response_model=List[Book],
    tags=["Books"],
    summary="List all books",
    dependencies=[Depends(verify_api_key)],
)
def list_books(repository: BookRepository = Depends(get_repository)):
    return repository.get_all()


@app.post(
    "/api/v1/books/",
    response_model=Book,
    status_code=201,
    tags=["Books"],
    summary="Add a book",
    dependencies=[Depends(verify_api_key)],
)
def create_book(book: BookCreate, repository: BookRepository = Depends(get_repository)):
    return repository.add(book)


@app.get(
    "/api/v1/books/search/",
    response_model=List[Book],
    tags=["Books"],
    summary="Search books",
    description="Case-insensitive substring match on title, author or genre. An empty query returns every book.",
    dependencies=[Depends(verify_api_key)],
)
def search_collection(
    q: str = Query(default="", description="Text to look for.", examples=["tolkien"]),
    repository: BookRepository = Depends(get_repository),
):
    return search_books(repository.get_all(), q)


@app.get(
    "/api/v1/books/filter/",
    response_model=List[Book],
    tags=["Books"],
    summary="Filter books",
    description=(
        "Filters are optional and can be combined. "
        "Date bounds are inclusive and exclude books without a completion date."
    ),
    dependencies=[Depends(verify_api_key)],
)
def filter_collection(
    genre: Optional[str] = Query(default=None, description="Exact genre.", examples=["Fantasy"]),
    min_rating: Optional[int] = Query(default=None, description="Minimum rating.", ge=1, le=5),
    from_date: Optional[date] = Query(default=None, description="Completed on or after."),
    to_date: Optional[date] = Query(default=None, description="Completed on or before."),
    repository: BookRepository = Depends(get_repository),
):
    if from_date and to_date and from_date > to_date:
        raise HTTPException(status_code=422, detail="from_date must be <= to_date")
    return filter_books(repository.get_all(), genre, min_rating, from_date, to_date)


# ------------------------------
# Data Management Endpoints
# ------------------------------

@app.get(
    "/api/v1/books/export",
    tags=["Data"],
    summary="Download the whole collection",
    dependencies=[Depends(verify_api_key)],
)
def export_books(
    export_format: str = Query(default="json", alias="format", pattern="^(json|csv)$"),
    repository: BookRepository = Depends(get_repository),
):
    books = repository.get_all()
    now = datetime.now(timezone.utc)
    headers = {
        "Content-Disposition": f'attachment; filename="bookshelf-export-{now.date().isoformat()}.{export_format}"'
    }

    if export_format == "csv":
        return Response(content=books_to_csv(books), media_type="text/csv", headers=headers)

    export_data = {
        "books": [b.model_dump(by_alias=True, exclude_none=True) for b in books],
        "exportedAt": now.isoformat(),
        "version": config.EXPORT_VERSION,
    }
    return Response(content=json.dumps(export_data, indent=2), media_type="application/json", headers=headers)


@app.post(
    "/api/v1/books/import",
    response_model=ImportResult,
    tags=["Data"],
    summary="Replace the collection from an uploaded file",
    description="Accepts a JSON array of books, an export document with a `books` list, or a CSV file.",
    dependencies=[Depends(verify_api_key)],
)
def import_books(
    file: UploadFile = File(..., description="JSON or CSV file."),
    repository: BookRepository = Depends(get_repository),
):
    content = file.file.read()

    if (file.filename or "").lower().endswith(".csv"):
        try:
            records = load_books_from_csv(io.BytesIO(content))
        except ValueError as e:
            logger.warning(f"Rejected CSV import {file.filename}: {e}")
            raise HTTPException(status_code=400, detail="Invalid CSV file")
    else:
        try:
            data = json.loads(content)
        except ValueError as e:
            logger.warning(f"Rejected JSON import {file.filename}: {e}")
            raise HTTPException(status_code=400, detail="Invalid JSON file")

        if isinstance(data, list):
            records = data
        elif isinstance(data, dict) and isinstance(data.get("books"), list):
            records = data["books"]
        else:
            raise HTTPException(status_code=400, detail="Invalid import format")

    if not all(
        isinstance(r, dict) and isinstance(r.get("title"), str) and isinstance(r.get("author"), str)
        for r in records
    ):
        raise HTTPException(status_code=400, detail="Invalid book data format")

    records = repository.prepare_records(records)
    repository.backup()
    count = repository.save_all(records)
    return {"success": True, "count": count}


@app.post(
    "/api/v1/books/backup",
    response_model=BackupResult,
    tags=["Data"],
    summary="Back up the collection",
    dependencies=[Depends(verify_api_key)],
)
def create_backup(repository: BookRepository = Depends(get_repository)):
    filename = repository.backup()
    return {"success": True, "filename": filename, "message": "Backup created successfully"}


@app.get(
    "/api/v1/books/backup",
    response_model=BackupList,
    tags=["Data"],
    summary="List backups",
    description="Newest backup first.",
    dependencies=[Depends(verify_api_key)],
)
def list_backups(repository: BookRepository = Depends(get_repository)):
    return {"backups": repository.list_backups()}


@app.get(
    "/api/v1/books/backup/{filename}",
    tags=["Data"],
    summary="Download a backup",
    responses={
        400: {"description": "Not a backup file name"},
        404: {"description": "Backup not found"},
    },
    dependencies=[Depends(verify_api_key)],
)
def download_backup(filename: str, repository: BookRepository = Depends(get_repository)):
    path = repository.storage.backup_path(filename)
    return FileResponse(path, media_type="application/json", filename=filename)


# ------------------------------
# Single Book Endpoints
# ------------------------------

@app.get(
    "/api/v1/books/{book_id}/",
    response_model=Book,
    tags=["Books"],
    summary="Get a book by id",
    responses={
        404: {"description": "Book not found"},
        401: {"description": "Unauthorized"},
    },
    dependencies=[Depends(verify_api_key)],
)
def get_book(
    book_id: str = Path(..., description="Book identifier."),
    repository: BookRepository = Depends(get_repository),
):
    book = repository.get_by_id(book_id)
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found")
    return book


@app.put(
    "/api/v1/books/{book_id}/",
    response_model=Book,
    tags=["Books"],
    summary="Update a book",
    description="Only the fields present in the body are changed. Sending null clears an optional field.",
    responses={404: {"description": "Book not found"}},
    dependencies=[Depends(verify_api_key)],
)
def update_book(
    changes: BookUpdate,
    book_id: str = Path(..., description="Book identifier."),
    repository: BookRepository = Depends(get_repository),
):
    book = repository.update(book_id, changes)
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found")
    return book


@app.delete(
    "/api/v1/books/{book_id}/",
    tags=["Books"],
    summary="Delete a book",
    responses={404: {"description": "Book not found"}},
    dependencies=[Depends(verify_api_key)],
)
def delete_book(
    book_id: str = Path(..., description="Book identifier."),
    repository: BookRepository = Depends(get_repository),
):
    if not repository.delete(book_id):
        raise HTTPException(status_code=404, detail="Book not found")
    return {"success": True}


@app.get(
    "/api/v1/genres",
    response_model=List[str],
    tags=["Genres"],
    summary="List genres",
    description="Distinct genres in the order they first appear in the collection.",
    dependencies=[Depends(verify_api_key)],
)
def list_genres(repository: BookRepository = Depends(get_repository)):
    return repository.get_genres()


@app.get(
    "/api/v1/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Health check",
)
def health_check(repository: BookRepository = Depends(get_repository)):
    return {"status": "ok", "books_loaded": len(repository.get_all())}


# ------------------------------
# Statistics Endpoints
# ------------------------------

@app.get(
    "/api/v1/stats/overview",
    response_model=Optional[StatisticsSummary],
    tags=["Stats"],
    summary="Reading statistics",
    description=(
        "Totals, averages and distributions over the whole collection. "
        "Returns null when the statistics could not be computed."
    ),
)
def stats_overview(repository: BookRepository = Depends(get_repository)):
    return calculate_all_statistics(repository.get_all())
