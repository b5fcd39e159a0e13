from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes the camelCase keys used in books.json."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Book(CamelModel):
    id: str
    title: str
    author: str
    genre: Optional[str] = None
    rating: Optional[int] = None
    date_completed: Optional[str] = Field(default=None, examples=["2023-01-15"])
    notes: Optional[str] = None
    cover_url: Optional[str] = None
    page_count: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class BookCreate(CamelModel):
    title: str = Field(..., min_length=1, examples=["The Hobbit"])
    author: str = Field(..., min_length=1, examples=["J.R.R. Tolkien"])
    genre: Optional[str] = Field(default=None, examples=["Fantasy"])
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    date_completed: Optional[date] = None
    notes: Optional[str] = None
    cover_url: Optional[str] = None
    page_count: Optional[int] = Field(default=None, ge=0)


class BookUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    author: Optional[str] = Field(default=None, min_length=1)
    genre: Optional[str] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    date_completed: Optional[date] = None
    notes: Optional[str] = None
    cover_url: Optional[str] = None
    page_count: Optional[int] = Field(default=None, ge=0)

    @field_validator("title", "author")
    @classmethod
    def required_fields_not_null(cls, value):
        if value is None:
            raise ValueError("cannot be null")
        return value


class MostReadGenre(BaseModel):
    genre: str
    count: int


class StatisticsSummary(CamelModel):
    total_books: int
    average_rating: float
    most_read_genre: Optional[MostReadGenre]
    total_pages_read: int
    books_per_month: Dict[str, int]
    books_per_year: Dict[str, int]
    rating_distribution: Dict[int, int]
    genre_distribution: Dict[str, int]


class HealthResponse(BaseModel):
    status: str = Field(..., examples=["ok"])
    books_loaded: int = Field(..., examples=[42])


class BackupInfo(CamelModel):
    filename: str
    created_at: str
    size: int


class BackupList(BaseModel):
    backups: List[BackupInfo]


class BackupResult(BaseModel):
    success: bool
    filename: str
    message: str


class ImportResult(BaseModel):
    success: bool
    count: int
