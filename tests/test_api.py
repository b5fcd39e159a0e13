"""HTTP tests for the bookshelf API."""

import io
import json

import pytest


def _add(client, auth_headers, **fields):
    body = {"title": "Dune", "author": "Frank Herbert"}
    body.update(fields)
    response = client.post("/api/v1/books/", json=body, headers=auth_headers)
    assert response.status_code == 201
    return response.json()


def test_health(client) -> None:
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "books_loaded": 0}


@pytest.mark.parametrize("headers", [{}, {"X-API-Key": "wrong"}])
def test_book_endpoints_require_api_key(client, headers) -> None:
    response = client.get("/api/v1/books/", headers=headers)
    assert response.status_code in (401, 403)


def test_create_and_get_book(client, auth_headers) -> None:
    created = _add(client, auth_headers, genre="Science Fiction", rating=5, dateCompleted="2023-04-02", pageCount=412)

    assert created["dateCompleted"] == "2023-04-02"
    assert created["pageCount"] == 412
    assert created["createdAt"]

    response = client.get(f"/api/v1/books/{created['id']}/", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == created

    listing = client.get("/api/v1/books/", headers=auth_headers).json()
    assert [b["id"] for b in listing] == [created["id"]]


@pytest.mark.parametrize(
    "body",
    [
        {"author": "No Title"},
        {"title": "", "author": "Empty Title"},
        {"title": "Bad Rating", "author": "A", "rating": 6},
        {"title": "Bad Date", "author": "A", "dateCompleted": "yesterday"},
        {"title": "Bad Pages", "author": "A", "pageCount": -1},
    ],
)
def test_create_book_validation(client, auth_headers, body) -> None:
    response = client.post("/api/v1/books/", json=body, headers=auth_headers)
    assert response.status_code == 422


def test_get_missing_book(client, auth_headers) -> None:
    response = client.get("/api/v1/books/missing/", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["detail"] == "Book not found"


def test_update_book(client, auth_headers) -> None:
    created = _add(client, auth_headers, genre="Fantasy")

    response = client.put(f"/api/v1/books/{created['id']}/", json={"rating": 4}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["rating"] == 4
    assert response.json()["genre"] == "Fantasy"

    missing = client.put("/api/v1/books/missing/", json={"rating": 4}, headers=auth_headers)
    assert missing.status_code == 404


@pytest.mark.parametrize("field", ["title", "author"])
def test_update_cannot_null_required_fields(client, auth_headers, field) -> None:
    created = _add(client, auth_headers)

    response = client.put(f"/api/v1/books/{created['id']}/", json={field: None}, headers=auth_headers)

    assert response.status_code == 422
    books = client.get("/api/v1/books/", headers=auth_headers).json()
    assert [(b["title"], b["author"]) for b in books] == [("Dune", "Frank Herbert")]


def test_delete_book(client, auth_headers) -> None:
    created = _add(client, auth_headers)

    response = client.delete(f"/api/v1/books/{created['id']}/", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"success": True}

    again = client.delete(f"/api/v1/books/{created['id']}/", headers=auth_headers)
    assert again.status_code == 404


def test_search(client, auth_headers) -> None:
    _add(client, auth_headers)
    _add(client, auth_headers, title="The Hobbit", author="J.R.R. Tolkien", genre="Fantasy")

    response = client.get("/api/v1/books/search/", params={"q": "tolkien"}, headers=auth_headers)

    assert response.status_code == 200
    assert [b["title"] for b in response.json()] == ["The Hobbit"]


def test_filter(client, auth_headers) -> None:
    _add(client, auth_headers, title="A", genre="Fantasy", rating=5, dateCompleted="2023-01-15")
    _add(client, auth_headers, title="B", genre="Fantasy", rating=2, dateCompleted="2023-05-01")
    _add(client, auth_headers, title="C", genre="Mystery", rating=4)

    def titles(**params):
        response = client.get("/api/v1/books/filter/", params=params, headers=auth_headers)
        assert response.status_code == 200
        return [b["title"] for b in response.json()]

    assert titles(genre="Fantasy") == ["A", "B"]
    assert titles(min_rating=4) == ["A", "C"]
    assert titles(from_date="2023-02-01") == ["B"]
    assert titles(to_date="2023-02-01", genre="Fantasy") == ["A"]


def test_filter_rejects_inverted_date_range(client, auth_headers) -> None:
    response = client.get(
        "/api/v1/books/filter/",
        params={"from_date": "2023-05-01", "to_date": "2023-01-01"},
        headers=auth_headers,
    )
    assert response.status_code == 422


def test_genres(client, auth_headers) -> None:
    _add(client, auth_headers, genre="Mystery")
    _add(client, auth_headers)
    _add(client, auth_headers, genre="Fantasy")

    response = client.get("/api/v1/genres", headers=auth_headers)

    assert response.json() == ["Mystery", "Fantasy"]


def test_stats_overview(client, auth_headers) -> None:
    _add(client, auth_headers, genre="Fantasy", rating=5, dateCompleted="2023-01-15", pageCount=300)
    _add(client, auth_headers, genre="Fantasy", rating=4, dateCompleted="2023-02-20", pageCount=250)
    _add(client, auth_headers, genre="Science Fiction", rating=3, dateCompleted="2023-03-10", pageCount=400)
    _add(client, auth_headers, genre="Mystery", rating=4, dateCompleted="2022-12-15", pageCount=350)

    response = client.get("/api/v1/stats/overview")

    assert response.status_code == 200
    stats = response.json()
    assert stats["totalBooks"] == 4
    assert stats["averageRating"] == 4.0
    assert stats["mostReadGenre"] == {"genre": "Fantasy", "count": 2}
    assert stats["totalPagesRead"] == 1300
    assert stats["booksPerYear"] == {"2023": 3, "2022": 1}
    assert stats["ratingDistribution"] == {"1": 0, "2": 0, "3": 1, "4": 2, "5": 1}
    assert list(stats["genreDistribution"]) == ["Fantasy", "Science Fiction", "Mystery"]
    assert len(stats["booksPerMonth"]) == 12


def test_stats_overview_is_null_when_unavailable(client, storage) -> None:
    storage.write("books.json", [{"id": "1", "title": "T", "author": "A", "dateCompleted": "bad"}])

    response = client.get("/api/v1/stats/overview")

    assert response.status_code == 200
    assert response.json() is None


def test_export_json(client, auth_headers) -> None:
    created = _add(client, auth_headers)

    response = client.get("/api/v1/books/export", headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert 'filename="bookshelf-export-' in response.headers["content-disposition"]
    data = response.json()
    assert data["version"] == "1.0"
    assert data["exportedAt"]
    assert [b["id"] for b in data["books"]] == [created["id"]]


def test_export_csv(client, auth_headers) -> None:
    _add(client, auth_headers, rating=4)

    response = client.get("/api/v1/books/export", params={"format": "csv"}, headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"].endswith('.csv"')
    header, row = response.text.strip().splitlines()
    assert header.startswith("id,title,author,genre,rating")
    assert ",Dune,Frank Herbert,,4," in row


def test_export_rejects_unknown_format(client, auth_headers) -> None:
    response = client.get("/api/v1/books/export", params={"format": "xml"}, headers=auth_headers)
    assert response.status_code == 422


def test_import_json_list(client, auth_headers, tmp_path) -> None:
    _add(client, auth_headers, title="Old")
    payload = json.dumps([{"title": "Emma", "author": "Jane Austen"}, {"title": "Dune", "author": "Frank Herbert"}])

    response = client.post(
        "/api/v1/books/import",
        files={"file": ("books.json", payload, "application/json")},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "count": 2}
    titles = [b["title"] for b in client.get("/api/v1/books/", headers=auth_headers).json()]
    assert titles == ["Emma", "Dune"]
    assert len(list(tmp_path.glob("books_backup_*.json"))) == 1


def test_import_export_document(client, auth_headers) -> None:
    payload = json.dumps({"books": [{"id": "x", "title": "Emma", "author": "Jane Austen"}], "version": "1.0"})

    response = client.post(
        "/api/v1/books/import",
        files={"file": ("export.json", payload, "application/json")},
        headers=auth_headers,
    )

    assert response.json()["count"] == 1
    assert client.get("/api/v1/books/x/", headers=auth_headers).json()["title"] == "Emma"


def test_import_csv(client, auth_headers) -> None:
    csv_text = "title,author,rating,pageCount\nEmma,Jane Austen,4,474\nDune,Frank Herbert,,\n"

    response = client.post(
        "/api/v1/books/import",
        files={"file": ("books.csv", io.BytesIO(csv_text.encode()), "text/csv")},
        headers=auth_headers,
    )

    assert response.json() == {"success": True, "count": 2}
    books = client.get("/api/v1/books/", headers=auth_headers).json()
    assert books[0]["rating"] == 4
    assert books[0]["pageCount"] == 474
    assert books[1]["rating"] is None


def test_import_stores_numeric_ids_as_strings(client, auth_headers) -> None:
    payload = json.dumps([{"id": 1, "title": "Emma", "author": "Jane Austen"}])

    response = client.post(
        "/api/v1/books/import",
        files={"file": ("books.json", payload, "application/json")},
        headers=auth_headers,
    )

    assert response.json() == {"success": True, "count": 1}
    assert client.get("/api/v1/books/1/", headers=auth_headers).json()["title"] == "Emma"


def test_import_rejects_records_that_are_not_valid_books(client, auth_headers, tmp_path) -> None:
    _add(client, auth_headers, title="Keep me")
    payload = json.dumps([
        {"id": 1, "title": "Emma", "author": "Jane Austen"},
        {"title": "Dune", "author": "Frank Herbert", "rating": 4.5},
    ])

    response = client.post(
        "/api/v1/books/import",
        files={"file": ("books.json", payload, "application/json")},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid book data format"
    titles = [b["title"] for b in client.get("/api/v1/books/", headers=auth_headers).json()]
    assert titles == ["Keep me"]
    assert list(tmp_path.glob("books_backup_*.json")) == []


@pytest.mark.parametrize(
    "filename, content, detail",
    [
        ("books.json", "not json", "Invalid JSON file"),
        ("books.json", json.dumps({"items": []}), "Invalid import format"),
        ("books.json", json.dumps([{"title": "No author"}]), "Invalid book data format"),
        ("books.json", json.dumps(["just a string"]), "Invalid book data format"),
        ("books.csv", "title,author,rating\nEmma,Jane Austen,five\n", "Invalid CSV file"),
    ],
)
def test_import_rejects_bad_files(client, auth_headers, filename, content, detail) -> None:
    _add(client, auth_headers, title="Keep me")

    response = client.post(
        "/api/v1/books/import",
        files={"file": (filename, content, "application/octet-stream")},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["detail"] == detail
    titles = [b["title"] for b in client.get("/api/v1/books/", headers=auth_headers).json()]
    assert titles == ["Keep me"]


def test_backup_list_and_download(client, auth_headers) -> None:
    _add(client, auth_headers)

    created = client.post("/api/v1/books/backup", headers=auth_headers)
    assert created.status_code == 200
    body = created.json()
    assert body["success"] is True
    assert body["message"] == "Backup created successfully"

    listing = client.get("/api/v1/books/backup", headers=auth_headers).json()
    assert [b["filename"] for b in listing["backups"]] == [body["filename"]]
    assert listing["backups"][0]["size"] > 0

    download = client.get(f"/api/v1/books/backup/{body['filename']}", headers=auth_headers)
    assert download.status_code == 200
    assert download.json()[0]["title"] == "Dune"


def test_download_backup_errors(client, auth_headers) -> None:
    not_backup = client.get("/api/v1/books/backup/books.json", headers=auth_headers)
    assert not_backup.status_code == 400
    assert not_backup.json()["detail"] == "Invalid backup file"

    missing = client.get("/api/v1/books/backup/books_backup_1.json", headers=auth_headers)
    assert missing.status_code == 404


def test_storage_errors_become_json_responses(client, auth_headers, tmp_path) -> None:
    (tmp_path / "books.json").write_text("{broken")

    response = client.get("/api/v1/books/", headers=auth_headers)

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to read data from books.json"}
