from fastapi.testclient import TestClient

API = "/api/v1"

MARKDOWN = b"""# Saga

Author: Kim

## Dawn

The sun rose over **the hills**.

## Dusk

Night fell.
"""


class TestImportFlow:
    def test_preview_stores_nothing(self, client: TestClient, auth_headers):
        response = client.post(
            f"{API}/imports/preview",
            files={"file": ("saga.md", MARKDOWN, "text/markdown")},
            headers=auth_headers,
        )
        assert response.status_code == 200
        preview = response.json()
        assert preview["file_type"] == "md"
        assert preview["title"] == "Saga"
        assert preview["author"] == "Kim"
        assert [c["title"] for c in preview["chapters"]] == ["Dawn", "Dusk"]

        assert client.get(f"{API}/books/", headers=auth_headers).json() == []

    def test_import_creates_book_and_chapters(self, client: TestClient, auth_headers):
        response = client.post(
            f"{API}/imports/",
            files={"file": ("saga.md", MARKDOWN, "text/markdown")},
            data={"genres": "fantasy, drama"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        book = response.json()
        assert book["title"] == "Saga"
        assert book["author"] == "Kim"
        assert book["genres"] == ["fantasy", "drama"]
        assert book["chapter_count"] == 2
        assert book["description"] == "Imported from MD file: saga.md"

        chapters = client.get(f"{API}/books/{book['id']}/chapters/", headers=auth_headers).json()
        assert [(c["order"], c["title"]) for c in chapters] == [(1, "Dawn"), (2, "Dusk")]
        assert "<strong>the hills</strong>" in chapters[0]["content"]

    def test_import_title_override(self, client: TestClient, auth_headers):
        response = client.post(
            f"{API}/imports/",
            files={"file": ("notes.txt", b"Just one short note.", "text/plain")},
            data={"title": "My Notes", "author": "Me"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        book = response.json()
        assert book["title"] == "My Notes"
        assert book["author"] == "Me"
        assert book["genres"] == ["other"]
        assert book["chapter_count"] == 1

    def test_unsupported_file(self, client: TestClient, auth_headers):
        response = client.post(
            f"{API}/imports/",
            files={"file": ("scan.pdf", b"%PDF-1.4", "application/pdf")},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["type"] == "UnsupportedFileType"


class TestExportFlow:
    def _book(self, client: TestClient, headers) -> dict:
        book = client.post(f"{API}/books/", json={"title": "Sea Story", "author": "Ann"}, headers=headers).json()
        client.post(
            f"{API}/books/{book['id']}/chapters/",
            json={"title": "Harbor", "content": "<p>Boats rocked.</p>"},
            headers=headers,
        )
        return book

    def test_export_book_txt(self, client: TestClient, auth_headers):
        book = self._book(client, auth_headers)

        response = client.get(f"{API}/exports/books/{book['id']}/txt", headers=auth_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.headers["content-disposition"] == 'attachment; filename="sea_story.txt"'
        assert "Boats rocked." in response.text
        assert "CONTENTS" in response.text

    def test_export_options(self, client: TestClient, auth_headers):
        book = self._book(client, auth_headers)

        response = client.get(
            f"{API}/exports/books/{book['id']}/md",
            params={"include_toc": "false", "include_author": "false"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert "## Contents" not in response.text
        assert "**Author:**" not in response.text
        assert response.text.startswith("# Sea Story")

    def test_export_docx(self, client: TestClient, auth_headers):
        book = self._book(client, auth_headers)

        response = client.get(f"{API}/exports/books/{book['id']}/docx", headers=auth_headers)
        assert response.status_code == 200
        assert response.content[:2] == b"PK"

    def test_export_chapter(self, client: TestClient, auth_headers):
        book = self._book(client, auth_headers)
        chapter = client.get(f"{API}/books/{book['id']}/chapters/", headers=auth_headers).json()[0]
        base = f"{API}/exports/books/{book['id']}/chapters/{chapter['id']}"

        response = client.get(f"{base}/html", headers=auth_headers)
        assert response.status_code == 200
        assert "<h1>Harbor</h1>" in response.text

        response = client.get(f"{base}/md", headers=auth_headers)
        assert response.status_code == 400

    def test_unknown_format_and_book(self, client: TestClient, auth_headers):
        book = self._book(client, auth_headers)
        assert client.get(f"{API}/exports/books/{book['id']}/pdf", headers=auth_headers).status_code == 422
        assert client.get(f"{API}/exports/books/book_missing/txt", headers=auth_headers).status_code == 404
