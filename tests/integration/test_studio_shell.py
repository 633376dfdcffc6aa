from fastapi.testclient import TestClient

from studio.services.preferences import EDITOR_SETTINGS, PreferencesStore
from studio.session import preferences_path

API = "/api/v1"
STUDIO = f"{API}/studio"


def create_book(client: TestClient, headers, title="Sea Story") -> dict:
    return client.post(f"{API}/books/", json={"title": title}, headers=headers).json()


def create_chapter(client: TestClient, headers, book_id: str, **data) -> dict:
    data.setdefault("title", "Harbor")
    return client.post(f"{API}/books/{book_id}/chapters/", json=data, headers=headers).json()


class TestStudioShell:
    """Tabs, navigation and the editor through the studio endpoints."""

    def test_initial_state_is_the_editor(self, client: TestClient, auth_headers):
        response = client.get(f"{STUDIO}/state", headers=auth_headers)
        assert response.status_code == 200
        state = response.json()

        assert state["route"] == "editor"
        assert [t["route"] for t in state["tabs"]] == [
            "editor", "characters", "terms", "timeline", "statistics", "bookshelf",
        ]
        assert [t["route"] for t in state["tabs"] if t["active"]] == ["editor"]
        assert "No book selected" in state["content"]

    def test_navigation(self, client: TestClient, auth_headers):
        response = client.post(f"{STUDIO}/navigate/bookshelf", headers=auth_headers)
        assert response.status_code == 200
        state = response.json()
        assert state["route"] == "bookshelf"
        assert "No books yet" in state["content"]

        response = client.post(f"{STUDIO}/navigate/nowhere", headers=auth_headers)
        assert response.status_code == 404
        assert client.get(f"{STUDIO}/state", headers=auth_headers).json()["route"] == "bookshelf"

        response = client.post(f"{STUDIO}/reload/statistics", headers=auth_headers)
        assert response.json()["route"] == "statistics"

    def test_selected_book_shows_in_every_tab(self, client: TestClient, auth_headers):
        book = create_book(client, auth_headers)
        response = client.post(f"{API}/books/{book['id']}/select", headers=auth_headers)
        assert response.status_code == 200

        state = client.get(f"{STUDIO}/state", headers=auth_headers).json()
        assert "Sea Story" in state["content"]

        state = client.post(f"{STUDIO}/navigate/timeline", headers=auth_headers).json()
        assert "Sea Story" in state["content"]

    def test_edit_and_save_chapter(self, client: TestClient, auth_headers):
        book = create_book(client, auth_headers)
        chapter = create_chapter(client, auth_headers, book["id"])
        client.post(f"{API}/books/{book['id']}/select", headers=auth_headers)

        state = client.post(f"{STUDIO}/editor/chapters/{chapter['id']}", headers=auth_headers).json()
        assert 'data-chapter-id="' + chapter["id"] + '"' in state["content"]

        state = client.patch(
            f"{STUDIO}/editor/chapter",
            json={"content": "<p>Boats rocked gently.</p>"},
            headers=auth_headers,
        ).json()
        assert "Not saved" in state["content"]
        assert "3 words" in state["content"]

        state = client.post(f"{STUDIO}/editor/save", headers=auth_headers).json()
        assert ">Saved<" in state["content"]

        stored = client.get(f"{API}/books/{book['id']}/chapters/{chapter['id']}", headers=auth_headers).json()
        assert stored["content"] == "<p>Boats rocked gently.</p>"
        assert stored["word_count"] == 3

    def test_switching_tabs_saves_the_open_chapter(self, client: TestClient, auth_headers):
        book = create_book(client, auth_headers)
        chapter = create_chapter(client, auth_headers, book["id"])
        client.post(f"{API}/books/{book['id']}/select", headers=auth_headers)
        client.post(f"{STUDIO}/editor/chapters/{chapter['id']}", headers=auth_headers)
        client.patch(f"{STUDIO}/editor/chapter", json={"content": "<p>Not lost</p>"}, headers=auth_headers)

        client.post(f"{STUDIO}/navigate/statistics", headers=auth_headers)

        stored = client.get(f"{API}/books/{book['id']}/chapters/{chapter['id']}", headers=auth_headers).json()
        assert stored["content"] == "<p>Not lost</p>"

    def test_send_character_to_editor(self, client: TestClient, auth_headers):
        book = create_book(client, auth_headers)
        chapter = create_chapter(client, auth_headers, book["id"], content="<p>Hello</p>")
        character = client.post(
            f"{API}/books/{book['id']}/characters/", json={"name": "Ann"}, headers=auth_headers
        ).json()
        client.post(f"{API}/books/{book['id']}/select", headers=auth_headers)
        client.post(f"{STUDIO}/editor/chapters/{chapter['id']}", headers=auth_headers)

        client.post(f"{STUDIO}/navigate/characters", headers=auth_headers)
        state = client.post(f"{STUDIO}/characters/send/{character['id']}", headers=auth_headers).json()
        assert state["notices"][-1]["level"] == "info"

        stored = client.get(f"{API}/books/{book['id']}/chapters/{chapter['id']}", headers=auth_headers).json()
        assert '<span class="character-mention">Ann</span>' in stored["content"]
        assert stored["character_ids"] == [character["id"]]

        response = client.post(f"{STUDIO}/bookshelf/send/{character['id']}", headers=auth_headers)
        assert response.status_code == 404

    def test_editor_settings(self, client: TestClient, auth_headers):
        state = client.patch(f"{STUDIO}/editor/settings", json={"font_size": 99}, headers=auth_headers).json()
        assert state["notices"][-1]["level"] == "warning"

        state = client.patch(f"{STUDIO}/editor/settings", json={"theme": "sepia"}, headers=auth_headers).json()
        assert state["notices"][-1]["message"] == "Settings saved"
        assert "theme-sepia" in state["content"]

    def test_last_book_is_restored_after_logout(self, client: TestClient, auth_headers):
        book = create_book(client, auth_headers, "Remembered")
        client.post(f"{API}/books/{book['id']}/select", headers=auth_headers)
        client.post(f"{API}/auth/logout/", headers=auth_headers)

        state = client.get(f"{STUDIO}/state", headers=auth_headers).json()
        assert state["route"] == "editor"
        assert "Remembered" in state["content"]

    def test_unreadable_editor_settings_fall_back_to_defaults(self, client: TestClient, auth_headers, test_user):
        PreferencesStore(preferences_path(str(test_user.id))).set(EDITOR_SETTINGS, {"font_size": "big"})

        state = client.get(f"{STUDIO}/state", headers=auth_headers).json()
        assert state["route"] == "editor"
        assert "font-size: 16px" in state["content"]

        response = client.patch(f"{STUDIO}/editor/settings", json={"theme": "dark"}, headers=auth_headers)
        assert response.status_code == 200
        assert "theme-dark" in response.json()["content"]

    def test_editor_that_failed_to_start_is_unavailable(self, client: TestClient, auth_headers, monkeypatch):
        class BrokenEditor:
            def __init__(self, session):
                raise RuntimeError("cannot build editor")

        monkeypatch.setattr("studio.session.EditorView", BrokenEditor)

        assert client.get(f"{STUDIO}/state", headers=auth_headers).status_code == 200
        response = client.post(f"{STUDIO}/editor/save", headers=auth_headers)
        assert response.status_code == 503
        response = client.patch(f"{STUDIO}/editor/chapter", json={"content": "<p>x</p>"}, headers=auth_headers)
        assert response.status_code == 503
