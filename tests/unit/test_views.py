"""Tests for the tab views wired through a studio session."""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from studio.services.preferences import (
    CURRENT_BOOK_ID,
    CURRENT_CHAPTER_ID,
    EDITOR_SETTINGS,
    PreferencesStore,
)
from studio.session import StudioSession
from studio.views.bookshelf import time_ago
from studio.views.editor import EditorSettings


async def open_book(studio, title="Book"):
    """Start the studio and select a new book in every tab."""
    await studio.router.start()
    book = await studio.books.create({"title": title})
    studio.books.select(book)
    await studio.bus.drain()
    return book


class TestTimeAgo:
    NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "delta, expected",
        [
            (timedelta(hours=2), "Today"),
            (timedelta(days=1), "Yesterday"),
            (timedelta(days=3), "3 days ago"),
            (timedelta(days=7), "1 week ago"),
            (timedelta(days=20), "2 weeks ago"),
            (timedelta(days=31), "1 month ago"),
            (timedelta(days=95), "3 months ago"),
        ],
    )
    def test_labels(self, delta, expected):
        assert time_ago((self.NOW - delta).isoformat(), now=self.NOW) == expected

    def test_missing_or_invalid(self):
        assert time_ago(None) == "Recently"
        assert time_ago("yesterday-ish") == "Recently"


class TestEditorSettings:
    def test_invalid_stored_values_fall_back_to_defaults(self):
        assert EditorSettings.from_dict({"font_size": 99}) == EditorSettings()
        assert EditorSettings.from_dict(None) == EditorSettings()

    def test_non_numeric_stored_values_fall_back_to_defaults(self):
        assert EditorSettings.from_dict({"font_size": "big"}) == EditorSettings()
        assert EditorSettings.from_dict({"line_height": "tall", "theme": "dark"}) == EditorSettings()

    def test_unknown_keys_are_ignored(self):
        loaded = EditorSettings.from_dict({"theme": "sepia", "legacy": True})
        assert loaded.theme == "sepia"


class TestEditorView:
    @pytest.mark.asyncio
    async def test_book_selection_reaches_editor(self, studio):
        book = await open_book(studio)
        editor = studio.current_view

        assert editor.name == "editor"
        assert editor.book["id"] == book["id"]
        assert studio.preferences.get(CURRENT_BOOK_ID) == book["id"]
        assert "Book" in studio.content.html
        await studio.close()

    @pytest.mark.asyncio
    async def test_create_edit_and_save(self, studio):
        book = await open_book(studio)
        editor = studio.current_view

        assert await editor.create_chapter("   ") is None
        assert editor.pop_notices()[-1].message == "Enter a chapter title"

        chapter = await editor.create_chapter("Opening")
        assert chapter["order"] == 1
        assert editor.chapter["id"] == chapter["id"]
        assert studio.preferences.get(CURRENT_CHAPTER_ID) == chapter["id"]

        editor.edit(content="<p>Hello brave world</p>")
        assert editor.dirty
        assert editor.save_status == "unsaved"
        assert editor.stats.words == 3
        assert editor.autosaver.pending

        saved = await editor.save()
        assert saved["word_count"] == 3
        assert not editor.dirty
        assert not editor.autosaver.pending
        stored = await studio.chapters.get(book["id"], chapter["id"])
        assert stored["content"] == "<p>Hello brave world</p>"
        assert "3 words" in studio.content.html
        await studio.close()

    @pytest.mark.asyncio
    async def test_debounced_auto_save(self, studio):
        book = await open_book(studio)
        editor = studio.current_view
        chapter = await editor.create_chapter("Opening")
        editor.autosaver.debounce = 0.01

        editor.change_text("<p>Typed quickly</p>")
        await asyncio.sleep(0.05)
        await editor.autosaver.wait_idle()

        assert not editor.dirty
        stored = await studio.chapters.get(book["id"], chapter["id"])
        assert stored["content"] == "<p>Typed quickly</p>"
        await studio.close()

    @pytest.mark.asyncio
    async def test_leaving_the_tab_saves_pending_edits(self, studio):
        book = await open_book(studio)
        editor = studio.current_view
        chapter = await editor.create_chapter("Opening")
        editor.edit(content="<p>Unsaved words</p>")

        await studio.router.navigate_to("terms")

        assert not editor.dirty
        assert not editor.autosaver.interval_running
        stored = await studio.chapters.get(book["id"], chapter["id"])
        assert stored["content"] == "<p>Unsaved words</p>"
        await studio.close()

    @pytest.mark.asyncio
    async def test_select_chapter_without_book(self, studio):
        await studio.router.start()
        editor = studio.current_view

        assert await editor.select_chapter("chapter_x") is None
        assert editor.pop_notices()[-1].message == "Select a book first"
        await studio.close()

    @pytest.mark.asyncio
    async def test_settings_are_validated_and_persisted(self, studio):
        await studio.router.start()
        editor = studio.current_view

        assert editor.update_settings(font_size=40) is None
        assert editor.update_settings(colour="red") is None
        assert editor.settings.font_size == 16

        updated = editor.update_settings(theme="dark", font_size=20, auto_save=False)
        assert updated.theme == "dark"
        assert not editor.autosaver.interval_running
        assert studio.preferences.get(EDITOR_SETTINGS)["font_size"] == 20
        await studio.close()

    @pytest.mark.asyncio
    async def test_goal_progress_is_capped(self, studio):
        await open_book(studio)
        editor = studio.current_view
        await editor.create_chapter("Opening")
        editor.update_settings(daily_goal=4)

        editor.edit(content="<p>one two</p>")
        assert editor.goal_progress == 50

        editor.edit(content="<p>one two three four five six</p>")
        assert editor.goal_progress == 100
        await studio.close()

    @pytest.mark.asyncio
    async def test_links_are_saved(self, studio):
        book = await open_book(studio)
        editor = studio.current_view
        chapter = await editor.create_chapter("Opening")
        term = await studio.terms.create(book["id"], {"name": "Gate"})

        assert await editor.link("term", term["id"])
        stored = await studio.chapters.get(book["id"], chapter["id"])
        assert stored["term_ids"] == [term["id"]]

        assert await editor.unlink("term", term["id"])
        stored = await studio.chapters.get(book["id"], chapter["id"])
        assert stored["term_ids"] == []

        assert await editor.link("weapon", "x") is False
        await studio.close()

    @pytest.mark.asyncio
    async def test_export_chapter(self, studio):
        await open_book(studio)
        editor = studio.current_view
        assert editor.export_chapter("txt") is None

        await editor.create_chapter("Opening")
        editor.edit(content="<p>Words here</p>")
        exported = editor.export_chapter("txt")
        assert exported.content == b"Words here"
        assert editor.export_chapter("md") is None
        await studio.close()

    @pytest.mark.asyncio
    async def test_deleting_the_book_resets_editor(self, studio):
        book = await open_book(studio)
        editor = studio.current_view
        await editor.create_chapter("Opening")

        await studio.books.delete(book["id"])

        assert editor.book is None
        assert editor.chapter is None
        assert studio.preferences.get(CURRENT_BOOK_ID) is None
        assert studio.preferences.get(CURRENT_CHAPTER_ID) is None
        await studio.close()

    @pytest.mark.asyncio
    async def test_restart_restores_book_and_chapter(self, store, tmp_path):
        prefs_path = tmp_path / "restore.json"
        first = StudioSession(store=store, preferences=PreferencesStore(prefs_path))
        book = await open_book(first, "Saga")
        chapter = await first.current_view.create_chapter("Opening")
        await first.close()

        second = StudioSession(store=store, preferences=PreferencesStore(prefs_path))
        await second.router.start()
        await second.bus.drain()
        editor = second.current_view

        assert editor.book["id"] == book["id"]
        assert editor.chapter["id"] == chapter["id"]
        assert second.books.current_book["id"] == book["id"]
        await second.close()

    @pytest.mark.asyncio
    async def test_corrupt_settings_file_still_opens_editor(self, store, tmp_path):
        prefs = PreferencesStore(tmp_path / "corrupt.json")
        prefs.set(EDITOR_SETTINGS, {"font_size": "big"})
        studio = StudioSession(store=store, preferences=prefs)

        await studio.router.start()

        editor = studio.router.get_module("editor")
        assert editor is not None
        assert editor.settings == EditorSettings()
        assert editor.update_settings(font_size="huge") is None
        assert editor.pop_notices()[-1].level == "warning"
        await studio.close()

    @pytest.mark.asyncio
    async def test_stale_book_preference_is_dropped(self, store, tmp_path):
        prefs = PreferencesStore(tmp_path / "stale.json")
        prefs.set(CURRENT_BOOK_ID, "book_gone")
        prefs.set(CURRENT_CHAPTER_ID, "chapter_gone")
        studio = StudioSession(store=store, preferences=prefs)

        await studio.router.start()

        assert studio.current_view.book is None
        assert prefs.get(CURRENT_BOOK_ID) is None
        assert prefs.get(CURRENT_CHAPTER_ID) is None
        await studio.close()


class TestCatalogViews:
    @pytest.mark.asyncio
    async def test_character_sent_to_editor_is_inserted(self, studio):
        book = await open_book(studio)
        editor = studio.current_view
        chapter = await editor.create_chapter("Opening")
        editor.edit(content="<p>Hello</p>")

        characters = await studio.view("characters")
        ann = await characters.create({"name": "Ann", "role": "protagonist"})
        assert characters.send_to_editor(ann["id"])
        await studio.bus.drain()

        stored = await studio.chapters.get(book["id"], chapter["id"])
        assert stored["content"] == '<p>Hello<span class="character-mention">Ann</span>&nbsp;</p>'
        assert stored["character_ids"] == [ann["id"]]
        assert characters.pop_notices()[-1].level == "info"
        await studio.close()

    @pytest.mark.asyncio
    async def test_timeline_event_mention_shows_date(self, studio):
        book = await open_book(studio)
        editor = studio.current_view
        chapter = await editor.create_chapter("Opening")

        timeline = await studio.view("timeline")
        battle = await timeline.create({"title": "Battle", "date_year": "1200", "date_month": "5"})
        timeline.send_to_editor(battle["id"])
        await studio.bus.drain()

        stored = await studio.chapters.get(book["id"], chapter["id"])
        assert '<span class="timeline-mention" title="05.1200">Battle</span>' in stored["content"]
        assert stored["event_ids"] == [battle["id"]]
        await studio.close()

    @pytest.mark.asyncio
    async def test_send_without_open_chapter_warns(self, studio):
        await open_book(studio)
        editor = studio.current_view

        terms = await studio.view("terms")
        gate = await terms.create({"name": "Gate"})
        terms.send_to_editor(gate["id"])
        await studio.bus.drain()

        assert editor.pop_notices()[-1].message == "Select a chapter first"
        await studio.close()

    @pytest.mark.asyncio
    async def test_filter_search_and_stats(self, studio):
        await open_book(studio)
        characters = await studio.view("characters")
        await characters.create({"name": "Ann", "role": "protagonist"})
        await characters.create({"name": "Bob", "role": "antagonist"})
        await characters.create({"name": "Annika", "role": "minor"})

        assert [c["name"] for c in characters.set_filter("antagonist")] == ["Bob"]
        characters.set_filter("all")
        assert [c["name"] for c in characters.search("ann")] == ["Ann", "Annika"]
        assert characters.stats["total"] == 3
        assert "Annika" in studio.content.html
        assert "Bob" not in studio.content.html
        await studio.close()

    @pytest.mark.asyncio
    async def test_create_requires_book_and_label(self, studio):
        await studio.router.start()
        terms = await studio.view("terms")

        assert await terms.create({"name": "Gate"}) is None
        assert terms.pop_notices()[-1].message == "Select a book first"

        book = await studio.books.create({"title": "Book"})
        studio.books.select(book)
        await studio.bus.drain()
        assert await terms.create({"name": "  "}) is None
        assert terms.pop_notices()[-1].message == "Enter a name"
        await studio.close()

    @pytest.mark.asyncio
    async def test_timeline_sort_and_move(self, studio):
        await open_book(studio)
        timeline = await studio.view("timeline")
        late = await timeline.create({"title": "Late", "date_year": "1500"})
        early = await timeline.create({"title": "Early", "date_year": "900"})

        assert [e["title"] for e in timeline.visible] == ["Late", "Early"]
        assert [e["title"] for e in timeline.sort_by_date()] == ["Early", "Late"]

        timeline.set_sort("order")
        assert await timeline.move(early["id"], -1)
        assert [e["id"] for e in timeline.visible] == [early["id"], late["id"]]
        await studio.close()

    @pytest.mark.asyncio
    async def test_deleting_the_book_empties_lists(self, studio):
        book = await open_book(studio)
        terms = await studio.view("terms")
        await terms.create({"name": "Gate"})

        await studio.books.delete(book["id"])

        assert terms.items == []
        await studio.close()

    @pytest.mark.asyncio
    async def test_deleting_another_book_keeps_lists(self, studio):
        await open_book(studio, "Open")
        other = await studio.books.create({"title": "Other"})
        terms = await studio.view("terms")
        await terms.create({"name": "Gate"})

        await studio.books.delete(other["id"])
        await studio.bus.drain()

        assert [t["name"] for t in terms.items] == ["Gate"]
        await studio.close()

    @pytest.mark.asyncio
    async def test_timeline_links_characters_to_events(self, studio):
        book = await open_book(studio)
        ann = await studio.characters.create(book["id"], {"name": "Ann"})
        timeline = await studio.view("timeline")
        event = await timeline.create({"title": "Siege"})

        linked = await timeline.link_character(event["id"], ann["id"])
        assert linked["character_ids"] == [ann["id"]]
        assert '<div class="timeline-characters">Ann</div>' in studio.content.html

        # Linking twice keeps a single reference
        await timeline.link_character(event["id"], ann["id"])
        assert timeline.find(event["id"])["character_ids"] == [ann["id"]]

        unlinked = await timeline.unlink_character(event["id"], ann["id"])
        assert unlinked["character_ids"] == []
        assert '<div class="timeline-characters"></div>' in studio.content.html
        await studio.close()


class TestStatisticsView:
    @pytest.mark.asyncio
    async def test_totals_and_rows(self, studio):
        book = await open_book(studio)
        await studio.chapters.create(book["id"], {"title": "Two", "order": 2, "content": "<p>four five</p>"})
        await studio.chapters.create(book["id"], {"title": "One", "order": 1, "content": "<p>one two three</p>"})
        await studio.characters.create(book["id"], {"name": "Ann", "role": "protagonist"})

        stats = await studio.view("statistics")
        totals = stats.totals

        assert totals.words == 5
        assert totals.chapters == 2
        assert totals.characters == 1
        assert totals.pages == 1
        assert [r.title for r in stats.chapter_rows] == ["One", "Two"]
        assert stats.chapter_rows[0].characters == len("one two three")
        assert [p.cumulative for p in stats.progress] == [3, 5]

        exported = stats.export_book("md")
        assert exported.filename == "book.md"
        await studio.close()


class TestBookshelfView:
    @pytest.mark.asyncio
    async def test_create_select_and_delete(self, studio):
        await studio.router.start()
        shelf = await studio.view("bookshelf")

        assert await shelf.create_book({"title": ""}) is None
        book = await shelf.create_book({"title": "Saga", "genres": []})
        assert book["genres"] == ["other"]
        assert shelf.totals["books"] == 1

        await shelf.select_book(book["id"])
        await studio.bus.drain()
        assert studio.books.current_book["id"] == book["id"]

        assert await shelf.delete_book(book["id"])
        assert shelf.books == []
        await studio.close()

    @pytest.mark.asyncio
    async def test_import_flow(self, studio):
        await studio.router.start()
        shelf = await studio.view("bookshelf")

        assert shelf.preview_import(b"data", "scan.pdf") is None
        assert shelf.pop_notices()[-1].level == "error"

        source = "# Saga\n\n## Dawn\n\nLight.\n\n## Dusk\n\nDark.".encode("utf-8")
        preview = shelf.preview_import(source, "saga.md")
        assert [c.title for c in preview.chapters] == ["Dawn", "Dusk"]

        book = await shelf.confirm_import(author="Kim")
        assert book["title"] == "Saga"
        assert book["author"] == "Kim"
        assert book["chapter_count"] == 2
        assert shelf.import_preview is None

        chapters = await studio.chapters.get_all(book["id"])
        assert [(c["order"], c["title"]) for c in chapters] == [(1, "Dawn"), (2, "Dusk")]
        await studio.close()

    @pytest.mark.asyncio
    async def test_chapter_changes_refresh_counts(self, studio):
        await studio.router.start()
        shelf = await studio.view("bookshelf")
        book = await shelf.create_book({"title": "Saga"})

        chapter = await studio.chapters.create(book["id"], {"title": "One", "content": "<p>two words</p>"})
        await studio.bus.drain()
        assert shelf.find(book["id"])["chapter_count"] == 1
        assert shelf.totals == {"books": 1, "chapters": 1, "words": 2}

        await studio.chapters.delete(book["id"], chapter["id"])
        await studio.bus.drain()
        assert shelf.find(book["id"])["chapter_count"] == 0
        await studio.close()

    @pytest.mark.asyncio
    async def test_book_deleted_elsewhere_leaves_the_shelf(self, studio):
        await studio.router.start()
        shelf = await studio.view("bookshelf")
        book = await shelf.create_book({"title": "Saga"})

        await studio.books.delete(book["id"])
        await studio.bus.drain()

        assert shelf.books == []
        await studio.close()

    @pytest.mark.asyncio
    async def test_details_panel(self, studio):
        await studio.router.start()
        shelf = await studio.view("bookshelf")
        book = await shelf.create_book({"title": "Saga", "author": "Kim", "description": "Long & winding"})

        shown = shelf.show_details(book["id"])
        assert shown["id"] == book["id"]
        assert '<div class="book-details">' in studio.content.html
        assert '<p class="details-author">Kim</p>' in studio.content.html
        assert "Long &amp; winding" in studio.content.html

        assert shelf.show_details(None) is None
        assert '<div class="book-details">' not in studio.content.html
        await studio.close()
