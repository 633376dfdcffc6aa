"""Tests for the shared text helpers."""
from studio.services.text import (
    chapter_stats,
    count_words,
    html_to_text,
    page_count,
    reading_time,
    slugify,
    strip_tags,
    text_to_html,
)


def test_strip_tags_decodes_entities():
    assert strip_tags("<p>Tom &amp; Jerry</p>") == "Tom & Jerry"


def test_count_words_ignores_markup():
    assert count_words("<p>One <em>two</em></p><p>three</p>") == 3
    assert count_words("") == 0
    assert count_words("<p></p>") == 0


def test_html_to_text_keeps_paragraphs():
    assert html_to_text("<p>First<br>line</p><p>Second</p>") == "First\nline\n\nSecond"


def test_text_to_html():
    assert text_to_html("a < b\n\nnext\nline") == "<p>a &lt; b</p><p>next<br>line</p>"
    assert text_to_html("   ") == "<p></p>"


def test_reading_time_and_pages_round_up():
    assert reading_time(0) == 0
    assert reading_time(1) == 1
    assert reading_time(201) == 2
    assert page_count(250) == 1
    assert page_count(251) == 2


def test_chapter_stats():
    stats = chapter_stats("<p>Hello world</p><p>Again</p>")
    assert stats.words == 3
    assert stats.characters == len("Hello world  Again")
    assert stats.characters_no_spaces == len("HelloworldAgain")
    assert stats.paragraphs == 2
    assert stats.reading_time == 1


def test_slugify():
    assert slugify("The Storm, Part 2!") == "the-storm-part-2"
