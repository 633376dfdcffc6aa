"""Tests for manuscript parsing: type detection, metadata and chapter splitting."""
import pytest

from studio.core.errors import UnsupportedFileType
from studio.services.document_processor import (
    DocumentProcessor,
    DocumentType,
    clean_html,
    extract_metadata,
    markdown_to_html,
    split_chapters,
)

RULE = "=" * 20


@pytest.fixture
def processor():
    return DocumentProcessor()


class TestDetectType:
    def test_known_extensions(self, processor):
        assert processor.detect_type("book.txt") == DocumentType.TXT
        assert processor.detect_type("Book.MD") == DocumentType.MARKDOWN
        assert processor.detect_type("book.html") == DocumentType.HTML

    @pytest.mark.parametrize("filename", ["book.pdf", "book.docx", "book", ""])
    def test_unsupported(self, processor, filename):
        with pytest.raises(UnsupportedFileType):
            processor.detect_type(filename)


class TestMarkdown:
    def test_headings_and_paragraphs(self):
        html = markdown_to_html("# Title\n\nFirst line\nsecond line\n\nNext paragraph")
        assert html == "<h1>Title</h1>\n<p>First line<br>second line</p>\n<p>Next paragraph</p>"

    def test_lists_are_grouped(self):
        html = markdown_to_html("- one\n- two\n\n1. first\n2. second")
        assert "<ul><li>one</li><li>two</li></ul>" in html
        assert "<ol><li>first</li><li>second</li></ol>" in html

    def test_inline_emphasis(self):
        html = markdown_to_html("Some **bold** and *italic* and _also italic_ text")
        assert "<strong>bold</strong>" in html
        assert "<em>italic</em>" in html
        assert "<em>also italic</em>" in html

    def test_rules_and_quotes(self):
        html = markdown_to_html("---\n> quoted\n***")
        assert html == "<hr>\n<blockquote>quoted</blockquote>\n<hr>"

    def test_empty_input(self):
        assert markdown_to_html("") == ""


class TestMetadata:
    def test_txt_title_author_and_contents(self):
        text = "\n".join([
            "My Novel",
            "",
            "Author: Jane Doe",
            "",
            "Contents",
            "1. Start",
            "2. End",
            RULE,
            "Chapter 1",
            "It begins.",
        ])
        meta = extract_metadata(text, DocumentType.TXT)

        assert meta.title == "My Novel"
        assert meta.author == "Jane Doe"
        assert "Contents" not in meta.body
        assert "1. Start" not in meta.body
        assert meta.body.startswith("Chapter 1")

    def test_txt_first_line_of_paragraph_is_not_a_title(self):
        meta = extract_metadata("It was a dark night\nand it rained.", DocumentType.TXT)
        assert meta.title is None
        assert meta.body.startswith("It was a dark night")

    def test_html_title_author_and_toc(self):
        markup = (
            "<h1>The Book</h1>"
            "<p>Author: Sam Smith</p>"
            "<h2>Table of Contents</h2><ul><li>[One](#one)</li></ul>"
            "<h2>One</h2><p>Text</p>"
        )
        meta = extract_metadata(markup, DocumentType.HTML)

        assert meta.title == "The Book"
        assert meta.author == "Sam Smith"
        assert "Table of Contents" not in meta.body
        assert meta.body.startswith("<h2>One</h2>")


class TestSplitting:
    def test_txt_without_rules_is_one_chapter(self):
        chapters = split_chapters("Just some text.\n\nMore text.", DocumentType.TXT)
        assert len(chapters) == 1
        assert chapters[0].title == "Chapter 1"
        assert chapters[0].content == "<p>Just some text.</p><p>More text.</p>"

    def test_txt_split_at_long_rules(self):
        text = f"Chapter 1\nOnce upon a time.\n{RULE}\nThe Storm\nRain fell.\n{RULE}\nx"
        chapters = split_chapters(text, DocumentType.TXT)

        assert [c.title for c in chapters] == ["Chapter 1", "The Storm", "Chapter 3"]
        assert chapters[0].content == "<p>Once upon a time.</p>"
        assert chapters[2].content == "<p>x</p>"

    def test_short_rules_do_not_split(self):
        chapters = split_chapters("Part one\n-----\nPart two", DocumentType.TXT)
        assert len(chapters) == 1

    def test_html_split_excludes_headings(self):
        markup = "<h2>One</h2><p>First</p><h3>Two</h3><p>Second</p>"
        chapters = split_chapters(markup, DocumentType.HTML)

        assert [c.title for c in chapters] == ["One", "Two"]
        assert chapters[0].content == "<p>First</p>"
        assert chapters[1].content == "<p>Second</p>"

    def test_html_prologue_and_empty_headings(self):
        intro = "<p>" + "Before anything happened there was a long quiet. " * 2 + "</p>"
        markup = intro + "<h2>Label</h2><h2>Real {#real}</h2><p>Body</p>"
        chapters = split_chapters(markup, DocumentType.HTML)

        assert [c.title for c in chapters] == ["Prologue", "Real"]

    def test_html_without_headings(self):
        chapters = split_chapters("<p>Only text</p>", DocumentType.HTML)
        assert len(chapters) == 1
        assert chapters[0].content == "<p>Only text</p>"


class TestRead:
    def test_clean_html_strips_wrappers(self):
        markup = (
            "<!DOCTYPE html><html><head><title>x</title></head>"
            "<body><style>p{}</style><script>alert(1)</script><p>Hi</p></body></html>"
        )
        assert clean_html(markup) == "<p>Hi</p>"

    def test_read_markdown(self, processor):
        source = "# Saga\n\nAuthor: Kim\n\n## Dawn\n\nLight.\n\n## Dusk\n\nDark."
        doc = processor.read(source.encode("utf-8"), "saga.md")

        assert doc.file_type == DocumentType.MARKDOWN
        assert doc.title == "Saga"
        assert doc.author == "Kim"
        assert [c.title for c in doc.chapters] == ["Dawn", "Dusk"]
        assert doc.suggested_title == "Saga"

    def test_read_txt_uses_filename_without_title(self, processor):
        data = "It was a dark night\nand it rained.".encode("utf-8")
        doc = processor.read(data, "night-story.txt")

        assert doc.title is None
        assert doc.suggested_title == "night-story"
        assert doc.word_count == 8
        assert doc.size_kb == round(len(data) / 1024, 2)

    def test_read_tolerates_bad_bytes(self, processor):
        doc = processor.read(b"Menu caf\xe9\nwith au lait", "menu.txt")
        assert "au lait" in doc.content
