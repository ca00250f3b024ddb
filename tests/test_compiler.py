import os
import zipfile

import pytest

from bookpress.compiler import (
    UNTITLED,
    Compiler,
    CoverState,
    compile_book,
    output_filename,
    stylesheet_href,
)
from bookpress.config import CompileConfig
from bookpress.epub import PACKAGE_PATH, ContentType, EpubError, EpubWriter
from bookpress.metadata import MetadataError
from bookpress.navigation import NavigationItem, NavState
from bookpress.templates import XML_HEADER, load_templates


class RecordingWriter:
    """Stands in for EpubWriter; remembers what was added."""

    def __init__(self):
        self.entries = []
        self.pages = {}

    def add(self, name, content_type, data, *properties):
        self.entries.append((name, content_type, list(properties)))
        self.pages[name] = data

    def add_file(self, source, name, content_type, *properties):
        self.entries.append((name, content_type, list(properties)))


@pytest.fixture
def build(source, tmp_path, read_epub):
    """Compile the source tree; return (navigation items, archive entries)."""
    def _build(config=None):
        out = tmp_path / "book.epub"
        items = compile_book(str(source), str(out), config or CompileConfig())
        return items, read_epub(out)
    return _build


@pytest.fixture
def run_compiler(source, monkeypatch):
    """Run a Compiler over the source tree against a RecordingWriter."""
    def _run(config=None, lang="en", stylesheet=None):
        monkeypatch.chdir(source)
        writer = RecordingWriter()
        compiler = Compiler(
            config or CompileConfig(), writer, load_templates(), lang=lang, stylesheet=stylesheet
        )
        compiler.run()
        return compiler, writer
    return _run


# ── Helpers ────────────────────────────────────────────────────────────


def test_output_filename():
    assert output_filename("index.md") == "index.xhtml"
    assert output_filename("part1/ch.1.markdown") == "part1/ch.1.xhtml"


def test_stylesheet_href():
    assert stylesheet_href("index.md", "style.css") == "style.css"
    assert stylesheet_href("part/ch.md", "style.css") == "../style.css"
    assert stylesheet_href("a/b/c.md", "css/book.css") == "../../css/book.css"
    assert stylesheet_href("css/notes.md", "css/book.css") == "book.css"


# ── Scenarios ──────────────────────────────────────────────────────────


def test_single_page_with_stylesheet(source, write, build):
    write("index.md", "---\ntitle: Home\n---\nHello\n")
    write("style.css", "body { margin: 0 }")
    before = os.getcwd()

    items, entries = build()

    assert os.getcwd() == before
    assert items == (NavigationItem("Home", "", 0, "index.xhtml", ContentType.PRIMARY),)
    page = entries["EPUB/index.xhtml"]
    assert page.startswith(XML_HEADER)
    assert "<title>Home</title>" in page
    assert 'href="style.css"' in page
    assert "<p>Hello</p>" in page
    assert entries["EPUB/style.css"] == "body { margin: 0 }"

    toc = entries["EPUB/_toc.xhtml"]
    assert 'href="style.css"' in toc
    assert '<a href="index.xhtml">Home</a>' in toc
    assert 'href="_toc.xhtml" media-type="application/xhtml+xml" properties="nav"/>' in entries[PACKAGE_PATH]


def test_first_matching_cover_wins(source, write, build):
    write("cover.jpg", b"c")
    write("photo.jpg", b"p")

    _, entries = build(CompileConfig({"covers": ["*.jpg"]}))

    opf = entries[PACKAGE_PATH]
    assert 'href="cover.jpg" media-type="image/jpeg" properties="cover-image"/>' in opf
    assert 'href="photo.jpg" media-type="image/jpeg"/>' in opf
    assert opf.count('properties="cover-image"') == 1


def test_cover_follows_traversal_order(source, write, run_compiler):
    write("art/cover.png", b"a")
    write("cover.jpg", b"c")

    compiler, writer = run_compiler()

    assert writer.entries[:2] == [
        ("art/cover.png", ContentType.MEDIA, ["cover-image"]),
        ("cover.jpg", ContentType.MEDIA, []),
    ]
    assert compiler.cover is CoverState.ASSIGNED


def test_declared_nav_suppresses_fallback(source, write, build):
    write("chapter.md", "---\ntitle: Contents\nproperties: [nav]\n---\n1. [One](one.xhtml)\n")

    items, entries = build()

    assert "EPUB/_toc.xhtml" not in entries
    assert [i.filename for i in items] == ["chapter.xhtml"]
    assert '<nav epub:type="toc" id="toc">' in entries["EPUB/chapter.xhtml"]
    assert 'href="chapter.xhtml" media-type="application/xhtml+xml" properties="nav"/>' in entries[PACKAGE_PATH]


def test_hidden_entries_invisible(source, write, build):
    write(".draft/notes.md", "# Draft\n")
    write(".hidden.md", "# Hidden\n")
    write("~backup.md", "# Backup\n")
    write(".DS_Store", b"\0")
    write("part/.cache/x.png", b"x")
    write("part/ch.md", "# Chapter\n")

    items, entries = build()

    assert [i.filename for i in items] == ["part/ch.xhtml"]
    names = [n for n in entries if n.startswith("EPUB/")]
    assert sorted(names) == ["EPUB/_toc.xhtml", "EPUB/package.opf", "EPUB/part/ch.xhtml"]
    assert "notes" not in entries[PACKAGE_PATH]
    assert "Draft" not in entries["EPUB/_toc.xhtml"]


# ── Properties ─────────────────────────────────────────────────────────


def test_cover_image_property_rewritten(source, write, run_compiler):
    write("index.md", "---\nproperties: [cover-image, nav]\n---\nx\n")

    compiler, writer = run_compiler()

    assert writer.entries == [("index.xhtml", ContentType.PRIMARY, ["cover", "nav"])]
    assert compiler.navigation.state is NavState.SATISFIED


def test_untitled_document_and_publication_language(source, write, build):
    write("metadata.yaml", "title: Book\nlang: [ru, en]\n")
    write("a.md", "No front matter here.\n")
    write("b.md", "---\nlang: en\ntitle: English\n---\nText\n")

    items, entries = build()

    assert items[0].title == UNTITLED
    assert "<title>* * *</title>" in entries["EPUB/a.xhtml"]
    assert 'xml:lang="ru"' in entries["EPUB/a.xhtml"]
    assert 'xml:lang="en"' in entries["EPUB/b.xhtml"]
    assert 'xml:lang="ru"' in entries["EPUB/_toc.xhtml"]
    assert "EPUB/metadata.yaml" not in entries
    assert "<dc:title>Book</dc:title>" in entries[PACKAGE_PATH]


def test_fallback_toc_lists_documents_in_order(source, write, build):
    write("a.md", "---\ntitle: Alpha\nsubtitle: First\n---\nA\n")
    write("b/c.md", "---\ntitle: Gamma\nlevel: 1\n---\nC\n")
    write("d.md", "---\ntitle: Delta\nhidden: true\n---\nD\n")

    items, entries = build()

    assert items == (
        NavigationItem("Alpha", "First", 0, "a.xhtml", ContentType.PRIMARY),
        NavigationItem("Gamma", "", 1, "b/c.xhtml", ContentType.PRIMARY),
        NavigationItem("Delta", "", 0, "d.xhtml", ContentType.AUXILIARY),
    )

    toc = entries["EPUB/_toc.xhtml"]
    assert "<title>Оглавление</title>" in toc
    assert '<li class="level-0"><a href="a.xhtml">Alpha <small>First</small></a></li>' in toc
    assert '<li class="level-1"><a href="b/c.xhtml">Gamma</a></li>' in toc
    assert toc.index("a.xhtml") < toc.index("b/c.xhtml") < toc.index("d.xhtml")
    assert toc.count("<li ") == 3


def test_hidden_document_is_not_linear(source, write, build):
    write("a.md", "---\nhidden: yes\n---\nA\n")

    _, entries = build()

    opf = entries[PACKAGE_PATH]
    assert '<itemref idref="item-1" linear="no"/>' in opf


def test_stylesheet_relative_to_document(source, write, build):
    write("style.css", "")
    write("part/one/ch.md", "# Deep\n")

    _, entries = build()

    assert 'href="../../style.css"' in entries["EPUB/part/one/ch.xhtml"]
    assert 'href="style.css"' in entries["EPUB/_toc.xhtml"]


def test_no_stylesheet_link_when_file_missing(source, write, run_compiler):
    write("index.md", "# Hi\n")

    _, writer = run_compiler()

    assert "stylesheet" not in writer.pages["index.xhtml"]
    assert "stylesheet" not in writer.pages["_toc.xhtml"]


def test_body_normalized(source, write, run_compiler):
    write("index.md", "First paragraph.\n\n\n\nSecond & last.\n")

    _, writer = run_compiler()

    assert "<p>First paragraph.</p>\n<p>Second &amp; last.</p>" in writer.pages["index.xhtml"]


def test_title_escaped(source, write, run_compiler):
    write("index.md", "---\ntitle: Fish & Chips\n---\nx\n")

    _, writer = run_compiler()

    assert "<title>Fish &amp; Chips</title>" in writer.pages["index.xhtml"]


def test_navigation_frozen_after_run(source, write, run_compiler):
    write("index.md", "# Hi\n")

    compiler, _ = run_compiler()

    assert compiler.navigation.frozen
    with pytest.raises(RuntimeError):
        compiler.navigation.append(compiler.navigation.items[0])


def test_custom_toc_title(source, write, run_compiler):
    write("index.md", "# Hi\n")

    _, writer = run_compiler(CompileConfig({"toc_title": "Contents"}))

    assert "<title>Contents</title>" in writer.pages["_toc.xhtml"]
    assert writer.entries[-1] == ("_toc.xhtml", ContentType.AUXILIARY, ["nav"])


def test_template_override(source, write, build):
    write(".templates/page.xhtml", "<p>custom {{ title }}</p>")
    write("index.md", "---\ntitle: Home\n---\nx\n")

    _, entries = build()

    assert entries["EPUB/index.xhtml"] == XML_HEADER + "<p>custom Home</p>"
    assert not any(".templates" in name for name in entries)


# ── Errors ─────────────────────────────────────────────────────────────


def test_processing_error_aborts_compile(source, write, tmp_path):
    write("a.md", "# A\n")
    write("b.md", "---\ntitle: [broken\n---\nB\n")
    write("c.md", "# C\n")
    out = tmp_path / "book.epub"
    before = os.getcwd()

    with pytest.raises(MetadataError):
        compile_book(str(source), str(out), CompileConfig())

    assert os.getcwd() == before
    # The archive is closed even though the compile failed
    with zipfile.ZipFile(out) as zf:
        names = zf.namelist()
    assert "EPUB/a.xhtml" in names
    assert "EPUB/c.xhtml" not in names
    assert "EPUB/_toc.xhtml" not in names
    assert PACKAGE_PATH in names


def test_colliding_output_names(source, write, tmp_path):
    write("index.md", "# One\n")
    write("index.markdown", "# Two\n")

    with pytest.raises(EpubError):
        compile_book(str(source), str(tmp_path / "book.epub"), CompileConfig())


def test_missing_source_directory(tmp_path):
    before = os.getcwd()
    with pytest.raises(OSError):
        compile_book(str(tmp_path / "nope"), str(tmp_path / "book.epub"), CompileConfig())
    assert os.getcwd() == before
    assert not (tmp_path / "book.epub").exists()


def test_output_inside_source_is_not_compiled_into_itself(source, write, read_epub):
    write("index.md", "# Hi\n")
    write("cover.jpg", b"c")
    out = source / "book.epub"

    compile_book(str(source), str(out), CompileConfig())
    items = compile_book(str(source), str(out), CompileConfig())

    entries = read_epub(out)
    assert "EPUB/book.epub" not in entries
    assert "EPUB/cover.jpg" in entries
    assert "book.epub" not in entries[PACKAGE_PATH]
    assert [i.filename for i in items] == ["index.xhtml"]


def test_close_error_does_not_hide_processing_error(source, write, tmp_path, monkeypatch, capsys):
    write("a.md", "---\ntitle: [broken\n---\n")

    def failing_close(self):
        raise OSError("disk full")

    monkeypatch.setattr(EpubWriter, "close", failing_close)

    with pytest.raises(MetadataError):
        compile_book(str(source), str(tmp_path / "book.epub"), CompileConfig())
    assert "disk full" in capsys.readouterr().out


def test_close_error_without_processing_error(source, write, tmp_path, monkeypatch):
    write("a.md", "# A\n")

    def failing_close(self):
        raise OSError("disk full")

    monkeypatch.setattr(EpubWriter, "close", failing_close)

    with pytest.raises(OSError, match="disk full"):
        compile_book(str(source), str(tmp_path / "book.epub"), CompileConfig())
