"""
Source tree to EPUB compiler.

Walks a source directory depth-first, compiles every markdown document
into an XHTML page, copies every other file in as media, and finishes
with a synthesized table of contents unless a document supplied its own.

Pipeline per document:
    front matter → lang/title/type → stylesheet link → markdown → canonical
    markup → template → navigation record → archive entry

Any failure while processing an entry aborts the whole compile; only
entries that cannot be stat'ed during the walk are skipped.
"""

import enum
import os
import posixpath

from markupsafe import Markup

from bookpress import metadata
from bookpress.classify import Entry, classify, matches_any
from bookpress.convert import markdown_to_html
from bookpress.epub import ContentType, EpubWriter
from bookpress.navigation import STYLESHEET_KEY, NavigationBuilder, NavigationItem
from bookpress.normalize import normalize
from bookpress.templates import load_templates, render
from bookpress.walk import Visit, walk


# Title given to documents that declare none
UNTITLED = "* * *"

# Extension of every compiled page
PAGE_EXTENSION = ".xhtml"

# Property authors sometimes put on documents by mistake; "cover" is meant
COVER_IMAGE = "cover-image"
COVER_PAGE = "cover"

NAV_ROLE = "nav"


class CoverState(enum.Enum):
    PENDING = "pending"     # no media has been marked as the cover yet
    ASSIGNED = "assigned"   # the cover is taken; later matches are plain media


def output_filename(path):
    """Swap a source document's extension for the page extension."""
    return posixpath.splitext(path)[0] + PAGE_EXTENSION


def stylesheet_href(document, stylesheet):
    """Path to the stylesheet relative to the document's own directory."""
    start = posixpath.dirname(document) or "."
    return posixpath.relpath(stylesheet, start)


class Compiler:
    """
    Shared state of one compile run.

    Created per compile, used for exactly one walk of the source tree,
    then discarded.
    """

    def __init__(self, config, writer, templates, lang, stylesheet=None, output=None, verbose=False):
        self.config = config
        self.writer = writer
        self.templates = templates
        self.lang = lang
        self.stylesheet = stylesheet
        # Real path of the archive being written, never compiled into itself
        self.output = output
        self.verbose = verbose
        self.cover = CoverState.PENDING
        self.navigation = NavigationBuilder()
        self.documents = DocumentProcessor(self)
        self.media = MediaProcessor(self)

    # ── Logging ────────────────────────────────────────────

    def log(self, msg):
        if self.verbose:
            print(msg)

    # ── Traversal ──────────────────────────────────────────

    def visit(self, path, is_dir):
        kind = classify(path, is_dir, self.config)

        if kind is Entry.SKIP_SUBTREE:
            self.log(f"  skip   {path}/")
            return Visit.SKIP_SUBTREE
        if not is_dir and self.output and os.path.realpath(path) == self.output:
            self.log(f"  skip   {path} (output)")
            return Visit.SKIP_ENTRY
        if kind is Entry.DOCUMENT:
            self.documents.process(path)
        elif kind is Entry.MEDIA:
            self.media.process(path)
        elif not is_dir:
            self.log(f"  skip   {path}")
            return Visit.SKIP_ENTRY
        return Visit.CONTINUE

    def run(self):
        """Walk the current directory, then add the fallback TOC if needed."""
        walk(self.visit)
        items = self.navigation.freeze()

        if self.navigation.write_fallback(
            self.writer,
            self.templates,
            lang=self.lang,
            title=self.config.toc_title,
            stylesheet=self.stylesheet,
        ):
            self.log(f"  toc    {len(items)} entries")
        return items


class DocumentProcessor:
    """Compiles one markdown document into a page of the publication."""

    def __init__(self, compiler):
        self.compiler = compiler

    def process(self, path):
        pub = self.compiler
        meta, body = metadata.read_file(path)

        meta["lang"] = meta.lang or pub.lang
        title = meta.title or UNTITLED
        meta["title"] = title

        content_type = ContentType.AUXILIARY if meta.get_bool("hidden") else ContentType.PRIMARY

        if pub.stylesheet:
            meta[STYLESHEET_KEY] = stylesheet_href(path, pub.stylesheet)

        html = markdown_to_html(body, pub.config.markdown_extensions)
        meta["content"] = Markup(normalize(html))

        template = "page"
        properties = meta.get_list("properties")
        for i, prop in enumerate(properties):
            if prop == NAV_ROLE:
                template = "nav"
                pub.navigation.satisfy()
            elif prop == COVER_IMAGE:
                properties[i] = COVER_PAGE
        meta["properties"] = properties

        page = render(pub.templates, template, meta)

        filename = output_filename(path)
        pub.navigation.append(NavigationItem(
            title=title,
            subtitle=meta.subtitle,
            level=meta.get_int("level"),
            filename=filename,
            content_type=content_type,
        ))

        pub.writer.add(filename, content_type, page, *properties)
        pub.log(f"  page   {path} → {filename} ({template})")


class MediaProcessor:
    """Copies a media file into the publication, marking the first cover."""

    def __init__(self, compiler):
        self.compiler = compiler

    def process(self, path):
        pub = self.compiler
        properties = []
        if pub.cover is CoverState.PENDING and matches_any(posixpath.basename(path), pub.config.covers):
            properties.append(COVER_IMAGE)
            pub.cover = CoverState.ASSIGNED

        pub.writer.add_file(path, path, ContentType.MEDIA, *properties)
        pub.log(f"  media  {path}{' (cover)' if properties else ''}")


# ── Entry point ────────────────────────────────────────────────────────


def compile_book(source_path, output_filename, config, verbose=False):
    """
    Compile the directory source_path into the EPUB file output_filename.

    The source directory is made current for the duration of the compile
    and the previous working directory restored afterwards. A relative
    output_filename is taken relative to the caller's working directory.
    Returns the navigation items recorded, in traversal order.

    The archive is closed on the way out even when the compile fails, so
    an aborted compile leaves an incomplete file behind. An output file
    inside the source tree is left out of the walk.
    """
    current_path = os.getcwd()
    output_path = os.path.realpath(os.path.join(current_path, output_filename))

    os.chdir(source_path)
    try:
        publication = metadata.load_publication(
            config, default_title=os.path.basename(os.getcwd())
        )
        templates = load_templates(config.templates)

        writer = EpubWriter(output_path)
        try:
            writer.metadata = publication

            stylesheet = config.stylesheet if config.stylesheet and os.path.isfile(config.stylesheet) else None
            compiler = Compiler(
                config=config,
                writer=writer,
                templates=templates,
                lang=publication.language,
                stylesheet=stylesheet,
                output=output_path,
                verbose=verbose,
            )
            items = compiler.run()
        except BaseException:
            # A failing close must not mask the processing error
            try:
                writer.close()
            except Exception as e:
                print(f"  ⚠ Could not close {output_path}: {e}")
            raise
        writer.close()
        return items
    finally:
        os.chdir(current_path)
