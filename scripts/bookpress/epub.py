"""
EPUB 3 package writer.

Entries are streamed into the zip as they are added; the package document
(manifest, spine, metadata) and the container file are written on close().

Layout:
    mimetype                  first entry, stored uncompressed
    META-INF/container.xml
    EPUB/package.opf
    EPUB/<name>               every added entry, under its own name
"""

import enum
import mimetypes
import os
import urllib.parse
import xml.sax.saxutils as xsu
import zipfile
from datetime import datetime, timezone

from bookpress.metadata import PublicationMetadata


MIMETYPE = b"application/epub+zip"
CONTENT_DIR = "EPUB"
PACKAGE_PATH = f"{CONTENT_DIR}/package.opf"

CONTAINER_XML = (
    "<?xml version=\"1.0\" encoding=\"UTF-8\"?>\n"
    "<container version=\"1.0\" xmlns=\"urn:oasis:names:tc:opendocument:xmlns:container\">\n"
    "  <rootfiles>\n"
    f"    <rootfile full-path=\"{PACKAGE_PATH}\" media-type=\"application/oebps-package+xml\"/>\n"
    "  </rootfiles>\n"
    "</container>\n"
)

# Properties allowed on a manifest <item>
MANIFEST_PROPERTIES = {
    "cover-image", "mathml", "nav", "remote-resources", "scripted", "svg", "switch",
}

# Document property marking the cover page (referenced from the guide)
COVER_PAGE = "cover"

MEDIA_TYPES = {
    ".xhtml": "application/xhtml+xml",
    ".html": "application/xhtml+xml",
    ".css": "text/css",
    ".js": "application/javascript",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".mp3": "audio/mpeg",
    ".mp4": "video/mp4",
    ".ncx": "application/x-dtbncx+xml",
}


class ContentType(enum.Enum):
    """How an entry takes part in the publication."""

    PRIMARY = "primary"       # in the spine, linear reading order
    AUXILIARY = "auxiliary"   # in the spine, linear="no"
    MEDIA = "media"           # manifest only


class EpubError(Exception):
    """Raised when the writer is misused."""
    pass


def media_type(name):
    ext = os.path.splitext(name)[1].lower()
    if ext in MEDIA_TYPES:
        return MEDIA_TYPES[ext]
    guessed, _ = mimetypes.guess_type(name)
    return guessed or "application/octet-stream"


class _Item:
    __slots__ = ("id", "name", "content_type", "properties")

    def __init__(self, item_id, name, content_type, properties):
        self.id = item_id
        self.name = name
        self.content_type = content_type
        self.properties = properties


class EpubWriter:
    """
    Write an EPUB 3 file entry by entry.

    Usage:
        writer = EpubWriter("book.epub")
        writer.metadata = publication
        writer.add("index.xhtml", ContentType.PRIMARY, xhtml)
        writer.add_file("cover.jpg", "cover.jpg", ContentType.MEDIA, "cover-image")
        writer.close()
    """

    def __init__(self, path):
        self.path = path
        self.metadata = None
        self._items = []
        self._names = set()
        self._closed = False
        self._zip = zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED)
        # Mimetype must be first and uncompressed
        self._zip.writestr("mimetype", MIMETYPE, compress_type=zipfile.ZIP_STORED)

    @property
    def closed(self):
        return self._closed

    @property
    def names(self):
        """Names of the entries added so far, in order."""
        return [item.name for item in self._items]

    def _register(self, name, content_type, properties):
        if self._closed:
            raise EpubError(f"cannot add {name}: writer is closed")
        if name in self._names:
            raise EpubError(f"duplicate entry: {name}")
        self._names.add(name)
        item = _Item(f"item-{len(self._items) + 1}", name, content_type, list(properties))
        self._items.append(item)
        return f"{CONTENT_DIR}/{name}"

    def add(self, name, content_type, data, *properties):
        """Add an entry from a string or bytes."""
        arcname = self._register(name, content_type, properties)
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._zip.writestr(arcname, data)

    def add_file(self, source, name, content_type, *properties):
        """Add an entry by copying the file at source unchanged."""
        arcname = self._register(name, content_type, properties)
        self._zip.write(source, arcname)

    def close(self):
        """Write the package document and container, then close the zip."""
        if self._closed:
            return
        self._closed = True
        try:
            self._zip.writestr("META-INF/container.xml", CONTAINER_XML)
            self._zip.writestr(PACKAGE_PATH, self.package_document())
        finally:
            self._zip.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # ── Package document ───────────────────────────────────

    def package_document(self):
        meta = self.metadata or PublicationMetadata(title="", languages=("und",))
        modified = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

        lines = [
            "<?xml version=\"1.0\" encoding=\"UTF-8\"?>",
            "<package xmlns=\"http://www.idpf.org/2007/opf\" version=\"3.0\" "
            f"unique-identifier=\"pub-id\" xml:lang={xsu.quoteattr(meta.language)}>",
            "  <metadata xmlns:dc=\"http://purl.org/dc/elements/1.1/\">",
            f"    <dc:identifier id=\"pub-id\">{xsu.escape(meta.identifier)}</dc:identifier>",
            f"    <dc:title>{xsu.escape(meta.title)}</dc:title>",
        ]
        lines += [f"    <dc:language>{xsu.escape(lang)}</dc:language>" for lang in meta.languages]
        lines += [f"    <dc:creator>{xsu.escape(c)}</dc:creator>" for c in meta.creators]
        for tag in ["publisher", "description", "rights", "date"]:
            value = getattr(meta, tag)
            if value:
                lines.append(f"    <dc:{tag}>{xsu.escape(value)}</dc:{tag}>")
        lines += [f"    <dc:subject>{xsu.escape(s)}</dc:subject>" for s in meta.subjects]
        lines.append(f"    <meta property=\"dcterms:modified\">{modified}</meta>")

        cover_image = next((i for i in self._items if "cover-image" in i.properties), None)
        if cover_image:
            # EPUB 2 reading systems look for this
            lines.append(f"    <meta name=\"cover\" content=\"{cover_image.id}\"/>")
        lines.append("  </metadata>")

        lines.append("  <manifest>")
        for item in self._items:
            props = [p for p in item.properties if p in MANIFEST_PROPERTIES]
            props_attr = f" properties=\"{' '.join(props)}\"" if props else ""
            lines.append(
                f"    <item id=\"{item.id}\" href={xsu.quoteattr(_href(item.name))} "
                f"media-type=\"{media_type(item.name)}\"{props_attr}/>"
            )
        lines.append("  </manifest>")

        lines.append("  <spine>")
        for item in self._items:
            if item.content_type is ContentType.PRIMARY:
                lines.append(f"    <itemref idref=\"{item.id}\"/>")
            elif item.content_type is ContentType.AUXILIARY:
                lines.append(f"    <itemref idref=\"{item.id}\" linear=\"no\"/>")
        lines.append("  </spine>")

        cover_page = next((i for i in self._items if COVER_PAGE in i.properties), None)
        if cover_page:
            lines.append("  <guide>")
            lines.append(
                f"    <reference type=\"cover\" title=\"Cover\" href={xsu.quoteattr(_href(cover_page.name))}/>"
            )
            lines.append("  </guide>")

        lines.append("</package>")
        return "\n".join(lines) + "\n"


def _href(name):
    return urllib.parse.quote(name)
