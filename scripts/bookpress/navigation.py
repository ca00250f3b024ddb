"""
Table of contents bookkeeping.

Every compiled document is recorded in discovery order. A document that
declares the "nav" property is trusted as the publication's navigation;
if none does, a table of contents is synthesized from the records once
the source tree has been walked.
"""

import enum
from dataclasses import dataclass

from bookpress.epub import ContentType
from bookpress.templates import render


# Archive name of the synthesized table of contents
TOC_FILENAME = "_toc.xhtml"

# Reserved template key carrying the stylesheet path
STYLESHEET_KEY = "_stylesheet_"


@dataclass(frozen=True)
class NavigationItem:
    title: str
    subtitle: str
    level: int
    filename: str
    content_type: ContentType


class NavState(enum.Enum):
    PENDING = "pending"       # no document has declared the nav role yet
    SATISFIED = "satisfied"   # an author-supplied nav document exists


class NavigationBuilder:
    """Collects navigation items and decides whether a fallback TOC is needed."""

    def __init__(self):
        self.state = NavState.PENDING
        self._items = []
        self._frozen = False

    @property
    def items(self):
        return tuple(self._items)

    @property
    def frozen(self):
        return self._frozen

    def append(self, item):
        if self._frozen:
            raise RuntimeError("navigation is frozen")
        self._items.append(item)

    def satisfy(self):
        """Record that a document declared the nav role."""
        self.state = NavState.SATISFIED

    def freeze(self):
        self._frozen = True
        return self.items

    def needs_fallback(self):
        return self.state is NavState.PENDING

    def write_fallback(self, writer, env, lang, title, stylesheet=None):
        """
        Render the "toc" template and add it to the archive.

        Does nothing once a document has declared the nav role. Returns
        True if a table of contents was written.
        """
        if not self.needs_fallback():
            return False

        data = {
            "lang": lang,
            "title": title,
            "toc": self.items,
        }
        # The TOC sits at the archive root, so the path needs no rewriting
        if stylesheet:
            data[STYLESHEET_KEY] = stylesheet

        page = render(env, "toc", data)
        writer.add(TOC_FILENAME, ContentType.AUXILIARY, page, "nav")
        return True
