"""
Canonical markup for converted documents.

Markdown output is re-parsed and re-serialized so every page leaves the
compiler in the same form: runs of blank lines between top-level blocks
collapse to a single newline, everything else is written back verbatim.
Only top-level nodes are touched; blank lines nested inside an element
(a <blockquote>, a <div>) are kept as they are.
"""

import re

from bs4 import BeautifulSoup, NavigableString


BLANK_RUN_RE = re.compile(r"\n{2,}")


def _is_blank_run(node):
    # Comments, CDATA and doctypes are NavigableString subclasses too
    return type(node) is NavigableString and BLANK_RUN_RE.fullmatch(str(node)) is not None


def normalize(raw):
    """Return raw (an HTML fragment) with top-level blank-line runs collapsed."""
    soup = BeautifulSoup(raw, "html.parser")

    parts = []
    for node in soup.contents:
        if _is_blank_run(node):
            parts.append("\n")
        elif isinstance(node, NavigableString):
            parts.append(node.output_ready())
        else:
            parts.append(str(node))
    return "".join(parts)
