"""
Source entry classification.

Decides, from naming conventions alone, whether a path in the source tree
is skipped, compiled as a document, or copied as a media asset.
"""

import enum
import fnmatch
import posixpath


class Entry(enum.Enum):
    SKIP_SUBTREE = "skip-subtree"
    SKIP = "skip"
    DOCUMENT = "document"
    MEDIA = "media"


def matches_any(name, patterns):
    """Case-insensitive glob match of name against any of patterns."""
    name = name.lower()
    return any(fnmatch.fnmatchcase(name, p.lower()) for p in patterns)


def is_hidden(name):
    return name.startswith(".") or name.startswith("~")


def classify(path, is_dir, config):
    """
    Classify a source-relative path.

    Hidden directories ("." prefix) prune their whole subtree; the walk
    root "." itself is never hidden. Other directories are only walked.
    """
    name = posixpath.basename(path)

    if is_dir:
        if path != "." and name.startswith("."):
            return Entry.SKIP_SUBTREE
        return Entry.SKIP

    if is_hidden(name):
        return Entry.SKIP

    # Publication metadata is loaded separately, never compiled
    if matches_any(name, [config.metadata]):
        return Entry.SKIP

    if matches_any(posixpath.splitext(name)[1], config.documents):
        return Entry.DOCUMENT

    return Entry.MEDIA
