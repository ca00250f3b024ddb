"""
Depth-first source tree traversal.

Entries are visited in lexical name order with files and directories
interleaved, parents before children. Paths handed to the visitor are
relative to the walk root and use forward slashes ("ch1/intro.md").
"""

import enum
import os


class Visit(enum.Enum):
    """What the visitor wants done with the entry it was just shown."""

    CONTINUE = "continue"
    SKIP_ENTRY = "skip-entry"
    SKIP_SUBTREE = "skip-subtree"


def _join(parent, name):
    return name if parent == "." else f"{parent}/{name}"


def walk(visitor, root="."):
    """
    Call visitor(path, is_dir) for root and every entry below it.

    An entry that cannot be stat'ed, or a directory that cannot be listed,
    is skipped and the walk goes on. So is a symlink to a directory. Exceptions raised by the visitor
    propagate and end the walk.
    """
    if visitor(root, True) is Visit.SKIP_SUBTREE:
        return
    _walk_dir(visitor, root)


def _walk_dir(visitor, path):
    try:
        with os.scandir(path) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError:
        return

    for entry in entries:
        child = _join(path, entry.name)
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
            # Symlinked directories are neither followed nor reported
            if not is_dir and entry.is_symlink() and entry.is_dir():
                continue
        except OSError:
            continue

        result = visitor(child, is_dir)
        if is_dir and result is not Visit.SKIP_SUBTREE:
            _walk_dir(visitor, child)
