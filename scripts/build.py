#!/usr/bin/env python3
"""
Compile a markdown source tree into an EPUB.

Usage:
    python build.py manuscript/                 Build manuscript.epub
    python build.py manuscript/ -o book.epub    Choose the output file
    python build.py manuscript/ --validate      Build, then run epubcheck
    python build.py validate book.epub          Run epubcheck on an existing epub

Requires: PyYAML, python-frontmatter, Markdown, beautifulsoup4, Jinja2
Optional: java + epubcheck (validation)
"""

import os
import sys

# Ensure bookpress is importable from the scripts/ directory
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from bookpress.cli import run


if __name__ == "__main__":
    run()
