"""
Markdown to HTML conversion (Python-Markdown).
"""

import markdown


def markdown_to_html(text, extensions=None):
    """Convert a markdown body to an XHTML fragment."""
    return markdown.markdown(
        text,
        extensions=list(extensions or []),
        output_format="xhtml",
    )
