"""
bookpress — markdown-tree-to-EPUB compiler.

Public API:
    from bookpress.config import CompileConfig
    from bookpress.compiler import compile_book
    from bookpress.epub import EpubWriter, ContentType
    from bookpress.normalize import normalize
    from bookpress.epubcheck import validate_epub
"""
