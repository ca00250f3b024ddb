import zipfile

import pytest


@pytest.fixture
def source(tmp_path):
    root = tmp_path / "src"
    root.mkdir()
    return root


@pytest.fixture
def write(source):
    """Create a file under the source tree; bytes are written as-is."""
    def _write(rel, content=""):
        path = source / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def read_epub():
    """Return {archive name: text} for every entry of an epub file."""
    def _read(path):
        with zipfile.ZipFile(path) as zf:
            return {name: zf.read(name).decode("utf-8", "replace") for name in zf.namelist()}
    return _read
