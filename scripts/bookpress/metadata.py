"""
Front matter and publication metadata.

Documents carry a YAML front matter block fenced by `---` lines; the
publication as a whole is described by a YAML file in the source root
(metadata.yaml by default).
"""

import os
import re
import uuid
from dataclasses import dataclass, field
from typing import Tuple

import frontmatter
import yaml


TRUE_STRINGS = {"yes", "true", "on", "1"}

# Separators for list values written as a plain string: "nav, cover"
LIST_SPLIT_RE = re.compile(r"[\s,]+")


class MetadataError(Exception):
    """Raised when front matter or publication metadata cannot be parsed."""
    pass


class FileMetadata(dict):
    """
    Front matter of a single document.

    A plain dict (keys lower-cased) with typed accessors. The compiler
    adds derived keys to it before handing it to a template.
    """

    @property
    def lang(self):
        return self.get_str("lang")

    @property
    def title(self):
        return self.get_str("title")

    @property
    def subtitle(self):
        return self.get_str("subtitle")

    def get_str(self, key):
        value = self.get(key)
        if value is None:
            return ""
        return str(value).strip()

    def get_bool(self, key):
        value = self.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            return value.strip().lower() in TRUE_STRINGS
        return False

    def get_int(self, key):
        value = self.get(key)
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                return 0
        return 0

    def get_list(self, key):
        """Return a list of strings; a plain string is split on commas and spaces."""
        value = self.get(key)
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value if v is not None]
        return [v for v in LIST_SPLIT_RE.split(str(value)) if v]


class MappingYAMLHandler(frontmatter.YAMLHandler):
    """YAML front matter that must be a mapping; anything else is an error."""

    def load(self, fm, **kwargs):
        data = super().load(fm, **kwargs)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise MetadataError(f"front matter must be a YAML mapping, got {type(data).__name__}")
        return data


FRONT_MATTER_HANDLERS = [MappingYAMLHandler()]


def parse(text, source="<string>"):
    """Split text into (FileMetadata, body)."""
    handler = frontmatter.detect_format(text.strip(), FRONT_MATTER_HANDLERS)
    if handler is None:
        return FileMetadata(), text.strip()

    try:
        data, body = frontmatter.parse(text, handler=handler)
    except yaml.YAMLError as e:
        raise MetadataError(f"{source}: invalid front matter: {e}") from e
    except MetadataError as e:
        raise MetadataError(f"{source}: {e}") from e
    meta = FileMetadata((str(k).lower(), v) for k, v in data.items())
    return meta, body


def read_file(filename):
    """Read a document and split off its front matter."""
    with open(filename, encoding="utf-8") as f:
        text = f.read()
    return parse(text, filename)


# ── Publication ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PublicationMetadata:
    """Metadata describing the publication as a whole."""

    title: str
    languages: Tuple[str, ...]
    creators: Tuple[str, ...] = ()
    identifier: str = field(default_factory=lambda: f"urn:uuid:{uuid.uuid4()}")
    publisher: str = ""
    description: str = ""
    subjects: Tuple[str, ...] = ()
    rights: str = ""
    date: str = ""

    def __post_init__(self):
        if not self.languages:
            raise MetadataError("publication must declare at least one language")

    @property
    def language(self):
        """The primary language: the first one declared."""
        return self.languages[0]


def _as_list(value):
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None]
    return [str(value)]


def _as_str(value):
    return "" if value is None else str(value)


def load_publication(config, default_title=""):
    """
    Load publication metadata from config.metadata (relative to the cwd).

    A missing file is not an error: the publication gets default_title and
    the configured language.
    """
    path = config.metadata
    if not os.path.exists(path):
        return PublicationMetadata(title=default_title, languages=(config.lang,))

    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise MetadataError(f"{path} is not valid YAML: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MetadataError(f"{path} must be a YAML mapping, got {type(data).__name__}")
    data = {str(k).lower(): v for k, v in data.items()}

    languages = _as_list(data.get("lang", data.get("language"))) or [config.lang]
    creators = _as_list(data.get("author", data.get("creator")))

    fields = dict(
        title=_as_str(data.get("title")) or default_title,
        languages=tuple(languages),
        creators=tuple(creators),
        publisher=_as_str(data.get("publisher")),
        description=_as_str(data.get("description")),
        subjects=tuple(_as_list(data.get("subject"))),
        rights=_as_str(data.get("rights")),
        date=_as_str(data.get("date")),
    )
    identifier = _as_str(data.get("identifier"))
    if identifier:
        fields["identifier"] = identifier
    return PublicationMetadata(**fields)
