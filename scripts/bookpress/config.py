"""
Compiler configuration: load, validate, and provide defaults for bookpress.yaml.
"""

import os

import yaml


# Defaults applied if missing
DEFAULTS = {
    "documents": [".md", ".markdown", ".mdown", ".mkd"],
    "covers": ["cover.*", "cover-image.*"],
    "metadata": "metadata.yaml",
    "stylesheet": "style.css",
    "lang": "en",
    "markdown_extensions": ["extra", "sane_lists", "smarty"],
    "templates": ".templates",
    "toc_title": "Оглавление",
}

# Fields that must hold a list of strings
LIST_FIELDS = ["documents", "covers", "markdown_extensions"]

# Fields that must hold a single string
STRING_FIELDS = ["metadata", "stylesheet", "lang", "templates", "toc_title"]


class ConfigError(Exception):
    """Raised when the config file is missing or invalid."""
    pass


class CompileConfig:
    """
    Loaded, validated compiler configuration.

    Usage:
        config = CompileConfig.load("bookpress.yaml")
        config.covers          # ["cover.*", "cover-image.*"]
        config.get("lang")     # "en"

    CompileConfig() with no arguments gives pure defaults.
    """

    def __init__(self, data=None, path=None):
        data = dict(data or {})
        for key, default in DEFAULTS.items():
            data.setdefault(key, list(default) if isinstance(default, list) else default)
        _validate(data, path or "config")
        self._data = data
        self.path = path

    @classmethod
    def load(cls, path):
        """Load and validate a YAML config file."""
        if not os.path.exists(path):
            raise ConfigError(f"No config file found at {path}")

        with open(path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"{path} is not valid YAML: {e}") from e

        # An empty file is allowed and means "all defaults"
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must be a YAML mapping, got {type(data).__name__}")

        return cls(data, path)

    # ── Attribute access ───────────────────────────────────

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"CompileConfig has no field '{name}'")

    def get(self, key, default=None):
        return self._data.get(key, default)

    def __getitem__(self, key):
        return self._data[key]

    def __contains__(self, key):
        return key in self._data

    # ── Convenience ────────────────────────────────────────

    def summary(self):
        """Print a short config summary."""
        print(f"  Config:     {self.path or '(defaults)'}")
        print(f"  Documents:  {', '.join(self.documents)}")
        print(f"  Covers:     {', '.join(self.covers)}")
        print(f"  Stylesheet: {self.stylesheet}")


def _validate(data, source):
    for key in LIST_FIELDS:
        value = data[key]
        # A single string is accepted as a one-element list
        if isinstance(value, str):
            data[key] = value = [value]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"{source}: '{key}' must be a list of strings")

    for key in STRING_FIELDS:
        if not isinstance(data[key], str):
            raise ConfigError(f"{source}: '{key}' must be a string")
