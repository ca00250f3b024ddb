"""
Command line interface for bookpress.

Usage:
    bookpress manuscript/                  Compile manuscript/ into manuscript.epub
    bookpress manuscript/ -o book.epub     Choose the output file
    bookpress manuscript/ --validate       Compile, then run epubcheck
    bookpress validate book.epub           Run epubcheck on an existing epub

Config is read from --config, or from bookpress.yaml in the current
directory if present; otherwise defaults apply.
"""

import argparse
import os
import sys
import traceback

from bookpress.compiler import compile_book
from bookpress.config import CompileConfig, ConfigError
from bookpress.epub import EpubError
from bookpress.epubcheck import validate_epub
from bookpress.metadata import MetadataError


DEFAULT_CONFIG = "bookpress.yaml"

# Errors reported as a one-line message instead of a traceback
USER_ERRORS = (ConfigError, MetadataError, EpubError)


def load_config(path):
    """Load the config file given, or the default one, or defaults. Exits on failure."""
    try:
        if path:
            return CompileConfig.load(path)
        if os.path.exists(DEFAULT_CONFIG):
            return CompileConfig.load(DEFAULT_CONFIG)
        return CompileConfig()
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)


def header(title):
    print(f"\n{'─' * 60}")
    print(f"  {title}")
    print(f"{'─' * 60}")


# ── Build command ──────────────────────────────────────────────────────


def cmd_build(args):
    """Compile a source directory into an epub."""
    source = args.source
    if not os.path.isdir(source):
        print(f"Error: source directory not found: {source}")
        sys.exit(1)

    config = load_config(args.config)
    output = args.output or os.path.basename(os.path.abspath(source)) + ".epub"

    header(f"Compiling EPUB: {source}")
    config.summary()
    print(f"  Output:     {output}")

    try:
        items = compile_book(source, output, config, verbose=args.verbose)
    except USER_ERRORS as e:
        print(f"  ✗ Error: {e}")
        sys.exit(1)

    print(f"  ✓ {output} ({len(items)} page(s))")

    if args.validate:
        if validate_epub(output, verbose=args.verbose, json_report=args.json_report) is False:
            sys.exit(1)


# ── Validate command ───────────────────────────────────────────────────


def cmd_validate(args):
    """Run epubcheck on an existing epub."""
    if not os.path.exists(args.epub):
        print(f"  Error: {args.epub} not found.")
        sys.exit(1)

    header(f"Validating: {args.epub}")
    valid = validate_epub(args.epub, verbose=True, json_report=args.json_report)
    sys.exit(0 if valid else 1)


# ── Argument Parser ────────────────────────────────────────────────────


def build_parser():
    parser = argparse.ArgumentParser(
        prog="bookpress",
        description="Compile a directory of markdown and media into an EPUB",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  %(prog)s manuscript/                    Build manuscript.epub
  %(prog)s manuscript/ -o book.epub -v    Build with per-file progress
  %(prog)s manuscript/ --validate         Build, then run epubcheck
  %(prog)s validate book.epub             Run epubcheck on an existing epub
        """,
    )

    sub = parser.add_subparsers(dest="command")

    # ── build (default when no subcommand) ─────────────────
    build_p = sub.add_parser("build", help="Compile a source directory (default)")
    build_p.add_argument("source", help="Source directory")
    build_p.add_argument("--output", "-o", help="Output epub (default: <source>.epub)")
    build_p.add_argument("--config", "-c", help=f"Config file (default: {DEFAULT_CONFIG})")
    build_p.add_argument("--validate", action="store_true", help="Run epubcheck after build")
    build_p.add_argument("--verbose", "-v", action="store_true")
    _add_json_report(build_p)

    # ── validate ───────────────────────────────────────────
    val_p = sub.add_parser("validate", help="Run epubcheck on an existing epub")
    val_p.add_argument("epub", help="Path to the epub file")
    _add_json_report(val_p)

    return parser


def _add_json_report(parser):
    parser.add_argument(
        "--json-report",
        nargs="?",
        const=True,
        default=None,
        help="Save epubcheck JSON report",
    )


# ── Main ───────────────────────────────────────────────────────────────


def main(argv=None):
    parser = build_parser()
    argv = sys.argv[1:] if argv is None else list(argv)

    # Allow bare "bookpress manuscript/" without the "build" subcommand
    known_commands = {"build", "validate"}
    if argv and argv[0] not in known_commands and not argv[0].startswith("-"):
        argv = ["build"] + argv
    args = parser.parse_args(argv)

    dispatch = {
        "build": cmd_build,
        "validate": cmd_validate,
    }

    handler = dispatch.get(args.command)
    if handler:
        handler(args)
    else:
        parser.print_help()


def run():
    """Console entry point: main() with the top-level error log."""
    try:
        main()
    except KeyboardInterrupt:
        print("\nCancelled.")
        sys.exit(1)
    except Exception as e:
        log_path = "build_error.log"
        with open(log_path, "w") as f:
            traceback.print_exc(file=f)
        print(f"\nUnexpected error: {e}")
        print(f"Full traceback written to {log_path}")
        sys.exit(1)
