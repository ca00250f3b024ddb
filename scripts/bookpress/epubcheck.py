"""
EPUB validation via epubcheck.

Locates epubcheck (env var, PATH, or ~/epubcheck*/), runs it on a
compiled book and reports the message summary.
"""

import os
import re
import shutil
import subprocess


SUMMARY_RE = re.compile(r"Messages:\s*(\d+)\s*fatal.*?(\d+)\s*error.*?(\d+)\s*warn", re.DOTALL)

REPORTED_PREFIXES = ("FATAL", "ERROR", "WARNING")


def find_epubcheck():
    """
    Locate epubcheck. Checks in order:
        1. EPUBCHECK_JAR environment variable
        2. epubcheck command on PATH
        3. ~/epubcheck*/epubcheck.jar (newest first)

    Returns the command prefix to run, or None.
    """
    env_jar = os.environ.get("EPUBCHECK_JAR")
    if env_jar and os.path.exists(env_jar):
        return ["java", "-jar", env_jar]

    cmd = shutil.which("epubcheck")
    if cmd:
        return [cmd]

    home = os.path.expanduser("~")
    if os.path.isdir(home):
        for entry in sorted(os.listdir(home), reverse=True):
            if entry.startswith("epubcheck"):
                jar = os.path.join(home, entry, "epubcheck.jar")
                if os.path.exists(jar):
                    return ["java", "-jar", jar]

    return None


def parse_summary(output):
    """Return (fatals, errors, warnings) from epubcheck output, or None."""
    match = SUMMARY_RE.search(output)
    if not match:
        return None
    return tuple(int(g) for g in match.groups())


def validate_epub(epub_path, verbose=False, json_report=None):
    """
    Run epubcheck on an epub file.

    Args:
        epub_path:   Path to the .epub file
        verbose:     Show individual issues
        json_report: Path for JSON report, or True for auto-naming

    Returns:
        True if valid, False if not, None if epubcheck is unavailable.
    """
    prefix = find_epubcheck()
    if prefix is None:
        print("  Skipping validation: epubcheck not found")
        if verbose:
            print("  Install epubcheck or set EPUBCHECK_JAR")
        return None

    cmd = prefix + [epub_path]
    if json_report:
        if json_report is True:
            json_report = os.path.splitext(epub_path)[0] + "_epubcheck.json"
        cmd.extend(["--json", json_report])

    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError:
        print(f"  Warning: could not run {prefix[0]}")
        return None

    output = result.stdout + result.stderr
    summary = parse_summary(output)

    if summary:
        fatals, errors, warnings = summary
        if fatals == 0 and errors == 0 and warnings == 0:
            print("  ✓ epubcheck: valid")
        elif fatals == 0 and errors == 0:
            print(f"  ⚠ epubcheck: valid with {warnings} warning(s)")
        else:
            print(f"  ✗ epubcheck: {fatals} fatal, {errors} error(s), {warnings} warning(s)")
    elif result.returncode == 0:
        print("  ✓ epubcheck: valid")
    else:
        print(f"  ✗ epubcheck: failed (exit code {result.returncode})")

    if verbose or result.returncode != 0:
        for line in output.splitlines():
            if line.startswith(REPORTED_PREFIXES):
                print(f"    {line}")

    if json_report and os.path.exists(json_report):
        print(f"  Report: {json_report}")

    return result.returncode == 0
