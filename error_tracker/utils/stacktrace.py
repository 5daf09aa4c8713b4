"""Stack trace parsing utilities."""

import re
from typing import List, Optional

from ..models import SourceContext

# Tried in order against each line; groups are (function, file, line, column)
STACK_PATTERNS = [
    # V8: "at functionName (https://host/file.js:10:5)" or "at file:///file.js:10:5"
    re.compile(
        r"at\s+(?:(.+?)\s+\()?((?:file|https?|webpack|app)://[^)]+|/[^)]+):(\d+):(\d+)\)?"
    ),
    # V8 without protocol: "at functionName (C:\path\file.js:10:5)"
    re.compile(r"at\s+(?:(.+?)\s+\()?([^()]+):(\d+):(\d+)\)?"),
    # Firefox/Safari: "functionName@https://host/file.js:10:5"
    re.compile(r"^(.*?)@(.+?):(\d+):(\d+)$"),
    # Python: 'File "/app/module.py", line 10, in function'
    re.compile(r'^File "(?P<file>.+?)", line (?P<line>\d+)(?:, in (?P<func>.+))?$'),
]

# Heading lines such as "TypeError: boom" carry the message, not a frame
MESSAGE_LINE = re.compile(r"^[A-Za-z_$][\w$.]*:(?:\s|$)")
PYTHON_TRACEBACK_HEADER = "Traceback (most recent call last):"

# Paths to skip when looking for the frame to report
SKIP_PATHS = [
    "node_modules",
    "internal/",
    "<anonymous>",
    "webpack/bootstrap",
    "__webpack_require__",
    "site-packages",
    "dist-packages",
    "<frozen ",
    "<string>",
]

PROTOCOL_PREFIXES = [
    re.compile(r"^file://"),
    re.compile(r"^https?://[^/]+"),
    re.compile(r"^webpack://[^/]*"),
    re.compile(r"^app://"),
]

DEPLOYMENT_PREFIXES = [
    "/home/site/wwwroot/",
    "/var/task/",
    "/app/",
    "/src/",
    "./",
]


def parse_stack_trace(stack: Optional[str]) -> Optional[SourceContext]:
    """
    Extract the first relevant source location from a stack trace.

    Understands V8, Firefox/Safari and Python traceback text. Frames from
    vendored or runtime-internal paths are skipped. Python tracebacks list
    the innermost call last, so their lines are read bottom-up.

    Args:
        stack: Raw stack trace text

    Returns:
        SourceContext of the first usable frame, or None
    """
    if not stack:
        return None

    try:
        return _first_frame(_candidate_lines(stack))
    except Exception:
        return None


def _candidate_lines(stack: str) -> List[str]:
    lines = [line.strip() for line in stack.splitlines()]
    if PYTHON_TRACEBACK_HEADER in lines:
        lines.reverse()
    return [
        line
        for line in lines
        if line and line != PYTHON_TRACEBACK_HEADER and not MESSAGE_LINE.match(line)
    ]


def _first_frame(lines: List[str]) -> Optional[SourceContext]:
    for line in lines:
        for pattern in STACK_PATTERNS:
            match = pattern.search(line)
            if not match:
                continue

            if pattern.groupindex:
                function_name = match.group("func")
                file_name = match.group("file")
                line_number = match.group("line")
                column_number = None
            else:
                function_name, file_name, line_number, column_number = match.groups()

            if should_skip_frame(file_name):
                continue

            return SourceContext(
                function_name=clean_function_name(function_name),
                file_name=normalize_file_path(file_name),
                line_number=int(line_number),
                column_number=int(column_number) if column_number else None,
            )

    return None


def should_skip_frame(file_name: Optional[str]) -> bool:
    """Check if a frame belongs to library or runtime code."""
    if not file_name:
        return True
    return any(path in file_name for path in SKIP_PATHS)


def clean_function_name(name: Optional[str]) -> Optional[str]:
    """Drop framework-added prefixes; empty names become None."""
    if not name:
        return None
    name = re.sub(r"^Object\.", "", name)
    name = re.sub(r"^async\s+", "", name)
    return name.strip() or None


def normalize_file_path(file_path: Optional[str]) -> Optional[str]:
    """Normalize a frame path for consistent reporting."""
    if not file_path:
        return None

    normalized = file_path
    for prefix in PROTOCOL_PREFIXES:
        normalized = prefix.sub("", normalized)
    normalized = normalized.replace("\\", "/")

    for prefix in DEPLOYMENT_PREFIXES:
        if normalized.startswith(prefix):
            normalized = normalized[len(prefix):]
            break

    if normalized.startswith("/"):
        normalized = normalized[1:]

    return normalized or None
