"""I/O utilities for JSON payloads and UTF-8 text files.

JSON goes through orjson (config files, the results log, CLI summaries).
Text helpers read and write UTF-8 without newline translation so that byte
offsets computed on the decoded text stay meaningful.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson


def load_json(path: Path) -> Any:
    """Load JSON from a file."""
    return orjson.loads(path.read_bytes())


def dump_json(obj: Any, *, pretty: bool = True) -> bytes:
    """Serialize an object to JSON bytes with sorted keys."""
    opts = orjson.OPT_SORT_KEYS
    if pretty:
        opts |= orjson.OPT_INDENT_2
    return orjson.dumps(obj, option=opts)


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    """Save an object as JSON, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dump_json(obj, pretty=pretty) + b"\n")


def read_text(path: Path) -> str | None:
    """Read a UTF-8 text file verbatim, or None if it does not exist."""
    if not path.is_file():
        return None
    return path.read_bytes().decode("utf-8")


def write_text(path: Path, text: str) -> None:
    """Write UTF-8 text verbatim, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(text.encode("utf-8"))
