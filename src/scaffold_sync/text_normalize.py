"""Output normalization applied after merging, outside the core mergers."""
from __future__ import annotations

import re

from scaffold_sync.sections import is_fence_line, split_lines

_HEADING_LINE_RE = re.compile(r"^\s*#+\s+.+")
_MAGIC_COMMENT_RE = re.compile(
    r"^#\s*(?:frozen_string_literal|encoding|coding|warn_indent"
    r"|shareable_constant_value)\s*:",
    re.IGNORECASE,
)


def normalize_newlines(text: str) -> str:
    """Convert CRLF and lone CR line endings to LF."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def ensure_trailing_newline(text: str | None) -> str:
    """Exactly one trailing newline; empty input stays empty."""
    if not text:
        return ""
    return text.rstrip("\n") + "\n"


def collapse_magic_comments(text: str) -> str:
    """Deduplicate the leading block of Ruby magic comments.

    Only the contiguous run of magic comments and blank lines at the top of
    the file is touched. Repeats are dropped (first wins, compared without
    surrounding whitespace), blank lines inside the run are removed, and a
    single blank line separates the run from the code that follows.
    """
    lines = split_lines(text)
    idx = 0
    seen: list[str] = []
    while idx < len(lines):
        line = lines[idx]
        if _MAGIC_COMMENT_RE.match(line):
            key = " ".join(line.split()).lower()
            if key not in (" ".join(s.split()).lower() for s in seen):
                seen.append(line.rstrip())
            idx += 1
            continue
        if not line.strip():
            idx += 1
            continue
        break

    if not seen:
        return text
    rest = lines[idx:]
    if not rest or rest == [""]:
        return "\n".join(seen) + "\n"
    return "\n".join([*seen, "", *rest])


def normalize_heading_spacing(text: str) -> str:
    """One blank line before and after every Markdown heading outside fences.

    Runs of blank lines are collapsed to one afterwards, fenced content
    included.
    """
    lines = split_lines(text)
    out: list[str] = []
    in_fence = False
    for idx, line in enumerate(lines):
        if is_fence_line(line):
            in_fence = not in_fence
            out.append(line)
            continue
        if in_fence or not _HEADING_LINE_RE.match(line):
            out.append(line)
            continue
        if out and out[-1].strip():
            out.append("")
        out.append(line)
        nxt = lines[idx + 1] if idx + 1 < len(lines) else ""
        if nxt.strip():
            out.append("")

    collapsed: list[str] = []
    for line in out:
        if not line.strip() and collapsed and not collapsed[-1].strip():
            continue
        collapsed.append(line)
    return "\n".join(collapsed)
