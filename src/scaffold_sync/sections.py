"""Section model and branch resolver for heading-delimited documents.

Splits Markdown text into a flat, ordered list of ATX heading sections and
computes the inclusive line range ("branch") each section owns, including all
of its deeper subsections.

Fenced regions (```` ``` ```` or ``~~~`` at the start of a line, after optional
indentation) are opaque: heading-shaped lines inside them are never sections.
Fence state is a single boolean toggled by every fence line, so an
unterminated fence leaves the rest of the document opaque.
"""
from __future__ import annotations

import re
from collections.abc import Callable, Sequence

from scaffold_sync.merge_types import Section, SectionIndex

_HEADING_RE = re.compile(r"^(#+)\s+(\S.*)")
_HEADING_MARKER_RE = re.compile(r"^#+\s+")
_FENCE_RE = re.compile(r"^\s*(?:```|~~~)")


def split_lines(text: str) -> list[str]:
    """Split text on LF, keeping a trailing empty line when text ends in LF."""
    return text.split("\n")


def is_fence_line(line: str) -> bool:
    """True if the line opens or closes a fenced region."""
    return _FENCE_RE.match(line) is not None


def opaque_mask(lines: Sequence[str]) -> tuple[bool, ...]:
    """Flag every line that is a fence line or sits inside a fenced region."""
    mask: list[bool] = []
    in_fence = False
    for line in lines:
        if is_fence_line(line):
            in_fence = not in_fence
            mask.append(True)
            continue
        mask.append(in_fence)
    return tuple(mask)


def heading_level(line: str) -> int | None:
    """Number of ``#`` markers if the line is an ATX heading, else None."""
    m = _HEADING_RE.match(line)
    return len(m.group(1)) if m else None


def normalize_heading_key(heading: str) -> str:
    """Derive the lookup key for a heading line.

    Drops the ``#`` markers, then any leading non-alphanumeric decoration
    (emphasis markers, emoji, punctuation), lower-cases and collapses
    whitespace. ``"## 🚀 Basic  Usage"`` becomes ``"basic usage"``.
    """
    text = _HEADING_MARKER_RE.sub("", heading, count=1)
    idx = 0
    while idx < len(text) and not text[idx].isalnum():
        idx += 1
    return " ".join(text[idx:].split()).lower()


def parse_sections(text: str | None) -> SectionIndex:
    """Parse a document into its heading sections, skipping fenced regions."""
    if text is None:
        return SectionIndex(lines=(), sections=(), line_count=0)

    lines = split_lines(text)
    mask = opaque_mask(lines)
    sections: list[Section] = []
    for i, line in enumerate(lines):
        if mask[i]:
            continue
        m = _HEADING_RE.match(line)
        if m is None:
            continue
        sections.append(Section(
            start_line=i,
            level=len(m.group(1)),
            heading=line,
            key=normalize_heading_key(line),
        ))
    return SectionIndex(
        lines=tuple(lines),
        sections=tuple(sections),
        line_count=len(lines),
    )


def branch_end(sections: Sequence[Section], idx: int, total_lines: int) -> int:
    """Inclusive last line of the branch owned by ``sections[idx]``.

    The branch runs until the line before the next section of the same or a
    higher (numerically lower-or-equal) level, or to the end of the document.
    """
    level = sections[idx].level
    for j in range(idx + 1, len(sections)):
        if sections[j].level <= level:
            return sections[j].start_line - 1
    return total_lines - 1


def branch_ends(sections: Sequence[Section], total_lines: int) -> tuple[int, ...]:
    """Branch end for every section in one pass.

    Equivalent to calling :func:`branch_end` for each index, without the
    quadratic rescans.
    """
    ends = [total_lines - 1] * len(sections)
    # Open sections, strictly increasing in level from bottom to top.
    open_idx: list[int] = []
    for j, section in enumerate(sections):
        while open_idx and sections[open_idx[-1]].level >= section.level:
            ends[open_idx.pop()] = section.start_line - 1
        open_idx.append(j)
    return tuple(ends)


def find_section(
    index: SectionIndex,
    predicate: Callable[[Section], bool],
) -> int | None:
    """Position of the first section satisfying predicate, or None."""
    for i, section in enumerate(index.sections):
        if predicate(section):
            return i
    return None


def branch_body(index: SectionIndex, idx: int) -> list[str]:
    """Lines of a section's branch after its heading line."""
    section = index.sections[idx]
    end = branch_end(index.sections, idx, index.line_count)
    return list(index.lines[section.start_line + 1:end + 1])
