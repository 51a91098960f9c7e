"""Merger for CHANGELOG.md files following the Keep a Changelog convention.

Strategy:
  1. The template header (title, intro text) replaces the destination header.
  2. The template's canonical "Unreleased" structure is used: the six
     category sub-headings (Added/Changed/Deprecated/Removed/Fixed/Security)
     in fixed order, each exactly once.
  3. The destination's existing Unreleased list items are carried into their
     categories, multi-line and nested items included.
  4. The destination's release history and link references are kept as-is.
"""
from __future__ import annotations

import re
from collections.abc import Sequence

from scaffold_sync.merge_config import DEFAULT_CONFIG, MergeConfig
from scaffold_sync.sections import (
    heading_level,
    is_fence_line,
    opaque_mask,
    split_lines,
)

_SUBHEADING_PREFIX = "### "
_BULLET_RE = re.compile(r"^(\s*)[-*+]\s")
_LINK_REF_RE = re.compile(r"^\[[^\]]+\]:\s*\S")
_RELEASE_HEADER_RE = re.compile(r"^##\s+\[.*\]")
_RELEASE_START_RE = re.compile(r"^##\s+\[")
_HSPACE_RUN_RE = re.compile(r"[ \t]+")


def merge(
    template_content: str,
    destination_content: str | None,
    *,
    config: MergeConfig | None = None,
) -> str:
    """Merge CHANGELOG content.

    Args:
        template_content: Template text after token substitution.
        destination_content: Existing changelog, or None if absent.
        config: Supplies the section name and canonical categories.

    Returns:
        Template header + canonical Unreleased section populated with the
        destination's items + the destination's history.
    """
    if destination_content is None or not destination_content.strip():
        return template_content

    cfg = config or DEFAULT_CONFIG
    heading_re = section_heading_pattern(cfg.changelog_section)

    tpl_lines = split_lines(template_content)
    tpl_idx = find_named_section(tpl_lines, heading_re)
    if tpl_idx is None:
        return normalize_release_headers(template_content)

    header = tpl_lines[:tpl_idx]
    heading = tpl_lines[tpl_idx]

    dest_lines = split_lines(destination_content)
    dest_idx = find_named_section(dest_lines, heading_re)
    if dest_idx is not None:
        dest_end = _section_end(dest_lines, dest_idx)
        body = dest_lines[dest_idx + 1:dest_end + 1]
        tail = dest_lines[dest_end + 1:]
    else:
        body = []
        tail = _history_without_section(dest_lines)

    items = parse_items(body, cfg.changelog_categories)

    block = [heading]
    for category in cfg.changelog_categories:
        block.append(f"{_SUBHEADING_PREFIX}{category}")
        block.extend(items.get(category, ()))

    while block and not block[-1].strip():
        block.pop()
    while tail and not tail[0].strip():
        tail.pop(0)

    # One blank line separates the section from the history, or ends the file.
    merged = [*header, *block, "", *tail]
    return normalize_release_headers("\n".join(merged))


def section_heading_pattern(name: str) -> re.Pattern[str]:
    """Case-insensitive matcher for a bracketed level-2 heading (``## [Name]``)."""
    return re.compile(
        rf"^##\s*\[\s*{re.escape(name)}\s*\]",
        re.IGNORECASE,
    )


def find_named_section(
    lines: Sequence[str], heading_re: re.Pattern[str],
) -> int | None:
    """Index of the first unfenced line matching heading_re, or None."""
    mask = opaque_mask(lines)
    for i, line in enumerate(lines):
        if not mask[i] and heading_re.match(line):
            return i
    return None


def find_section_end(lines: Sequence[str], start: int | None) -> int | None:
    """Inclusive end line of the section whose heading is at ``start``.

    The section stops before the next unfenced heading of the same or a
    higher level, or before the first link reference definition
    (``[label]: url``), whichever comes first.
    """
    if start is None:
        return None
    return _section_end(lines, start)


def _section_end(lines: Sequence[str], start: int) -> int:
    level = heading_level(lines[start]) or 2
    mask = opaque_mask(lines)
    for j in range(start + 1, len(lines)):
        if mask[j]:
            continue
        line = lines[j]
        if _LINK_REF_RE.match(line):
            return j - 1
        found = heading_level(line)
        if found is not None and found <= level:
            return j - 1
    return len(lines) - 1


def parse_items(
    body_lines: Sequence[str],
    categories: Sequence[str] = DEFAULT_CONFIG.changelog_categories,
) -> dict[str, list[str]]:
    """Group the list items of a section body by canonical category.

    Each item block is a bullet plus its continuation lines: blank lines,
    lines indented deeper than the bullet, and anything inside a fence that
    opened within the item. Items under unknown sub-headings, or before any
    sub-heading, are dropped. Trailing blank lines of each category are
    trimmed so empty categories render as a bare sub-heading.
    """
    canonical = {c.lower(): c for c in categories}
    result: dict[str, list[str]] = {}
    current: str | None = None
    total = len(body_lines)
    i = 0
    while i < total:
        line = body_lines[i]

        if line.startswith(_SUBHEADING_PREFIX):
            label = line[len(_SUBHEADING_PREFIX):].strip().lower()
            current = canonical.get(label)
            i += 1
            continue

        m = _BULLET_RE.match(line)
        if m is None:
            i += 1
            continue

        base_indent = len(m.group(1))
        block = [line.rstrip()]
        i += 1
        in_fence = False
        while i < total:
            nxt = body_lines[i]
            if not in_fence:
                bullet = _BULLET_RE.match(nxt)
                if bullet is not None and len(bullet.group(1)) <= base_indent:
                    break
                if nxt.startswith(_SUBHEADING_PREFIX):
                    break
            if is_fence_line(nxt):
                in_fence = not in_fence
                block.append(nxt.rstrip())
                i += 1
                continue
            if in_fence or not nxt.strip() or _indent(nxt) > base_indent:
                block.append(nxt.rstrip())
                i += 1
                continue
            break

        if current is not None:
            result.setdefault(current, []).extend(block)

    for category_items in result.values():
        while category_items and not category_items[-1].strip():
            category_items.pop()
    return result


def normalize_release_headers(text: str) -> str:
    """Collapse repeated spaces/tabs inside ``## [x.y.z]`` release headings."""
    lines = split_lines(text)
    mask = opaque_mask(lines)
    for i, line in enumerate(lines):
        if not mask[i] and _RELEASE_HEADER_RE.match(line):
            lines[i] = _HSPACE_RUN_RE.sub(" ", line)
    return "\n".join(lines)


def _history_without_section(lines: Sequence[str]) -> list[str]:
    """Destination history when it has no Unreleased section of its own.

    Starts at the first release heading, else at the first link reference.
    """
    mask = opaque_mask(lines)
    for i, line in enumerate(lines):
        if mask[i]:
            continue
        if _RELEASE_START_RE.match(line) or _LINK_REF_RE.match(line):
            return list(lines[i:])
    return []


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())
