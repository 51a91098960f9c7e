"""Branch-preserving merger for README-style Markdown documents.

The template provides structure and boilerplate. Sections the user is known
to customize keep the destination's content:

- the first H1 line (title, often decorated with an emoji)
- "Synopsis", "Configuration" and "Basic Usage" (configurable)
- any "Note: ..." section at any heading level

A preserved section is replaced as a whole branch: heading plus everything up
to the next heading of the same or a higher level, subsections included.

Usage::

    merged = merge(template_text, existing_readme)
"""
from __future__ import annotations

from collections.abc import Callable, Collection

from scaffold_sync.merge_config import (
    DEFAULT_CONFIG,
    MergeConfig,
    normalize_section_key,
)
from scaffold_sync.merge_types import BranchEntry, Section, SectionIndex
from scaffold_sync.sections import branch_ends, find_section, parse_sections

# Body used when the destination has no counterpart for a preserved section.
_EMPTY_BODY: tuple[str, ...] = ("", "")


def merge(
    template_content: str,
    destination_content: str | None,
    *,
    preserved_keys: Collection[str] | None = None,
    preserved_predicate: Callable[[str], bool] | None = None,
    config: MergeConfig | None = None,
) -> str:
    """Merge README content, keeping user-owned sections from the destination.

    Args:
        template_content: Template text, already token-substituted (and, in a
            full pipeline, already node-merged).
        destination_content: Existing file content, or None if absent.
        preserved_keys: Section keys to keep from the destination. Defaults
            to ``config.preserved_sections``.
        preserved_predicate: Extra key test, e.g. a "note:" prefix match.
            Defaults to the prefix rule of ``config.preserved_prefixes``.
        config: Merge configuration; DEFAULT_CONFIG when omitted.

    Returns:
        The merged text. The template is returned unchanged when the
        destination is absent or blank.
    """
    if destination_content is None or not destination_content.strip():
        return template_content

    merged = preserve_sections(
        template_content,
        destination_content,
        preserved_keys=preserved_keys,
        preserved_predicate=preserved_predicate,
        config=config,
    )
    return preserve_h1(merged, destination_content)


def preserve_sections(
    merged: str,
    destination: str,
    *,
    preserved_keys: Collection[str] | None = None,
    preserved_predicate: Callable[[str], bool] | None = None,
    config: MergeConfig | None = None,
) -> str:
    """Replace every preserved branch in merged with the destination's branch."""
    cfg = config or DEFAULT_CONFIG
    wanted = _preserved_rule(cfg, preserved_keys, preserved_predicate)

    src = parse_sections(merged)
    if not src.sections:
        return merged

    lookup = build_section_lookup(parse_sections(destination))
    ends = branch_ends(src.sections, src.line_count)
    targets = _outermost_targets(src.sections, ends, wanted)

    lines = list(src.lines)
    # Reverse document order keeps earlier start lines valid after splicing.
    for i in reversed(targets):
        section = src.sections[i]
        entry = lookup.get(section.key)
        body = entry.lines if entry is not None else _EMPTY_BODY
        lines[section.start_line:ends[i] + 1] = [section.heading, *body]
    return "\n".join(lines)


def preserve_h1(merged: str, destination: str) -> str:
    """Put the destination's first H1 line in place of merged's first H1."""
    dest = parse_sections(destination)
    dest_idx = find_section(dest, _is_h1)
    if dest_idx is None:
        return merged

    src = parse_sections(merged)
    src_idx = find_section(src, _is_h1)
    if src_idx is None:
        return merged

    lines = list(src.lines)
    lines[src.sections[src_idx].start_line] = dest.sections[dest_idx].heading
    return "\n".join(lines)


def build_section_lookup(index: SectionIndex) -> dict[str, BranchEntry]:
    """Map section key to its branch body. First occurrence of a key wins."""
    lookup: dict[str, BranchEntry] = {}
    ends = branch_ends(index.sections, index.line_count)
    for i, section in enumerate(index.sections):
        if section.key in lookup:
            continue
        body = index.lines[section.start_line + 1:ends[i] + 1]
        lookup[section.key] = BranchEntry(lines=tuple(body), level=section.level)
    return lookup


def _outermost_targets(
    sections: tuple[Section, ...],
    ends: tuple[int, ...],
    wanted: Callable[[str], bool],
) -> list[int]:
    """Indexes of preserved sections not nested inside another preserved one.

    A preserved ancestor replaces its whole branch, so nested targets are
    already covered and would otherwise be spliced with stale line numbers.
    """
    targets: list[int] = []
    covered_until = -1
    for i, section in enumerate(sections):
        if section.start_line <= covered_until:
            continue
        if wanted(section.key):
            targets.append(i)
            covered_until = ends[i]
    return targets


def _preserved_rule(
    config: MergeConfig,
    preserved_keys: Collection[str] | None,
    preserved_predicate: Callable[[str], bool] | None,
) -> Callable[[str], bool]:
    if preserved_keys is None and preserved_predicate is None:
        return config.is_preserved_key

    keys = frozenset(
        normalize_section_key(k)
        for k in (
            preserved_keys if preserved_keys is not None
            else config.preserved_sections
        )
    )
    predicate = preserved_predicate or config.has_preserved_prefix

    def matches(key: str) -> bool:
        return key in keys or predicate(key)

    return matches


def _is_h1(section: Section) -> bool:
    return section.level == 1
