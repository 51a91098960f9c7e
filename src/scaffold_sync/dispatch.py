"""Route a templated file to the merger for its kind.

``merge_file`` is the single entry point used by the CLI: it normalizes line
endings, merges, applies script-level edits, normalizes the output and
records what happened in the caller's TemplateResults.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from scaffold_sync import changelog_merger, markdown_merger
from scaffold_sync.merge_config import DEFAULT_CONFIG, MergeConfig
from scaffold_sync.script.gemspec import (
    extract_gemspec_fields,
    remove_gem_dependency,
    remove_spec_dependency,
    replace_gemspec_fields,
    sync_readme_h1_emoji,
)
from scaffold_sync.script.splicer import FieldValue
from scaffold_sync.script.types import NodeMerger
from scaffold_sync.template_results import TemplateAction, TemplateResults
from scaffold_sync.text_normalize import (
    collapse_magic_comments,
    ensure_trailing_newline,
    normalize_heading_spacing,
    normalize_newlines,
)

logger = logging.getLogger(__name__)

type FileKind = Literal[
    "changelog", "markdown", "gemspec", "gemfile", "appraisals", "other",
]

_DOCUMENT_KINDS: frozenset[str] = frozenset({"changelog", "markdown"})
_SCRIPT_KINDS: frozenset[str] = frozenset({"gemspec", "gemfile", "appraisals"})


def detect_file_kind(path: Path | str) -> FileKind:
    """Classify a file by its name."""
    name = Path(path).name
    lower = name.lower()
    if lower == "changelog.md":
        return "changelog"
    if lower.endswith((".md", ".markdown")):
        return "markdown"
    if lower.endswith(".gemspec"):
        return "gemspec"
    if name == "Appraisals":
        return "appraisals"
    if lower.endswith(".lock"):
        return "other"
    if name.startswith("Gemfile") or lower.endswith(".gemfile"):
        return "gemfile"
    return "other"


def merge_file(
    path: Path | str,
    template: str,
    destination: str | None,
    *,
    config: MergeConfig | None = None,
    results: TemplateResults | None = None,
    gem_name: str | None = None,
    field_values: Mapping[str, FieldValue | None] | None = None,
    node_merger: NodeMerger | None = None,
    gemspec_content: str | None = None,
) -> str:
    """Merge one templated file and return the text to write.

    Args:
        path: Destination path; only its name is used for routing and it is
            the key recorded in ``results``.
        template: Template content after token substitution.
        destination: Existing content, or None when the file does not exist.
        config: Merge configuration; DEFAULT_CONFIG when omitted.
        results: Accumulator that receives the action taken.
        gem_name: The project's own gem; its self-dependency is removed from
            gemspecs, Gemfiles and Appraisals.
        field_values: Gemspec fields to set in the merged result. When None,
            the literal fields of the existing gemspec are carried over.
        node_merger: Statement-level merger run first for script kinds.
        gemspec_content: The project's gemspec; a README's H1 emoji is
            synced to it when given.

    Returns:
        Merged text ending in exactly one newline.
    """
    cfg = config or DEFAULT_CONFIG
    kind = detect_file_kind(path)
    template = normalize_newlines(template)
    dest = normalize_newlines(destination) if destination is not None else None

    if kind == "changelog":
        merged = changelog_merger.merge(template, dest, config=cfg)
    elif kind == "markdown":
        merged = markdown_merger.merge(template, dest, config=cfg)
        if gemspec_content is not None and _is_readme(path):
            merged = sync_readme_h1_emoji(
                merged, normalize_newlines(gemspec_content),
            )
    elif kind in _SCRIPT_KINDS:
        merged = _merge_script(
            kind, template, dest,
            config=cfg,
            gem_name=gem_name,
            field_values=field_values,
            node_merger=node_merger,
        )
    else:
        merged = template

    merged = _normalize_output(kind, merged, cfg)
    action = _classify_action(kind, dest, merged)
    logger.debug("%s: %s as %s", path, action, kind)
    if results is not None:
        results.record(path, action, detail=kind)
    return merged


def _merge_script(
    kind: FileKind,
    template: str,
    destination: str | None,
    *,
    config: MergeConfig,
    gem_name: str | None,
    field_values: Mapping[str, FieldValue | None] | None,
    node_merger: NodeMerger | None,
) -> str:
    merged = template
    if node_merger is not None and destination is not None and destination.strip():
        merged = node_merger.merge(template, destination)

    if kind == "gemspec":
        if field_values is None and destination is not None and destination.strip():
            field_values = extract_gemspec_fields(destination)
        if field_values:
            return replace_gemspec_fields(
                merged, field_values, remove_dependency=gem_name, config=config,
            )
        if gem_name:
            return remove_spec_dependency(merged, gem_name)
        return merged

    if gem_name:
        return remove_gem_dependency(merged, gem_name)
    return merged


def _is_readme(path: Path | str) -> bool:
    return Path(path).name.lower().startswith("readme")


def _normalize_output(kind: FileKind, text: str, config: MergeConfig) -> str:
    if kind in _SCRIPT_KINDS:
        text = collapse_magic_comments(text)
    elif kind in _DOCUMENT_KINDS and config.heading_spacing:
        text = normalize_heading_spacing(text)
    return ensure_trailing_newline(text)


def _classify_action(
    kind: FileKind, destination: str | None, merged: str,
) -> TemplateAction:
    if destination is None:
        return "create"
    if ensure_trailing_newline(destination) == merged:
        return "unchanged"
    if kind == "other":
        return "replace"
    return "merge"
