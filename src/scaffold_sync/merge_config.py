"""Merge configuration loaded from JSON.

Keeps project-specific choices (which README sections belong to the user,
which changelog categories are canonical, which gemspec fields are freeform)
out of the merger code. Adding a preserved section means editing a
``scaffold_sync.json``, not modifying Python.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from scaffold_sync.io_utils import load_json

DEFAULT_PRESERVED_SECTIONS: tuple[str, ...] = (
    "synopsis",
    "configuration",
    "basic usage",
)
DEFAULT_PRESERVED_PREFIXES: tuple[str, ...] = ("note:",)
DEFAULT_CHANGELOG_SECTION = "Unreleased"
DEFAULT_CHANGELOG_CATEGORIES: tuple[str, ...] = (
    "Added",
    "Changed",
    "Deprecated",
    "Removed",
    "Fixed",
    "Security",
)
DEFAULT_FREEFORM_FIELDS: tuple[str, ...] = ("summary", "description")
DEFAULT_ANCHOR_FIELD = "version"
DEFAULT_DEPENDENCY_METHODS: tuple[str, ...] = (
    "add_dependency",
    "add_runtime_dependency",
    "add_development_dependency",
    "gem",
)


def normalize_section_key(key: str) -> str:
    """Lower-case a configured section key and collapse its whitespace."""
    return " ".join(key.split()).lower()


class ConfigError(ValueError):
    """Raised when a merge configuration payload has the wrong shape."""


@dataclass(frozen=True, slots=True)
class MergeConfig:
    """Knobs for the document mergers and the script splicer."""

    preserved_sections: tuple[str, ...] = DEFAULT_PRESERVED_SECTIONS
    preserved_prefixes: tuple[str, ...] = DEFAULT_PRESERVED_PREFIXES
    changelog_section: str = DEFAULT_CHANGELOG_SECTION
    changelog_categories: tuple[str, ...] = DEFAULT_CHANGELOG_CATEGORIES
    freeform_fields: tuple[str, ...] = DEFAULT_FREEFORM_FIELDS
    anchor_field: str = DEFAULT_ANCHOR_FIELD
    dependency_methods: tuple[str, ...] = DEFAULT_DEPENDENCY_METHODS
    heading_spacing: bool = False

    def is_preserved_key(self, key: str) -> bool:
        """True if a section key names user-owned README content."""
        wanted = normalize_section_key(key)
        return (
            any(normalize_section_key(s) == wanted for s in self.preserved_sections)
            or self.has_preserved_prefix(key)
        )

    def has_preserved_prefix(self, key: str) -> bool:
        lowered = key.lower()
        return any(lowered.startswith(p.lower()) for p in self.preserved_prefixes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MergeConfig:
        """Build a config from a decoded JSON object; missing keys use defaults."""
        if not isinstance(data, dict):
            raise ConfigError(
                f"merge config must be a JSON object, got {type(data).__name__}"
            )
        unknown = sorted(set(data) - _FIELD_NAMES)
        if unknown:
            raise ConfigError(f"unknown merge config keys: {', '.join(unknown)}")

        categories = _str_tuple(
            data, "changelog_categories", DEFAULT_CHANGELOG_CATEGORIES,
        )
        if not categories:
            raise ConfigError("changelog_categories must not be empty")
        if len({c.lower() for c in categories}) != len(categories):
            raise ConfigError("changelog_categories must be unique")

        heading_spacing = data.get("heading_spacing", False)
        if not isinstance(heading_spacing, bool):
            raise ConfigError("heading_spacing must be a boolean")

        return cls(
            preserved_sections=tuple(
                normalize_section_key(k)
                for k in _str_tuple(
                    data, "preserved_sections", DEFAULT_PRESERVED_SECTIONS,
                )
            ),
            preserved_prefixes=tuple(
                p.lower()
                for p in _str_tuple(
                    data, "preserved_prefixes", DEFAULT_PRESERVED_PREFIXES,
                )
            ),
            changelog_section=_str(
                data, "changelog_section", DEFAULT_CHANGELOG_SECTION,
            ),
            changelog_categories=categories,
            freeform_fields=_str_tuple(
                data, "freeform_fields", DEFAULT_FREEFORM_FIELDS,
            ),
            anchor_field=_str(data, "anchor_field", DEFAULT_ANCHOR_FIELD),
            dependency_methods=_str_tuple(
                data, "dependency_methods", DEFAULT_DEPENDENCY_METHODS,
            ),
            heading_spacing=heading_spacing,
        )

    @classmethod
    def from_json(cls, path: Path) -> MergeConfig:
        """Load from a scaffold_sync.json file."""
        return cls.from_dict(load_json(path))


_FIELD_NAMES = frozenset(MergeConfig.__dataclass_fields__)

DEFAULT_CONFIG = MergeConfig()


def _str(data: dict[str, Any], key: str, default: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{key} must be a non-empty string")
    return value.strip()


def _str_tuple(
    data: dict[str, Any], key: str, default: tuple[str, ...],
) -> tuple[str, ...]:
    value = data.get(key, default)
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"{key} must be a list of strings")
    out: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ConfigError(f"{key} entries must be non-empty strings")
        out.append(item.strip())
    return tuple(out)
