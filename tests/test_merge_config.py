"""Tests for scaffold_sync.merge_config module."""
from pathlib import Path

import orjson
import pytest

from scaffold_sync.merge_config import (
    DEFAULT_CONFIG,
    DEFAULT_CHANGELOG_CATEGORIES,
    ConfigError,
    MergeConfig,
)


class TestMergeConfig:
    def test_defaults(self) -> None:
        assert DEFAULT_CONFIG.changelog_categories == DEFAULT_CHANGELOG_CATEGORIES
        assert DEFAULT_CONFIG.anchor_field == "version"
        assert "summary" in DEFAULT_CONFIG.freeform_fields

    def test_is_preserved_key(self) -> None:
        assert DEFAULT_CONFIG.is_preserved_key("synopsis")
        assert DEFAULT_CONFIG.is_preserved_key("note: windows users")
        assert not DEFAULT_CONFIG.is_preserved_key("installation")

    def test_is_preserved_key_normalizes_direct_config(self) -> None:
        config = MergeConfig(
            preserved_sections=("Basic  Usage",), preserved_prefixes=("NOTE:",),
        )
        assert config.is_preserved_key("basic usage")
        assert config.has_preserved_prefix("note: upgrading")
        assert not config.has_preserved_prefix("notes")

    def test_from_dict_empty_uses_defaults(self) -> None:
        assert MergeConfig.from_dict({}) == DEFAULT_CONFIG

    def test_from_dict_normalizes_section_keys(self) -> None:
        config = MergeConfig.from_dict({"preserved_sections": ["Basic   Usage"]})
        assert config.preserved_sections == ("basic usage",)

    def test_unknown_key_rejected(self) -> None:
        with pytest.raises(ConfigError, match="unknown"):
            MergeConfig.from_dict({"preserve": ["x"]})

    def test_wrong_types_rejected(self) -> None:
        with pytest.raises(ConfigError):
            MergeConfig.from_dict({"preserved_sections": "synopsis"})
        with pytest.raises(ConfigError):
            MergeConfig.from_dict({"heading_spacing": "yes"})
        with pytest.raises(ConfigError):
            MergeConfig.from_dict({"anchor_field": ""})
        with pytest.raises(ConfigError):
            MergeConfig.from_dict([])  # type: ignore[arg-type]

    def test_duplicate_categories_rejected(self) -> None:
        with pytest.raises(ConfigError):
            MergeConfig.from_dict({"changelog_categories": ["Added", "added"]})

    def test_config_error_is_value_error(self) -> None:
        assert issubclass(ConfigError, ValueError)

    def test_from_json(self, tmp_path: Path) -> None:
        path = tmp_path / "scaffold_sync.json"
        path.write_bytes(orjson.dumps({
            "preserved_sections": ["synopsis", "support"],
            "heading_spacing": True,
        }))
        config = MergeConfig.from_json(path)
        assert config.preserved_sections == ("synopsis", "support")
        assert config.heading_spacing is True
        assert config.changelog_section == "Unreleased"
