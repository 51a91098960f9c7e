"""Tests for scaffold_sync.template_results module."""
from pathlib import Path

import orjson
import pytest

from scaffold_sync.template_results import TemplateResults


class TestTemplateResults:
    def test_record_and_modified(self) -> None:
        results = TemplateResults()
        results.record("README.md", "merge")
        results.record("LICENSE", "unchanged")
        assert results.modified("README.md")
        assert not results.modified("LICENSE")
        assert not results.modified("missing")

    def test_skip_does_not_downgrade(self) -> None:
        results = TemplateResults()
        results.record("README.md", "create")
        results.record("README.md", "skip")
        assert results.entries()["README.md"].action == "create"

    def test_later_action_overrides(self) -> None:
        results = TemplateResults()
        results.record("README.md", "skip")
        results.record("README.md", "replace")
        assert results.entries()["README.md"].action == "replace"

    def test_unknown_action(self) -> None:
        with pytest.raises(ValueError):
            TemplateResults().record("x", "delete")  # type: ignore[arg-type]

    def test_entries_is_a_copy(self) -> None:
        results = TemplateResults()
        results.record("a", "create")
        results.entries().clear()
        assert "a" in results.entries()

    def test_write(self, tmp_path: Path) -> None:
        results = TemplateResults()
        results.record(Path("CHANGELOG.md"), "merge", detail="changelog")
        out = tmp_path / "logs" / "results.json"
        results.write(out)
        payload = orjson.loads(out.read_bytes())
        assert payload["counts"]["merge"] == 1
        assert payload["files"]["CHANGELOG.md"]["detail"] == "changelog"
