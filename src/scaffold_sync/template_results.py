"""Per-run record of what happened to each templated file."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

from scaffold_sync.io_utils import save_json

RESULTS_VERSION = "1.0"

type TemplateAction = Literal["create", "replace", "merge", "skip", "unchanged"]

VALID_ACTIONS: frozenset[str] = frozenset(
    {"create", "replace", "merge", "skip", "unchanged"},
)


def utc_now_iso() -> str:
    """Return current UTC timestamp in ISO-8601 format."""
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True, slots=True)
class TemplateResult:
    action: TemplateAction
    detail: str
    timestamp: str


class TemplateResults:
    """Accumulates one action per path for a single templating run.

    Recording ``skip`` for a path that already has another action keeps the
    earlier action, so a later no-op pass cannot hide a real write.
    """

    def __init__(self) -> None:
        self._entries: dict[str, TemplateResult] = {}
        self.started_at = utc_now_iso()

    def record(
        self, path: Path | str, action: TemplateAction, *, detail: str = "",
    ) -> None:
        if action not in VALID_ACTIONS:
            raise ValueError(
                f"unknown template action {action!r}; "
                f"expected one of {sorted(VALID_ACTIONS)}"
            )
        key = str(path)
        previous = self._entries.get(key)
        if action == "skip" and previous is not None and previous.action != "skip":
            return
        self._entries[key] = TemplateResult(
            action=action, detail=detail, timestamp=utc_now_iso(),
        )

    def modified(self, path: Path | str) -> bool:
        """True if the path was created, replaced or merged in this run."""
        entry = self._entries.get(str(path))
        return entry is not None and entry.action in ("create", "replace", "merge")

    def entries(self) -> dict[str, TemplateResult]:
        return dict(self._entries)

    def counts(self) -> dict[str, int]:
        out = {action: 0 for action in sorted(VALID_ACTIONS)}
        for entry in self._entries.values():
            out[entry.action] += 1
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "results_version": RESULTS_VERSION,
            "started_at": self.started_at,
            "counts": self.counts(),
            "files": {
                path: {
                    "action": entry.action,
                    "detail": entry.detail,
                    "timestamp": entry.timestamp,
                }
                for path, entry in sorted(self._entries.items())
            },
        }

    def write(self, path: Path) -> None:
        """Persist the results as JSON."""
        save_json(self.to_dict(), path)
