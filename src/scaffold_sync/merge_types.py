"""Core types shared by the document mergers and the script splicer.

Type hierarchy:
  Ok[T] / Err[E]   outcome of a step that may decline to act
  Section          one heading found in a document
  SectionIndex     lines and sections of one parsed document
  BranchEntry      destination branch body, looked up by section key

Line coordinates are 0-based indexes into the document's line list, where the
line list is ``text.split("\\n")`` (a trailing newline yields a final empty
line, so joining reproduces the text exactly).
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Success case of Result[T, E].

    Usage::

        result: Result[Edit, SpliceSkip] = Ok(edit)
        match result:
            case Ok(value=v): edits.append(v)
            case Err(error=e): logger.debug(e.reason)
    """
    value: T


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failure case of Result[T, E].

    Carries the typed reason a step declined to act. Callers aggregate these
    into a no-op rather than raising.
    """
    error: E


type Result[T, E] = Ok[T] | Err[E]


# ---------------------------------------------------------------------------
# Section model
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Section:
    """A heading and the position it occupies in a document.

    Invariants (enforced in __post_init__):
        - start_line >= 0
        - level >= 1
    """

    start_line: int   # 0-based line index of the heading line
    level: int        # number of leading '#' markers
    heading: str      # raw heading line, verbatim
    key: str          # normalized lookup key ("basic usage", "note: foo")

    def __post_init__(self) -> None:
        if self.start_line < 0:
            raise ValueError(
                f"Section.start_line must be >= 0, got {self.start_line}"
            )
        if self.level < 1:
            raise ValueError(f"Section.level must be >= 1, got {self.level}")


@dataclass(frozen=True, slots=True)
class SectionIndex:
    """Parsed view of one document: its lines and its heading sections."""

    lines: tuple[str, ...]
    sections: tuple[Section, ...]
    line_count: int

    def __post_init__(self) -> None:
        previous = -1
        for section in self.sections:
            if section.start_line <= previous:
                raise ValueError(
                    "SectionIndex.sections must be strictly increasing in "
                    f"start_line (saw {section.start_line} after {previous})"
                )
            previous = section.start_line


@dataclass(frozen=True, slots=True)
class BranchEntry:
    """A destination section's branch body (lines after its heading)."""

    lines: tuple[str, ...]
    level: int

    @property
    def body(self) -> str:
        """Branch body as text, exactly as it appears in the document."""
        return "\n".join(self.lines)
