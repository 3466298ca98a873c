"""
Manuscript Layer

RESPONSIBILITY: Turn manuscript text into Section contracts and back
ALLOWED INPUTS: Raw manuscript text, delimiter configuration, writer-entered
                "before" lists and pinned section numbers
OUTPUTS: Manuscript (immutable sections + reassembly separator), Constraints

WHAT THIS LAYER MUST NOT DO:
============================
- Validate or shuffle (core layer's job)
- Interpret section text beyond trimming surrounding whitespace
- Preserve rich text (non-goal)

CONVENTIONS:
============
- Section identifiers are one-based, matching the §N numbering writers see
- Positions are zero-based, matching the core
- A plain delimiter reappears verbatim between reassembled sections;
  a regex delimiter is replaced by a dinkus
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
import re

# ONLY import from contracts - never from other layers
from ..contracts.base import Error, ErrorCode, Result
from ..contracts.sections import Constraint, Permutation, Section


DEFAULT_DELIMITER = "* * *"
DINKUS_SEPARATOR = "\n\n* * *\n\n"
SECTION_LIST_PATTERN = re.compile(r"^(?:\s*\d+\s*(?:,\s*\d+\s*)*)?$")


@dataclass
class ManuscriptConfig:
    """How a manuscript is split into sections."""
    delimiter: str = DEFAULT_DELIMITER
    delimiter_is_regex: bool = False


def separator_for(config: ManuscriptConfig) -> str:
    """Separator placed between sections when reassembling."""
    if config.delimiter_is_regex:
        return DINKUS_SEPARATOR
    return f"\n\n{config.delimiter}\n\n"


@dataclass(frozen=True)
class Manuscript:
    """A split manuscript: sections in original order plus their separator."""
    sections: Tuple[Section, ...]
    separator: str

    def __len__(self) -> int:
        return len(self.sections)

    @property
    def texts(self) -> Tuple[str, ...]:
        return tuple(section.text for section in self.sections)

    def assemble(self, permutation: Permutation) -> str:
        """Concatenate section texts in permutation order."""
        by_id = {section.section_id: section.text for section in self.sections}
        return self.separator.join(by_id[section_id] for section_id in permutation.order)


class ManuscriptSplitter:
    """Split manuscript text on a plain or regex delimiter."""

    def __init__(self, config: Optional[ManuscriptConfig] = None):
        self._config = config or ManuscriptConfig()

    @property
    def config(self) -> ManuscriptConfig:
        return self._config

    def split(
        self,
        text: str,
        pinned: Iterable[int] = (),
        fixed_positions: Optional[Mapping[int, int]] = None
    ) -> Result:
        """
        Split text into sections.

        Args:
            text: The full manuscript.
            pinned: One-based section numbers to keep at their original place.
            fixed_positions: One-based section number -> zero-based position.
        """
        pieces_result = self._split_text(text)
        if pieces_result.is_failure:
            return pieces_result
        pieces: List[str] = pieces_result.value

        pinned = set(pinned)
        fixed_positions = dict(fixed_positions or {})
        known = range(1, len(pieces) + 1)
        for section_id in sorted(pinned | set(fixed_positions)):
            if section_id not in known:
                return Result.failure(Error(
                    code=ErrorCode.UNKNOWN_SECTION,
                    message=f"Manuscript has no section §{section_id}",
                    context=(("section_id", str(section_id)),)
                ))

        sections = []
        for index, piece in enumerate(pieces):
            section_id = index + 1
            if section_id in fixed_positions:
                section = Section(
                    section_id=section_id,
                    original_index=index,
                    text=piece,
                    fixed=True,
                    fixed_position=fixed_positions[section_id]
                )
            elif section_id in pinned:
                section = Section.pinned(section_id, index, piece)
            else:
                section = Section(section_id=section_id, original_index=index, text=piece)
            sections.append(section)

        return Result.success(Manuscript(
            sections=tuple(sections),
            separator=separator_for(self._config)
        ))

    def _split_text(self, text: str) -> Result:
        delimiter = self._config.delimiter

        if self._config.delimiter_is_regex and delimiter:
            try:
                pattern = re.compile(delimiter)
            except re.error as e:
                return Result.failure(Error(
                    code=ErrorCode.INVALID_DELIMITER,
                    message=f"Invalid delimiter pattern: {e}",
                    context=(("delimiter", delimiter),)
                ))
            # finditer rather than split: capture groups must not leak into sections
            pieces = []
            start = 0
            for match in pattern.finditer(text):
                pieces.append(text[start:match.start()])
                start = match.end()
            pieces.append(text[start:])
        else:
            if not delimiter:
                return Result.failure(Error(
                    code=ErrorCode.INVALID_DELIMITER,
                    message="Section delimiter must not be empty",
                    context=(("delimiter", delimiter),)
                ))
            pieces = text.split(delimiter)

        return Result.success([piece.strip() for piece in pieces])


def parse_section_list(text: str) -> Result:
    """
    Parse a comma-separated list of one-based section numbers, e.g. "2, 3".

    An empty list is valid. Zeros are dropped.
    """
    if not SECTION_LIST_PATTERN.match(text):
        return Result.failure(Error(
            code=ErrorCode.INVALID_SECTION_LIST,
            message=(
                "The section list must be a comma-separated list of section "
                "numbers, like 1 or 2,3 or 1,3,7,10"
            ),
            context=(("text", text),)
        ))
    numbers = tuple(
        int(part) for part in text.split(",")
        if part.strip() and int(part) != 0
    )
    return Result.success(numbers)


def constraints_from_lists(lists: Mapping[int, str]) -> Result:
    """
    Turn "before" lists into constraints.

    `{1: "2, 3"}` means §1 must come before §2 and before §3.
    """
    constraints: Dict[Constraint, None] = {}
    for section_id in sorted(lists):
        parsed = parse_section_list(lists[section_id])
        if parsed.is_failure:
            return Result.failure(parsed.error.with_context("section_id", str(section_id)))
        for after in parsed.value:
            constraints[Constraint(before=section_id, after=after)] = None
    return Result.success(tuple(constraints))
