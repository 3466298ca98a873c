"""
Section Registry
================

The ordered collection of manuscript sections for one request.

Each section is addressed by a stable arena index (its position in the
registry) so that the constraint graph can use plain integers as nodes.
"""

from __future__ import annotations
from typing import Dict, Iterable, Iterator, Tuple

from ..contracts.base import Error, ErrorCode, Result
from ..contracts.sections import Section


class SectionRegistry:
    """Immutable, indexed view over the sections of a manuscript."""

    def __init__(self, sections: Iterable[Section]):
        self._sections: Tuple[Section, ...] = tuple(sections)
        self._index: Dict[int, int] = {}
        for index, section in enumerate(self._sections):
            if section.section_id in self._index:
                raise ValueError(f"Duplicate section identifier: {section.section_id}")
            self._index[section.section_id] = index

    @staticmethod
    def build(sections: Iterable[Section]) -> Result:
        """Build a registry, reporting duplicate identifiers as an error state."""
        sections = tuple(sections)
        seen = set()
        for section in sections:
            if section.section_id in seen:
                return Result.failure(Error(
                    code=ErrorCode.DUPLICATE_SECTION,
                    message=f"Section §{section.section_id} appears more than once",
                    context=(("section_id", str(section.section_id)),)
                ))
            seen.add(section.section_id)
        return Result.success(SectionRegistry(sections))

    def __len__(self) -> int:
        return len(self._sections)

    def __contains__(self, section_id: object) -> bool:
        return section_id in self._index

    def __iter__(self) -> Iterator[Section]:
        return iter(self._sections)

    def index_of(self, section_id: int) -> int:
        return self._index[section_id]

    def section(self, section_id: int) -> Section:
        return self._sections[self._index[section_id]]

    def section_at(self, index: int) -> Section:
        return self._sections[index]

    def ids(self) -> Tuple[int, ...]:
        return tuple(section.section_id for section in self._sections)

    def fixed_sections(self) -> Tuple[Section, ...]:
        return tuple(section for section in self._sections if section.fixed)
