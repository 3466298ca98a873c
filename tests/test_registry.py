"""
Section Registry Tests
======================

Verifies the arena view over manuscript sections: stable indices,
duplicate rejection and the fixed-section defaults of the contracts.
"""

import pytest

from shuffler.contracts.base import ErrorCode
from shuffler.contracts.sections import Section
from shuffler.core.registry import SectionRegistry


def make_sections(*ids):
    return [Section(section_id=section_id, original_index=i) for i, section_id in enumerate(ids)]


class TestSectionContract:

    def test_pinned_section_defaults_to_original_index(self):
        section = Section.pinned(3, 2, "text")
        assert section.fixed is True
        assert section.fixed_position == 2

    def test_explicit_fixed_position_is_kept(self):
        section = Section(section_id=1, original_index=4, fixed=True, fixed_position=0)
        assert section.fixed_position == 0

    def test_position_without_fixed_flag_is_rejected(self):
        with pytest.raises(ValueError):
            Section(section_id=1, original_index=0, fixed_position=2)

    def test_negative_original_index_is_rejected(self):
        with pytest.raises(ValueError):
            Section(section_id=1, original_index=-1)


class TestSectionRegistry:

    def test_indices_follow_input_order(self):
        registry = SectionRegistry(make_sections(10, 20, 30))

        assert len(registry) == 3
        assert registry.index_of(20) == 1
        assert registry.section_at(2).section_id == 30
        assert registry.ids() == (10, 20, 30)

    def test_membership_and_lookup(self):
        registry = SectionRegistry(make_sections(1, 2))

        assert 1 in registry
        assert 3 not in registry
        assert registry.section(2).original_index == 1
        with pytest.raises(KeyError):
            registry.index_of(3)

    def test_constructor_rejects_duplicates(self):
        with pytest.raises(ValueError):
            SectionRegistry(make_sections(1, 2, 1))

    def test_build_reports_duplicate_section(self):
        result = SectionRegistry.build(make_sections(1, 2, 2))

        assert result.is_failure
        assert result.error.code == ErrorCode.DUPLICATE_SECTION
        assert result.error.context_value("section_id") == "2"

    def test_fixed_sections_in_registry_order(self):
        sections = [
            Section(section_id=1, original_index=0),
            Section.pinned(2, 1),
            Section(section_id=3, original_index=2, fixed=True, fixed_position=0),
        ]
        registry = SectionRegistry(sections)

        assert [s.section_id for s in registry.fixed_sections()] == [2, 3]

    def test_empty_registry(self):
        result = SectionRegistry.build([])

        assert result.is_success
        assert len(result.value) == 0
        assert list(result.value) == []
