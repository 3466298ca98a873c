"""
Property Tests for the Shuffle Core
Verifies that validation is exact and that every shuffle is a valid order.
"""

from itertools import permutations

from hypothesis import given, settings, strategies as st
from hypothesis.strategies import composite

from shuffler.contracts.sections import Constraint, Permutation, Section
from shuffler.core import shuffle, validate
from shuffler.core.registry import SectionRegistry
from shuffler.core.topology import ConstraintGraph
from shuffler.core.validator import ConstraintValidator

# =============================================================================
# STRATEGIES (Generators)
# =============================================================================

@composite
def satisfiable_problems(draw, max_sections=12):
    """
    Sections, constraints and fixed positions that a hidden order satisfies.

    Constraints only point forward in the hidden order and fixed sections
    sit at their hidden position, so at least one valid order exists.
    """
    count = draw(st.integers(min_value=0, max_value=max_sections))
    ids = list(range(1, count + 1))
    hidden = draw(st.permutations(ids))

    constraints = []
    if count >= 2:
        pairs = draw(st.lists(
            st.tuples(
                st.integers(min_value=0, max_value=count - 1),
                st.integers(min_value=0, max_value=count - 1)
            ),
            max_size=count * 2
        ))
        for a, b in pairs:
            if a != b:
                first, second = min(a, b), max(a, b)
                constraints.append(Constraint(before=hidden[first], after=hidden[second]))

    fixed_ids = draw(st.sets(st.sampled_from(ids), max_size=count)) if ids else set()
    sections = [
        Section(
            section_id=section_id,
            original_index=index,
            fixed=section_id in fixed_ids,
            fixed_position=hidden.index(section_id) if section_id in fixed_ids else None
        )
        for index, section_id in enumerate(ids)
    ]
    return sections, constraints


@composite
def arbitrary_problems(draw, max_sections=6):
    """Small problems with unrestricted constraints and fixed positions."""
    count = draw(st.integers(min_value=1, max_value=max_sections))
    ids = list(range(1, count + 1))

    pairs = draw(st.lists(
        st.tuples(st.sampled_from(ids), st.sampled_from(ids)),
        max_size=count * 2
    ))
    constraints = [Constraint(before=a, after=b) for a, b in pairs if a != b]

    sections = []
    for index, section_id in enumerate(ids):
        position = draw(st.one_of(st.none(), st.integers(min_value=0, max_value=count - 1)))
        sections.append(Section(
            section_id=section_id,
            original_index=index,
            fixed=position is not None,
            fixed_position=position
        ))
    return sections, constraints


def is_valid_order(order, sections, constraints):
    positions = {section_id: position for position, section_id in enumerate(order)}
    for section in sections:
        if section.fixed and positions[section.section_id] != section.fixed_position:
            return False
    return all(positions[c.before] < positions[c.after] for c in constraints)


# =============================================================================
# PROPERTY TESTS
# =============================================================================

@given(satisfiable_problems())
@settings(deadline=None)
def test_satisfiable_problems_validate(problem):
    """A problem with a known valid order always validates."""
    sections, constraints = problem
    result = validate(sections, constraints)
    assert result.is_success, result.error


@given(satisfiable_problems(), st.integers(min_value=0, max_value=2 ** 64 - 1))
@settings(deadline=None)
def test_every_shuffle_is_a_valid_order(problem, seed):
    """Constraints hold, fixed sections stay put and the output is a bijection."""
    sections, constraints = problem
    validated = validate(sections, constraints).value

    result = shuffle(validated, seed=seed)

    assert result.is_success, result.error
    permutation = result.value
    assert sorted(permutation.order) == sorted(s.section_id for s in sections)
    assert is_valid_order(permutation.order, sections, constraints)
    assert permutation.seed == seed


@given(arbitrary_problems())
@settings(max_examples=300, deadline=None)
def test_validation_matches_brute_force(problem):
    """Validation succeeds exactly when some ordering satisfies everything."""
    sections, constraints = problem
    ids = [s.section_id for s in sections]

    exists = any(is_valid_order(order, sections, constraints) for order in permutations(ids))
    result = validate(sections, constraints)

    assert result.is_success == exists, result.error


@given(arbitrary_problems(), st.integers(min_value=0, max_value=1000))
@settings(deadline=None)
def test_validated_problems_always_shuffle(problem, seed):
    """The engine never fails on a graph the validator accepted."""
    sections, constraints = problem
    validated = validate(sections, constraints)
    if validated.is_failure:
        return

    result = shuffle(validated.value, seed=seed)

    assert result.is_success, result.error
    assert is_valid_order(result.value.order, sections, constraints)


@given(satisfiable_problems())
@settings(deadline=None)
def test_validation_is_read_only(problem):
    sections, constraints = problem
    registry = SectionRegistry(sections)
    graph = ConstraintGraph.build(registry, constraints).value
    before = graph.constraints()

    ConstraintValidator().validate(graph)

    assert graph.constraints() == before
    assert not graph.is_frozen


@given(st.permutations(list(range(1, 9))))
def test_permutation_positions_invert_order(order):
    permutation = Permutation(order=tuple(order))
    for position, section_id in enumerate(order):
        assert permutation.positions[section_id] == position
        assert permutation.position_of(section_id) == position
