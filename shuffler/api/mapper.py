"""
API Mapper
==========

Transforms core contracts into JSON-ready dictionaries.
Keys of integer-keyed mappings are rendered as strings so the wire
format does not depend on the JSON encoder's key coercion.
"""
from typing import Any, Dict

from ..contracts.base import Error
from ..contracts.sections import Permutation
from ..core import ValidatedGraph
from ..engine import ShuffleOutcome


def error_to_dto(error: Error) -> Dict[str, Any]:
    return {
        "code": error.code.name,
        "message": error.message,
        "context": dict(error.context),
        "internal": error.is_internal,
    }


def validated_to_dto(validated: ValidatedGraph) -> Dict[str, Any]:
    return {
        "valid": True,
        "section_count": validated.section_count,
        "constraint_count": validated.graph.edge_count,
        "fixed_slots": {
            str(position): section_id
            for position, section_id in sorted(validated.fixed_slots.items())
        },
        "windows": {
            str(section_id): {"earliest": window.earliest, "latest": window.latest}
            for section_id, window in validated.windows().items()
        },
    }


def permutation_to_dto(permutation: Permutation) -> Dict[str, Any]:
    return {
        "order": list(permutation.order),
        "positions": {
            str(section_id): position
            for section_id, position in permutation.positions.items()
        },
        "seed": permutation.seed,
    }


def outcome_to_dto(outcome: ShuffleOutcome) -> Dict[str, Any]:
    dto = permutation_to_dto(outcome.permutation)
    dto["section_count"] = len(outcome.manuscript)
    dto["text"] = outcome.text
    return dto
