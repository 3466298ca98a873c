"""
Integration Test Fixtures

Explicit manuscripts and request payloads shared by the integration tests.
All fixtures are literal values - no random generation.
"""

# =============================================================================
# MANUSCRIPTS
# =============================================================================

SCENES = (
    "The ferry leaves without her.",
    "She remembers the island as a child.",
    "A stranger offers a ride across the bay.",
    "The island has no lights tonight.",
    "Morning: the stranger is gone.",
)

MANUSCRIPT = "\n\n* * *\n\n".join(SCENES)

PIPE_MANUSCRIPT = " | ".join(SCENES)


# =============================================================================
# REQUEST PAYLOADS
# =============================================================================

def sections_payload(count, fixed=None):
    """Sections 1..count; `fixed` maps section id -> fixed position."""
    fixed = fixed or {}
    return [
        {
            "section_id": section_id,
            "text": f"Section {section_id}",
            "fixed": section_id in fixed,
            "fixed_position": fixed.get(section_id),
        }
        for section_id in range(1, count + 1)
    ]


def constraints_payload(*pairs):
    return [{"before": before, "after": after} for before, after in pairs]
