"""
Contracts Module

This module defines the explicit interfaces and data transfer objects
shared by every layer of the shuffler. All inter-layer communication
MUST use these contracts. No layer may import implementation details
from another layer.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. All failures are explicit error states, never silent fallbacks
3. Section identity is stable for the lifetime of a manuscript
4. Results are values: the same inputs always produce equal contracts
"""
