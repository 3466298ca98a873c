"""
Integration Tests Package

End-to-end tests through the HTTP API and the backend.

TEST AXIOMS:
=============
1. Determinism: same input + seed = identical order and text
2. Explicit failure: every error is a typed state with an HTTP status
3. No partial output: a failed request returns no order
"""
