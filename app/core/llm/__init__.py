"""Completion endpoint integration layer.

This package is intentionally small and conservative:
- No prompt/output logging (may contain PHI).
- Configured from settings, never from ambient environment reads.
- Treated as a pure/stateless function by callers.
"""
