"""
Mirror Integration — Keep a secondary remote in sync with the primary.

This module reconciles the mirror working tree against the source tree,
commits it under its own history, and pushes it to the mirror remote.
"""
