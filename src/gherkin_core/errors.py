"""Base exception for gherkin-core."""

from __future__ import annotations


class GherkinError(Exception):
    """Raised for malformed documents, expressions, and tag filters."""
