"""Exception types shared by the selection framework."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when bin edges, cut tables, or hypotheses are malformed.

    Configuration problems are detected once, while tables and hypotheses are
    built, and are never recovered during event processing.
    """
