"""Errors raised while validating configuration and assembling a plan.

Configuration problems surface as pydantic's ``ValidationError`` before any intent
is created. ``TopologyError`` covers structural problems with the intent graph
itself. Neither is retryable; the configuration has to be corrected.
"""

from pydantic import ValidationError

__all__ = ["TopologyError", "ValidationError"]


class TopologyError(Exception):
    """The requested intent graph is structurally invalid."""
