"""
Exceptions raised while building or editing a bracket.
"""


class BracketError(Exception):
    """Base class for all bracket errors."""


class BracketConfigError(BracketError, ValueError):
    """Invalid team count, incompatible option flags or malformed result data."""


class BracketEditError(BracketError, ValueError):
    """An edit event that cannot be applied to the current bracket."""


class TopologyInvariantError(BracketError, RuntimeError):
    """The bracket structure itself is broken. Not recoverable by fixing input."""
