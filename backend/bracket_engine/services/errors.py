"""
Bracket engine errors.

Services raise these; routers translate them to HTTP responses
(see bracket_engine.utils.guards.raise_http).
"""

from typing import List, Optional


class BracketError(Exception):
    """Base class for all bracket engine errors"""

    pass


class ValidationError(BracketError):
    """Raised when input cannot be accepted (team counts, tournament status, scores)"""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class NotFoundError(BracketError):
    """Raised when a tournament, category, zone or match does not exist"""

    pass


class InvariantError(BracketError):
    """Raised when stored data breaks an engine invariant (e.g. partial seeding)"""

    pass


class StateError(BracketError):
    """Raised when an operation is not allowed in the current state"""

    pass
