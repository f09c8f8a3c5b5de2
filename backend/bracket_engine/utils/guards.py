"""
Route guards and error translation.

Services raise bracket_engine.services.errors; routes turn them into
HTTPExceptions with these helpers.
"""

from typing import NoReturn

from fastapi import HTTPException
from sqlmodel import Session

from bracket_engine.models.tournament import Tournament
from bracket_engine.services.errors import (
    BracketError,
    InvariantError,
    NotFoundError,
    StateError,
    ValidationError,
)

STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (ValidationError, 400),
    (InvariantError, 422),
    (StateError, 409),
)


def http_status_for(error: BracketError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return 400


def raise_http(error: BracketError) -> NoReturn:
    """
    Re-raise a domain error as an HTTPException.

    ValidationError carries its error list in the detail.
    """
    status_code = http_status_for(error)
    if isinstance(error, ValidationError) and len(error.errors) > 1:
        raise HTTPException(status_code=status_code, detail={"message": str(error), "errors": error.errors})
    raise HTTPException(status_code=status_code, detail=str(error))


def require_tournament(session: Session, tournament_id: int) -> Tournament:
    """
    Load a tournament or raise 404.

    Raises:
        HTTPException 404: Tournament not found
    """
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament
