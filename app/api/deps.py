"""API dependencies for dependency injection."""

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, Header
from sqlmodel import Session

from app.config import get_settings
from app.db.session import get_session
from app.errors import AuthError


def get_db_session() -> Generator[Session, None, None]:
    """Get database session dependency."""
    yield from get_session()


DBSession = Annotated[Session, Depends(get_db_session)]


def require_edge_secret(
    x_edge_secret: Annotated[str | None, Header(alias="x-edge-secret")] = None,
) -> None:
    """Reject backend-to-backend calls whose shared secret does not match.

    The check is disabled while EDGE_FUNCTION_SECRET is empty.
    """
    expected = get_settings().EDGE_FUNCTION_SECRET
    if expected and (x_edge_secret or "") != expected:
        raise AuthError("Unauthorized")


EdgeSecret = Depends(require_edge_secret)
