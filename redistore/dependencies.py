"""FastAPI dependency injection: session access."""

from __future__ import annotations

from fastapi import Request

from .session.sessions import Session


def get_session(request: Request) -> Session:
    """Get the session loaded by SessionMiddleware."""
    return request.state.session


def destroy_session(request: Request) -> None:
    """Mark the session for deletion when the response is sent."""
    session: Session = request.state.session
    session.options.max_age = -1
    session.values.clear()
