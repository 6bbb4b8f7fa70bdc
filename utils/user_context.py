"""Carry the authenticated account id through the call stack for RLS."""

from contextlib import contextmanager
from contextvars import ContextVar
from uuid import UUID

_current_user_id: ContextVar[UUID | None] = ContextVar("current_user_id", default=None)


def get_current_user_id() -> UUID:
    """
    Account id of the caller.

    Raises RuntimeError when no user context is set: code that needs an
    identity was reached outside of an authenticated request.
    """
    user_id = _current_user_id.get()
    if user_id is None:
        raise RuntimeError(
            "No user context set. This usually means you're calling "
            "user-scoped code outside of an authenticated request."
        )
    return user_id


def peek_current_user_id() -> UUID | None:
    """Account id of the caller, or None when unauthenticated."""
    return _current_user_id.get()


def set_current_user_id(user_id: UUID) -> None:
    """Set by the auth middleware once the session is validated."""
    _current_user_id.set(user_id)


def clear_current_user_id() -> None:
    """Must run in a finally block so one request never leaks into the next."""
    _current_user_id.set(None)


@contextmanager
def user_context(user_id: UUID):
    """
    Temporarily act as `user_id`.

    Example:
        with user_context(admin_id):
            users = user_service.list_users()
    """
    token = _current_user_id.set(user_id)
    try:
        yield
    finally:
        _current_user_id.reset(token)
