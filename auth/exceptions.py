"""Typed exceptions for auth failures."""


class AuthError(Exception):
    """Base class for authentication/authorization errors."""


class InvalidCredentialsError(AuthError):
    """
    Email/password pair refused by the auth layer.

    Deliberately says nothing about which half was wrong.
    """


class SessionExpiredError(AuthError):
    """Session is unknown or has expired; the user must sign in again."""
