"""
errors.py — Error Taxonomy
=============================
Typed errors raised by the custody node. Callers of the token
authenticator and of the peer HTTP client branch on these kinds,
so each failure mode gets its own class.
"""


class CustodyNodeError(Exception):
    """Base class for all custody node errors."""


class ValidationError(CustodyNodeError):
    """Malformed input supplied by the caller."""


class AuthenticationError(CustodyNodeError):
    """Credentials missing, undecodable, badly signed or expired."""


class PermissionDeniedError(CustodyNodeError):
    """Authenticated caller is not allowed to perform the action."""


class NotFoundError(CustodyNodeError):
    """Requested resource does not exist."""


class UnexpectedStatusError(CustodyNodeError):
    """A peer answered with a status code we have no mapping for."""

    def __init__(self, status_code: int, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(f"Received code {status_code} at {url}")
