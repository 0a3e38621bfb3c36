"""
status.py — HTTP Status Mapping
==================================
Translates status codes returned by peers into the node's
error taxonomy.
"""

from custody_node.core.errors import (
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    UnexpectedStatusError,
    ValidationError,
)

_ERRORS_BY_STATUS = {
    400: (ValidationError, "Invalid data"),
    401: (AuthenticationError, "Authentication failed"),
    403: (PermissionDeniedError, "Permission denied"),
    404: (NotFoundError, "Not found"),
}


def validate_incoming_status_code(status_code: int, url: str) -> None:
    """
    Raise the error matching a non-200 status code.

    Args:
        status_code: HTTP status code received from the peer.
        url: The URL that was requested, included in the message.

    Raises:
        ValidationError: on 400.
        AuthenticationError: on 401.
        PermissionDeniedError: on 403.
        NotFoundError: on 404.
        UnexpectedStatusError: on any other non-200 code.
    """
    if status_code == 200:
        return

    if status_code in _ERRORS_BY_STATUS:
        error_cls, prefix = _ERRORS_BY_STATUS[status_code]
        raise error_cls(f"{prefix}: Received code {status_code} at {url}")

    raise UnexpectedStatusError(status_code, url)
