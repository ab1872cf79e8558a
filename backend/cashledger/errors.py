# Overview: Failure kinds raised by the cash ledger services.

"""
Cash ledger error taxonomy.

Each business-rule failure has its own class so callers can route it to a
different recovery path ("session already open" vs "register not found").
`code` is the stable identifier surfaced in action results and JSON bodies;
`status_code` is the HTTP status the web layer answers with.
"""

STORE_ERROR = "STORE_ERROR"


class LedgerError(Exception):
    """Base class for expected cash ledger failures."""

    code = "LEDGER_ERROR"
    status_code = 400


class ValidationError(LedgerError, ValueError):
    """Malformed or out-of-range input, rejected before touching the store."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(LedgerError):
    code = "NOT_FOUND"
    status_code = 404


class RegisterNotFoundError(NotFoundError):
    code = "REGISTER_NOT_FOUND"


class SessionNotFoundError(NotFoundError):
    code = "SESSION_NOT_FOUND"


class DuplicateNameError(LedgerError):
    code = "DUPLICATE_NAME"
    status_code = 409


class HasOpenSessionError(LedgerError):
    code = "HAS_OPEN_SESSION"
    status_code = 409


class RegisterInactiveError(LedgerError):
    code = "REGISTER_INACTIVE"
    status_code = 409


class SessionAlreadyOpenError(LedgerError):
    code = "SESSION_ALREADY_OPEN"
    status_code = 409


class SessionAlreadyClosedError(LedgerError):
    code = "SESSION_ALREADY_CLOSED"
    status_code = 409


class SessionClosedError(LedgerError):
    """A movement was attempted against a session that is no longer open."""

    code = "SESSION_CLOSED"
    status_code = 409


def status_for_code(code: str | None) -> int:
    """HTTP status for an error code, 500 for store failures and unknown codes."""
    for cls in _all_error_classes(LedgerError):
        if cls.code == code:
            return cls.status_code
    return 500


def _all_error_classes(root):
    yield root
    for sub in root.__subclasses__():
        yield from _all_error_classes(sub)
