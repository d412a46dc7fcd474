"""Exception types shared by all adminops commands."""

from __future__ import annotations


class AdminOpsError(Exception):
    """Base class for errors reported to the operator."""


class AuthenticationError(AdminOpsError):
    """Credential rejected, identity provider unreachable, or permission missing."""


class RemoteCallError(AdminOpsError):
    """A remote API call did not succeed.

    ``status_code`` is None when the request never produced a response
    (connection failure, timeout).
    """

    def __init__(self, message: str, status_code: int | None = None,
                 body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        msg = super().__str__()
        if self.status_code is not None:
            msg = f"{msg} (HTTP {self.status_code})"
        if self.body:
            msg = f"{msg}: {self.body}"
        return msg


class AuditQueryError(RemoteCallError):
    """The audit log query failed, was cancelled, or did not finish in time."""


class RecordValidationError(AdminOpsError):
    """An audit record returned by the search service is malformed."""


class ExportWriteError(AdminOpsError):
    """The export file could not be written."""


class SectionUnavailable(AdminOpsError):
    """A facts report section cannot be collected on this host."""
