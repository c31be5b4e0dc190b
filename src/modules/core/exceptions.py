"""Domain error taxonomy shared by every module.

Each bounded context raises subclasses of these kinds from its Service
Layer.  The kind decides how a caller should react:

- ``DomainValidationError``: malformed input; fix the request and retry.
- ``NotFoundError``: the referenced order/product does not exist.
- ``ConflictError``: a business rule rejected the request as it stands.
- ``ContentionError``: lock timeout / deadlock / serialization failure;
  safe to retry the exact same request.
- ``PersistenceError``: unexpected storage failure; logged, never swallowed.

``code`` is a stable machine-readable identifier rendered by the API
exception handler; ``http_status`` is the status the API answers with.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for every error the core reports to its callers."""

    kind = "domain_error"
    code = "domain_error"
    http_status = 400

    def __init__(self, message: str = "", *, code: str | None = None) -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        if code is not None:
            self.code = code

    @property
    def detail(self) -> str:
        return str(self)


class DomainValidationError(DomainError):
    """The request is malformed or incomplete."""

    kind = "validation_error"
    code = "invalid"
    http_status = 400


class NotFoundError(DomainError):
    """The referenced entity does not exist."""

    kind = "not_found"
    code = "not_found"
    http_status = 404


class ConflictError(DomainError):
    """A business rule rejects the request in the current state."""

    kind = "conflict"
    code = "conflict"
    http_status = 409


class ContentionError(DomainError):
    """The unit of work lost a lock race; retrying as-is is safe."""

    kind = "contention"
    code = "contention"
    http_status = 503


class PersistenceError(DomainError):
    """Unexpected storage failure."""

    kind = "server_error"
    code = "persistence_error"
    http_status = 500


class ImmutableRecordError(PersistenceError):
    """An append-only record was about to be updated or deleted."""

    code = "immutable_record"
