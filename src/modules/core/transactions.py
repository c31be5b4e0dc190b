"""Unit-of-work helpers: bounded lock waits and contention retries.

``atomic_with_retry`` is the transaction boundary used by every write in
the order core.  It

1. opens ``transaction.atomic()``,
2. bounds lock waits for the current transaction (PostgreSQL
   ``lock_timeout``, MySQL ``innodb_lock_wait_timeout``; SQLite uses the
   connection busy timeout configured in settings),
3. retries the whole unit of work with linear backoff when the database
   reports a lock timeout, deadlock or serialization failure, and finally
   raises ``ContentionError``,
4. converts any other ``DatabaseError`` into ``PersistenceError``.

``IntegrityError`` is re-raised untouched so callers can resolve unique-key
races (e.g. idempotency keys) themselves.

Retries only happen at the outermost transaction.  When already inside an
atomic block (nested service calls, test transactions) the failed attempt
cannot be replayed safely, so the first contention error is surfaced as
``ContentionError`` immediately.
"""

from __future__ import annotations

import time
from functools import wraps
from typing import Any, Callable, TypeVar

import structlog
from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, DatabaseError, IntegrityError, transaction

from modules.core.exceptions import ContentionError, DomainError, PersistenceError

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# PostgreSQL SQLSTATEs: serialization_failure, deadlock_detected, lock_not_available
PG_RETRYABLE_CODES = {"40001", "40P01", "55P03"}
# MySQL error numbers: lock wait timeout, deadlock
MYSQL_RETRYABLE_CODES = {1205, 1213}

_RETRYABLE_MESSAGES = (
    "deadlock",
    "could not serialize access",
    "lock timeout",
    "lock wait timeout",
    "could not obtain lock",
    "database is locked",
    "database table is locked",
)


def _db_error_code(exc: BaseException) -> Any:
    cause = exc.__cause__ or exc
    code = getattr(cause, "pgcode", None) or getattr(cause, "sqlstate", None)
    if code:
        return code
    args = getattr(cause, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


def is_contention_error(exc: BaseException) -> bool:
    """Return ``True`` if *exc* is a lock/serialization failure worth retrying."""
    code = _db_error_code(exc)
    if code in PG_RETRYABLE_CODES or code in MYSQL_RETRYABLE_CODES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _RETRYABLE_MESSAGES)


def apply_lock_timeout(using: str = DEFAULT_DB_ALIAS) -> None:
    """Bound lock waits for the transaction currently open on *using*."""
    connection = transaction.get_connection(using)
    timeout_ms = settings.ORDER_LOCK_TIMEOUT_MS
    if connection.vendor == "postgresql":
        with connection.cursor() as cursor:
            cursor.execute(
                "SELECT set_config('lock_timeout', %s, true)", [f"{timeout_ms}ms"]
            )
    elif connection.vendor == "mysql":
        with connection.cursor() as cursor:
            cursor.execute(
                "SET SESSION innodb_lock_wait_timeout = %s",
                [max(1, timeout_ms // 1000)],
            )


def atomic_with_retry(func: F | None = None, *, using: str = DEFAULT_DB_ALIAS):
    """Run *func* as one unit of work, retrying on lock contention.

    Usable as ``@atomic_with_retry`` or ``@atomic_with_retry(using="replica")``.
    Only wrap operations whose every write happens inside the wrapped call.
    """

    def decorator(fn: F) -> F:
        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            nested = transaction.get_connection(using).in_atomic_block
            max_attempts = 1 if nested else max(1, settings.ORDER_CONTENTION_MAX_ATTEMPTS)
            backoff = settings.ORDER_CONTENTION_BACKOFF_SECONDS

            for attempt in range(1, max_attempts + 1):
                try:
                    with transaction.atomic(using=using):
                        apply_lock_timeout(using)
                        return fn(*args, **kwargs)
                except (IntegrityError, DomainError):
                    raise
                except DatabaseError as exc:
                    if not is_contention_error(exc):
                        logger.error(
                            "db.persistence_failure",
                            operation=fn.__qualname__,
                            error=str(exc),
                        )
                        raise PersistenceError(
                            "The operation could not be stored."
                        ) from exc
                    if attempt >= max_attempts:
                        logger.warning(
                            "db.contention_exhausted",
                            operation=fn.__qualname__,
                            attempts=attempt,
                        )
                        raise ContentionError(
                            "Concurrent update in progress; retry the request."
                        ) from exc
                    logger.info(
                        "db.contention_retry",
                        operation=fn.__qualname__,
                        attempt=attempt,
                    )
                    time.sleep(backoff * attempt)
            raise AssertionError("unreachable")  # pragma: no cover

        return wrapper  # type: ignore[return-value]

    if func is not None:
        return decorator(func)
    return decorator
