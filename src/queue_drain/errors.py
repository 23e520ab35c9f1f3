"""
Exceptions for queue draining.

Queue faults propagate out of a drain cycle; storage faults are captured
per item and reported through InsertFailed.
"""


class DrainError(Exception):
    """Base error for queue draining."""

    pass


class QueueUnavailableError(DrainError):
    """Queue backend unreachable or failing; aborts the current cycle."""

    pass


class ConfigUnavailableError(DrainError):
    """Admin settings could not be read; aborts the current run."""

    pass


class StorageError(DrainError):
    """Base error for a failed record insert."""

    pass


class RetryableError(StorageError):
    """Temporary storage errors (deadlock, serialization, connection loss)."""

    pass


class ConstraintViolation(StorageError):
    """Database constraint violations (unique, foreign key, check, not null)."""

    pass


class TypeMismatch(StorageError):
    """Value does not fit the destination column type."""

    pass


class TimeoutExceeded(StorageError):
    """Statement or connection timeout."""

    pass


class CoercionError(TypeMismatch):
    """A field coercion rule could not convert a payload value."""

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        super().__init__(f"cannot coerce field {field!r} value {value!r}: {reason}")


def map_db_error(e: Exception) -> StorageError:
    import psycopg
    import psycopg.errors as E

    # QueryCanceled subclasses OperationalError; check it first
    if isinstance(e, E.QueryCanceled):
        return TimeoutExceeded(str(e))
    if isinstance(e, (E.SerializationFailure, E.DeadlockDetected, psycopg.OperationalError)):
        return RetryableError(str(e))
    if isinstance(
        e, (E.UniqueViolation, E.CheckViolation, E.ForeignKeyViolation, E.NotNullViolation)
    ):
        return ConstraintViolation(str(e))
    if isinstance(e, (E.InvalidTextRepresentation, E.DatatypeMismatch, E.NumericValueOutOfRange)):
        return TypeMismatch(str(e))
    return StorageError(str(e))
