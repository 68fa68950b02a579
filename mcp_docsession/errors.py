"""
Error taxonomy for the document session server.

Every error a caller can trigger derives from DocSessionError and carries a
stable ``code`` so the tool layer can report the kind without parsing messages.

Kinds:
- UsageError: bad parameters, unknown operation, missing source
- NotFoundError: unknown session, missing named entity inside a document
- StateConflictError: the document or session state forbids the operation
- SourceLoadError: the document at a path cannot be loaded
"""

from typing import Any


class DocSessionError(Exception):
    """Base exception for all caller-visible failures."""

    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ==================== Usage Errors ====================


class UsageError(DocSessionError):
    """Invalid usage: parameters, operation names, sources."""

    code = "usage_error"


class MissingParameter(UsageError):
    """A required parameter was absent or empty."""

    code = "missing_parameter"

    def __init__(self, name: str, detail: str | None = None):
        message = f"{name} is required"
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)
        self.name = name


class InvalidParameterType(UsageError):
    """A parameter was present but could not be coerced to the expected type."""

    code = "invalid_parameter_type"

    def __init__(self, name: str, expected: str, actual: Any):
        super().__init__(
            f"{name} must be {expected}, got {type(actual).__name__} {actual!r}"
        )
        self.name = name
        self.expected = expected
        self.actual = actual


class ParameterOutOfRange(UsageError):
    """A parameter was outside its declared bounds."""

    code = "out_of_range"

    def __init__(self, name: str, constraint: str):
        super().__init__(f"{name} out of range: {constraint}")
        self.name = name
        self.constraint = constraint


class UnknownOperation(UsageError):
    """No handler is registered under the requested operation name."""

    code = "unknown_operation"

    def __init__(self, operation: str, available: list[str] | None = None):
        message = f"Unknown operation: {operation}"
        if available:
            message = f"{message}. Available operations: {', '.join(available)}"
        super().__init__(message)
        self.operation = operation


class MissingSource(UsageError):
    """Neither a path nor a session id was supplied."""

    code = "missing_source"

    def __init__(self, message: str = "path or session_id is required"):
        super().__init__(message)


# ==================== Not Found Errors ====================


class NotFoundError(DocSessionError):
    """Something the caller referenced does not exist."""

    code = "not_found"


class SessionNotFound(NotFoundError):
    """The session id is unknown, closed, or evicted."""

    code = "session_not_found"

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class EntityNotFound(NotFoundError):
    """A named entity inside the document does not exist."""

    code = "entity_not_found"

    def __init__(self, kind: str, name: Any):
        super().__init__(f"{kind} not found: {name}")
        self.kind = kind
        self.name = name


# ==================== State Errors ====================


class StateConflictError(DocSessionError):
    """The operation cannot proceed given the current document or session state."""

    code = "state_conflict"


class SourceLoadError(DocSessionError):
    """The document at a path could not be loaded."""

    code = "source_load_error"

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot load document {path}: {reason}")
        self.path = path
        self.reason = reason
