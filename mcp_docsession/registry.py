"""
Operation handlers and the name -> handler registry.

Every document operation is a handler object with an ``operation`` name and
an ``execute(context, parameters)`` method. The registry is filled once at
startup, frozen, and looked up case-insensitively on every call.

Two template bases split validation from effects:
- EditHandler: parse -> protection check -> apply -> mark_modified
- QueryHandler: parse -> query

parse() sees the document but must not change it, so a validation failure
never leaves a partially mutated document.
"""

from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from .context import OperationContext
from .errors import StateConflictError, UnknownOperation
from .parameters import ParameterBag


class OperationHandler(ABC):
    """Contract shared by all handlers."""

    operation: str = ""
    # Handlers that build a new document get a blank one for an ephemeral path.
    creates_document: bool = False

    @abstractmethod
    def execute(self, context: OperationContext, parameters: ParameterBag) -> Any:
        """Run the operation against context.document and return its result."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(operation={self.operation!r})"


class EditHandler(OperationHandler):
    """Base for operations that mutate the document."""

    # Protection itself must be removable on a protected document.
    respects_protection: bool = True

    def execute(self, context: OperationContext, parameters: ParameterBag) -> Any:
        args = self.parse(parameters, context)
        if self.respects_protection and context.document.is_protected:
            raise StateConflictError(
                f"Document is protected ({context.document.protection.protection_type}); "
                "unprotect it before editing"
            )
        result = self.apply(context, args)
        context.mark_modified()
        return result

    @abstractmethod
    def parse(self, parameters: ParameterBag, context: OperationContext) -> Any:
        """Validate parameters against the document. Must not mutate."""

    @abstractmethod
    def apply(self, context: OperationContext, args: Any) -> Any:
        """Perform the mutation with already validated arguments."""


class QueryHandler(OperationHandler):
    """Base for read-only operations."""

    def execute(self, context: OperationContext, parameters: ParameterBag) -> Any:
        args = self.parse(parameters, context)
        return self.query(context, args)

    def parse(self, parameters: ParameterBag, context: OperationContext) -> Any:
        """Validate parameters. Default: no parameters."""
        return None

    @abstractmethod
    def query(self, context: OperationContext, args: Any) -> Any:
        """Read from the document."""


class HandlerRegistry:
    """Case-insensitive operation name -> handler table."""

    def __init__(self, handlers: Iterable[OperationHandler] = ()):
        self._handlers: Mapping[str, OperationHandler] = {}
        self._frozen = False
        for handler in handlers:
            self.register(handler)

    @staticmethod
    def canonical(operation: str) -> str:
        """Canonical (case-folded) form of an operation name."""
        return operation.casefold()

    def register(self, handler: OperationHandler) -> None:
        """
        Add a handler under its operation name.

        Raises:
            ValueError: Empty name or name already registered
            RuntimeError: Registry already frozen
        """
        if self._frozen:
            raise RuntimeError("Handler registry is frozen")
        if not handler.operation:
            raise ValueError(f"{type(handler).__name__} has no operation name")
        key = self.canonical(handler.operation)
        if key in self._handlers:
            raise ValueError(
                f"Duplicate handler for operation '{handler.operation}': "
                f"{type(self._handlers[key]).__name__} and {type(handler).__name__}"
            )
        self._handlers[key] = handler

    def freeze(self) -> "HandlerRegistry":
        """Make the registry read-only. Returns self."""
        self._handlers = MappingProxyType(dict(self._handlers))
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, operation: str) -> OperationHandler:
        """
        Find the handler for an operation name.

        Raises:
            UnknownOperation: No handler under that name (message has the exact input)
        """
        handler = self._handlers.get(self.canonical(operation)) if isinstance(operation, str) else None
        if handler is None:
            raise UnknownOperation(str(operation), self.names())
        return handler

    def dispatch(self, operation: str, context: OperationContext, parameters: ParameterBag) -> Any:
        """Route a call to the handler registered under operation."""
        return self.lookup(operation).execute(context, parameters)

    def names(self) -> list[str]:
        """Registered operation names, sorted."""
        return sorted(self._handlers)

    def __contains__(self, operation: object) -> bool:
        return isinstance(operation, str) and self.canonical(operation) in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
