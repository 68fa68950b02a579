"""Core document property handlers."""

from typing import Any

from ..context import OperationContext
from ..errors import InvalidParameterType, UsageError
from ..parameters import ParameterBag, coerce
from ..registry import EditHandler, QueryHandler

# Properties a caller may set; timestamps are managed on save
WRITABLE_PROPERTIES = ("title", "subject", "author", "keywords", "description", "category", "company")


class SetPropertiesHandler(EditHandler):
    """Set one or more core properties from a `properties` object or top-level args."""

    operation = "set_properties"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> dict[str, str]:
        given = parameters.get_optional("properties", dict, {})
        updates: dict[str, str] = {}
        for key, value in given.items():
            name = key.casefold()
            if name not in WRITABLE_PROPERTIES:
                raise InvalidParameterType(
                    f"properties.{key}", f"one of [{', '.join(WRITABLE_PROPERTIES)}]", key
                )
            updates[name] = coerce(f"properties.{key}", value, str)
        for name in WRITABLE_PROPERTIES:
            if parameters.has(name):
                updates[name] = parameters.get_required(name)
        if not updates:
            raise UsageError(f"set_properties needs at least one of: {', '.join(WRITABLE_PROPERTIES)}")
        return updates

    def apply(self, context: OperationContext, updates: dict[str, str]) -> dict[str, Any]:
        context.document.properties.update(updates)
        return {"updated": sorted(updates)}


class GetPropertiesHandler(QueryHandler):
    operation = "get_properties"

    def query(self, context: OperationContext, args: None) -> dict[str, Any]:
        document = context.document
        return {**document.properties, "protected": document.is_protected}
