"""Shared parameter helpers and enums for document handlers."""

from enum import Enum

from ..document import Document
from ..errors import ParameterOutOfRange
from ..parameters import ParameterBag


class Alignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFY = "justify"


class ProtectionType(str, Enum):
    READ_ONLY = "read_only"
    ALLOW_ONLY_COMMENTS = "allow_only_comments"
    ALLOW_ONLY_FORM_FIELDS = "allow_only_form_fields"


def check_index(name: str, index: int, upper: int) -> int:
    """Require 0 <= index < upper."""
    if not 0 <= index < upper:
        if upper == 0:
            raise ParameterOutOfRange(name, "document has no items")
        raise ParameterOutOfRange(name, f"must be between 0 and {upper - 1}")
    return index


def paragraph_index(
    parameters: ParameterBag,
    document: Document,
    name: str = "paragraph_index",
    allow_end: bool = False,
    default: int | None = None,
) -> int:
    """Read a paragraph index and check it against the document.

    Args:
        allow_end: Accept len(paragraphs) (insert position after the last one)
        default: Used when the parameter is absent; None makes it required
    """
    if default is None:
        index = parameters.get_required(name, int)
    else:
        index = parameters.get_optional(name, int, default)
    count = len(document.paragraphs)
    if allow_end and index == count:
        return index
    return check_index(name, index, count + 1 if allow_end else count)
