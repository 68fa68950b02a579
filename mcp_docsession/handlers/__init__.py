"""Document operation handlers."""

from ..registry import HandlerRegistry, OperationHandler
from .bookmarks import AddBookmarkHandler, DeleteBookmarkHandler, GetBookmarksHandler
from .common import Alignment, ProtectionType
from .file import CreateDocumentHandler, GetContentHandler, GetStatisticsHandler
from .notes import AddFootnoteHandler, DeleteFootnoteHandler, GetFootnotesHandler
from .paragraphs import (
    DeleteParagraphHandler,
    EditParagraphHandler,
    GetParagraphsHandler,
    InsertParagraphHandler,
)
from .properties import GetPropertiesHandler, SetPropertiesHandler
from .protection import ProtectHandler, UnprotectHandler
from .tables import CreateTableHandler, GetTableHandler, SetCellColorsHandler
from .text import AddTextHandler, DeleteTextHandler, ReplaceTextHandler

ALL_HANDLERS: list[type[OperationHandler]] = [
    # File
    CreateDocumentHandler,
    GetContentHandler,
    GetStatisticsHandler,
    # Text
    AddTextHandler,
    ReplaceTextHandler,
    DeleteTextHandler,
    # Paragraphs
    InsertParagraphHandler,
    EditParagraphHandler,
    DeleteParagraphHandler,
    GetParagraphsHandler,
    # Footnotes
    AddFootnoteHandler,
    GetFootnotesHandler,
    DeleteFootnoteHandler,
    # Bookmarks
    AddBookmarkHandler,
    GetBookmarksHandler,
    DeleteBookmarkHandler,
    # Tables
    CreateTableHandler,
    SetCellColorsHandler,
    GetTableHandler,
    # Properties
    SetPropertiesHandler,
    GetPropertiesHandler,
    # Protection
    ProtectHandler,
    UnprotectHandler,
]


def build_registry() -> HandlerRegistry:
    """Instantiate every handler into a frozen registry."""
    return HandlerRegistry(handler() for handler in ALL_HANDLERS).freeze()


__all__ = ["ALL_HANDLERS", "Alignment", "ProtectionType", "build_registry"]
