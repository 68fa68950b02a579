"""Bookmark handlers."""

from dataclasses import asdict
from typing import Any

from ..context import OperationContext
from ..document import Bookmark
from ..errors import EntityNotFound, StateConflictError
from ..parameters import ParameterBag
from ..registry import EditHandler, QueryHandler
from .common import paragraph_index


class AddBookmarkHandler(EditHandler):
    operation = "add_bookmark"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> Bookmark:
        name = parameters.get_required("name")
        if context.document.find_bookmark(name) is not None:
            raise StateConflictError(f"Bookmark already exists: {name}")
        return Bookmark(name=name, paragraph_index=paragraph_index(parameters, context.document))

    def apply(self, context: OperationContext, bookmark: Bookmark) -> dict[str, Any]:
        context.document.bookmarks.append(bookmark)
        return asdict(bookmark)


class GetBookmarksHandler(QueryHandler):
    """List bookmarks with the text of the paragraph each points at."""

    operation = "get_bookmarks"

    def query(self, context: OperationContext, args: None) -> list[dict[str, Any]]:
        paragraphs = context.document.paragraphs
        return [
            {**asdict(b), "text": paragraphs[b.paragraph_index].text}
            for b in context.document.bookmarks
        ]


class DeleteBookmarkHandler(EditHandler):
    operation = "delete_bookmark"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> Bookmark:
        name = parameters.get_required("name")
        bookmark = context.document.find_bookmark(name)
        if bookmark is None:
            raise EntityNotFound("Bookmark", name)
        return bookmark

    def apply(self, context: OperationContext, bookmark: Bookmark) -> str:
        context.document.bookmarks.remove(bookmark)
        return f"Bookmark deleted: {bookmark.name}"
