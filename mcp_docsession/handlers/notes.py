"""Footnote handlers."""

from dataclasses import asdict
from typing import Any

from ..context import OperationContext
from ..document import Footnote
from ..errors import EntityNotFound
from ..parameters import ParameterBag
from ..registry import EditHandler, QueryHandler
from .common import paragraph_index


class AddFootnoteHandler(EditHandler):
    """Attach a footnote to a paragraph (default: the last one)."""

    operation = "add_footnote"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> dict[str, Any]:
        last = len(context.document.paragraphs) - 1
        return {
            "text": parameters.get_required("text"),
            "index": paragraph_index(parameters, context.document, default=max(last, 0)),
        }

    def apply(self, context: OperationContext, args: dict[str, Any]) -> dict[str, int]:
        document = context.document
        footnote = Footnote(id=document.next_footnote_id(), paragraph_index=args["index"], text=args["text"])
        document.footnotes.append(footnote)
        return {"footnote_id": footnote.id, "paragraph_index": footnote.paragraph_index}


class GetFootnotesHandler(QueryHandler):
    operation = "get_footnotes"

    def query(self, context: OperationContext, args: None) -> dict[str, Any]:
        footnotes = context.document.footnotes
        return {"count": len(footnotes), "footnotes": [asdict(f) for f in footnotes]}


class DeleteFootnoteHandler(EditHandler):
    operation = "delete_footnote"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> Footnote:
        footnote_id = parameters.get_required("footnote_id", int)
        footnote = context.document.find_footnote(footnote_id)
        if footnote is None:
            raise EntityNotFound("Footnote", str(footnote_id))
        return footnote

    def apply(self, context: OperationContext, footnote: Footnote) -> dict[str, int]:
        context.document.footnotes.remove(footnote)
        return {"deleted_id": footnote.id, "remaining": len(context.document.footnotes)}
