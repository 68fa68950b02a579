"""Paragraph handlers."""

from typing import Any

from ..context import OperationContext
from ..document import Paragraph
from ..errors import ParameterOutOfRange, UsageError
from ..parameters import ParameterBag
from ..registry import EditHandler, QueryHandler
from .common import Alignment, paragraph_index


class InsertParagraphHandler(EditHandler):
    """Insert a paragraph before paragraph_index (default: at the end)."""

    operation = "insert_paragraph"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> dict[str, Any]:
        end = len(context.document.paragraphs)
        return {
            "index": paragraph_index(parameters, context.document, allow_end=True, default=end),
            "text": parameters.get_required("text"),
            "style": parameters.get_optional("style", str, "Normal"),
            "alignment": parameters.get_optional("alignment", Alignment, Alignment.LEFT),
        }

    def apply(self, context: OperationContext, args: dict[str, Any]) -> dict[str, int]:
        paragraph = Paragraph(text=args["text"], style=args["style"], alignment=args["alignment"].value)
        context.document.insert_paragraph(args["index"], paragraph)
        return {"paragraph_index": args["index"]}


class EditParagraphHandler(EditHandler):
    """Change the text, style or alignment of one paragraph."""

    operation = "edit_paragraph"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> dict[str, Any]:
        args = {
            "index": paragraph_index(parameters, context.document),
            "text": parameters.get_optional("text", str),
            "style": parameters.get_optional("style", str),
            "alignment": parameters.get_optional("alignment", Alignment),
        }
        if args["text"] is None and args["style"] is None and args["alignment"] is None:
            raise UsageError("edit_paragraph needs at least one of text, style or alignment")
        return args

    def apply(self, context: OperationContext, args: dict[str, Any]) -> dict[str, Any]:
        paragraph = context.document.paragraphs[args["index"]]
        if args["text"] is not None:
            paragraph.text = args["text"]
        if args["style"] is not None:
            paragraph.style = args["style"]
        if args["alignment"] is not None:
            paragraph.alignment = args["alignment"].value
        return {"paragraph_index": args["index"], "text": paragraph.text}


class DeleteParagraphHandler(EditHandler):
    operation = "delete_paragraph"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> int:
        return paragraph_index(parameters, context.document)

    def apply(self, context: OperationContext, index: int) -> dict[str, Any]:
        removed = context.document.remove_paragraph(index)
        return {"deleted_index": index, "text": removed.text}


class GetParagraphsHandler(QueryHandler):
    """List paragraphs, optionally a [start, end) slice."""

    operation = "get_paragraphs"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> tuple[int, int]:
        count = len(context.document.paragraphs)
        start = parameters.get_optional("start", int, 0)
        end = parameters.get_optional("end", int, count)
        if start < 0 or end < start:
            raise ParameterOutOfRange("start", f"need 0 <= start <= end, got {start}..{end}")
        return start, min(end, count)

    def query(self, context: OperationContext, bounds: tuple[int, int]) -> list[dict[str, Any]]:
        start, end = bounds
        return [
            {"index": i, "text": p.text, "style": p.style, "alignment": p.alignment}
            for i, p in enumerate(context.document.paragraphs[start:end], start=start)
        ]
