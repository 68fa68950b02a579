"""Whole-document handlers: create, content and statistics."""

from pathlib import Path
from typing import Any

from ..context import OperationContext
from ..document import Paragraph
from ..errors import StateConflictError, UsageError
from ..parameters import ParameterBag
from ..registry import EditHandler, QueryHandler


class CreateDocumentHandler(EditHandler):
    """Create a new document at path, optionally seeded with text."""

    operation = "create"
    creates_document = True

    def parse(self, parameters: ParameterBag, context: OperationContext) -> dict[str, Any]:
        if context.is_session:
            raise UsageError("create cannot target a session; pass path only")
        overwrite = parameters.get_optional("overwrite", bool, False)
        output_path = parameters.get_optional("output_path", str)
        target = output_path or context.source_path
        if not overwrite and Path(target).exists():
            raise StateConflictError(f"File already exists: {target} (set overwrite=true to replace)")
        return {
            "content": parameters.get_optional("content", str),
            "title": parameters.get_optional("title", str),
            "author": parameters.get_optional("author", str),
            "target": target,
        }

    def apply(self, context: OperationContext, args: dict[str, Any]) -> str:
        document = context.document
        if args["content"]:
            for line in args["content"].splitlines():
                document.paragraphs.append(Paragraph(text=line))
        for key in ("title", "author"):
            if args[key]:
                document.properties[key] = args[key]
        return f"Document created: {args['target']}"


class GetContentHandler(QueryHandler):
    """Return the body text, one paragraph per line."""

    operation = "get_content"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> bool:
        return parameters.get_optional("include_footnotes", bool, False)

    def query(self, context: OperationContext, include_footnotes: bool) -> dict[str, Any]:
        document = context.document
        result: dict[str, Any] = {
            "content": "\n".join(p.text for p in document.paragraphs),
            "paragraph_count": len(document.paragraphs),
        }
        if include_footnotes:
            result["footnotes"] = [f.text for f in document.footnotes]
        return result


class GetStatisticsHandler(QueryHandler):
    operation = "get_statistics"

    def query(self, context: OperationContext, args: None) -> dict[str, int]:
        document = context.document
        body = " ".join(p.text for p in document.paragraphs)
        return {
            "paragraphs": len(document.paragraphs),
            "words": len(body.split()),
            "characters": len(body),
            "footnotes": len(document.footnotes),
            "bookmarks": len(document.bookmarks),
            "tables": len(document.tables),
        }
