"""Text handlers: append, find/replace and delete."""

import re
from typing import Any

from ..context import OperationContext
from ..document import Paragraph
from ..errors import EntityNotFound
from ..parameters import ParameterBag
from ..registry import EditHandler
from .common import Alignment


class AddTextHandler(EditHandler):
    """Append text as new paragraphs (one per line)."""

    operation = "add_text"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> dict[str, Any]:
        return {
            "text": parameters.get_required("text"),
            "style": parameters.get_optional("style", str, "Normal"),
            "alignment": parameters.get_optional("alignment", Alignment, Alignment.LEFT),
        }

    def apply(self, context: OperationContext, args: dict[str, Any]) -> str:
        lines = args["text"].splitlines() or [args["text"]]
        for line in lines:
            context.document.paragraphs.append(
                Paragraph(text=line, style=args["style"], alignment=args["alignment"].value)
            )
        return f"Added {len(lines)} paragraph(s)"


class ReplaceTextHandler(EditHandler):
    """Replace occurrences of find with replace in paragraph text."""

    operation = "replace_text"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> dict[str, Any]:
        find = parameters.get_required("find")
        replace = parameters.get_optional("replace", str, "")
        match_case = parameters.get_optional("match_case", bool, True)
        matches = [i for i, p in enumerate(context.document.paragraphs) if _contains(p.text, find, match_case)]
        if not matches:
            raise EntityNotFound("Text", find)
        return {"find": find, "replace": replace, "match_case": match_case, "matches": matches}

    def apply(self, context: OperationContext, args: dict[str, Any]) -> dict[str, int]:
        replaced = 0
        for index in args["matches"]:
            paragraph = context.document.paragraphs[index]
            paragraph.text, count = _replace(paragraph.text, args["find"], args["replace"], args["match_case"])
            replaced += count
        return {"replacements": replaced, "paragraphs": len(args["matches"])}


class DeleteTextHandler(EditHandler):
    """Delete every occurrence of text."""

    operation = "delete_text"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> dict[str, Any]:
        text = parameters.get_required("text")
        matches = [i for i, p in enumerate(context.document.paragraphs) if text in p.text]
        if not matches:
            raise EntityNotFound("Text", text)
        return {"text": text, "matches": matches}

    def apply(self, context: OperationContext, args: dict[str, Any]) -> dict[str, int]:
        deleted = 0
        for index in args["matches"]:
            paragraph = context.document.paragraphs[index]
            deleted += paragraph.text.count(args["text"])
            paragraph.text = paragraph.text.replace(args["text"], "")
        return {"deleted": deleted}


def _contains(text: str, find: str, match_case: bool) -> bool:
    if match_case:
        return find in text
    return re.search(re.escape(find), text, flags=re.IGNORECASE) is not None


def _replace(text: str, find: str, replace: str, match_case: bool) -> tuple[str, int]:
    if match_case:
        return text.replace(find, replace), text.count(find)

    return re.subn(re.escape(find), lambda _: replace, text, flags=re.IGNORECASE)
