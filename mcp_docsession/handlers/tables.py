"""Table handlers."""

import re
from typing import Any

from ..context import OperationContext
from ..document import Table
from ..errors import EntityNotFound, InvalidParameterType, ParameterOutOfRange
from ..parameters import ParameterBag, coerce
from ..registry import EditHandler, QueryHandler
from .common import check_index

# Upper bounds for a single table (cells are held in memory per session)
MAX_TABLE_ROWS = 1000
MAX_TABLE_COLUMNS = 63

_COLOR_PATTERN = re.compile(r"^#?[0-9A-Fa-f]{6}$")


def _table(parameters: ParameterBag, context: OperationContext) -> tuple[int, Table]:
    index = parameters.get_optional("table_index", int, 0)
    tables = context.document.tables
    if not tables:
        raise EntityNotFound("Table", str(index))
    index = check_index("table_index", index, len(tables))
    return index, tables[index]


def _normalize_color(name: str, value: Any) -> str:
    color = coerce(name, value, str).strip()
    if not _COLOR_PATTERN.match(color):
        raise InvalidParameterType(name, "a hex color like #RRGGBB", value)
    return color.lstrip("#").upper()


class CreateTableHandler(EditHandler):
    """Add an empty table, optionally pre-filled with data rows."""

    operation = "create_table"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> dict[str, Any]:
        rows = parameters.get_required("rows", int)
        columns = parameters.get_required("columns", int)
        if not 1 <= rows <= MAX_TABLE_ROWS:
            raise ParameterOutOfRange("rows", f"must be between 1 and {MAX_TABLE_ROWS}")
        if not 1 <= columns <= MAX_TABLE_COLUMNS:
            raise ParameterOutOfRange("columns", f"must be between 1 and {MAX_TABLE_COLUMNS}")

        data = parameters.get_list("data", list, required=False)
        if len(data) > rows:
            raise InvalidParameterType("data", f"at most {rows} rows", data)
        cells = []
        for r, row in enumerate(data):
            if len(row) > columns:
                raise InvalidParameterType(f"data[{r}]", f"at most {columns} cells", row)
            cells.append([coerce(f"data[{r}][{c}]", value, str) for c, value in enumerate(row)])
        return {"rows": rows, "columns": columns, "data": cells}

    def apply(self, context: OperationContext, args: dict[str, Any]) -> dict[str, int]:
        table = Table.empty(args["rows"], args["columns"])
        for r, row in enumerate(args["data"]):
            table.cells[r][: len(row)] = row
        context.document.tables.append(table)
        return {"table_index": len(context.document.tables) - 1, "rows": table.rows, "columns": table.columns}


class SetCellColorsHandler(EditHandler):
    """
    Set background colors for many cells at once.

    Parameters:
        cells: list of {row, column, color} fragments; every fragment is
            checked before any color is applied
    """

    operation = "set_cell_colors"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> dict[str, Any]:
        index, table = _table(parameters, context)
        fragments = parameters.get_list("cells", dict)
        if not fragments:
            raise InvalidParameterType("cells", "a non-empty array", fragments)

        updates = []
        for i, fragment in enumerate(fragments):
            fragment_params = ParameterBag(fragment)
            row = check_index(f"cells[{i}].row", fragment_params.get_required("row", int), table.rows)
            column = check_index(f"cells[{i}].column", fragment_params.get_required("column", int), table.columns)
            color = _normalize_color(f"cells[{i}].color", fragment_params.get_required("color"))
            updates.append((row, column, color))
        return {"index": index, "updates": updates}

    def apply(self, context: OperationContext, args: dict[str, Any]) -> dict[str, int]:
        table = context.document.tables[args["index"]]
        for row, column, color in args["updates"]:
            table.colors[row][column] = color
        return {"table_index": args["index"], "cells_updated": len(args["updates"])}


class GetTableHandler(QueryHandler):
    operation = "get_table"

    def parse(self, parameters: ParameterBag, context: OperationContext) -> int:
        index, _ = _table(parameters, context)
        return index

    def query(self, context: OperationContext, index: int) -> dict[str, Any]:
        table = context.document.tables[index]
        return {
            "table_index": index,
            "rows": table.rows,
            "columns": table.columns,
            "cells": table.cells,
            "colors": table.colors,
        }
