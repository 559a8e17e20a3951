"""Tabular rendering of API results.

Turns a list of uniformly-shaped models into bytes in one of the supported
output formats. Text tables are rendered directly; the other formats go
through a pandas DataFrame.
"""

import io
from collections.abc import Sequence
from enum import Enum

import pandas as pd
from pydantic import BaseModel

COLUMN_SEPARATOR = "  "
EMPTY_TABLE_MESSAGE = "No results."


class OutputFormat(str, Enum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"
    JSONL = "jsonl"
    CSV = "csv"
    PARQUET = "parquet"


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Render an aligned plain-text table.

    Cells are left-aligned and padded to the widest cell of their column,
    measured in characters. A dashed rule separates headers from rows.

    Args:
        headers: Column headers.
        rows: Rows of already-stringified cells.

    Returns:
        The table, newline-terminated.
    """
    widths = [len(header) for header in headers]
    for row in rows:
        for index, cell in enumerate(row[: len(widths)]):
            widths[index] = max(widths[index], len(cell))

    def render_row(cells: Sequence[str]) -> str:
        padded = [
            cells[index].ljust(width) if index < len(cells) else " " * width
            for index, width in enumerate(widths)
        ]
        return COLUMN_SEPARATOR.join(padded)

    lines = [
        render_row(headers),
        COLUMN_SEPARATOR.join("-" * width for width in widths),
    ]
    if rows:
        lines.extend(render_row(row) for row in rows)
    else:
        lines.append(EMPTY_TABLE_MESSAGE)

    return "\n".join(lines) + "\n"


def to_dataframe(records: Sequence[BaseModel], model: type[BaseModel]) -> pd.DataFrame:
    """Build a DataFrame with one column per model field, in field order."""
    columns = list(model.model_fields)
    return pd.DataFrame([record.model_dump() for record in records], columns=columns)


def render(
    records: Sequence[BaseModel],
    fmt: OutputFormat,
    model: type[BaseModel],
) -> bytes:
    """Render ``records`` in the requested format.

    Args:
        records: Models of type ``model``.
        fmt: Target format.
        model: Record type, used for column names and order.

    Returns:
        The encoded output.
    """
    if fmt is OutputFormat.TEXT:
        headers = list(model.model_fields)
        rows = [
            [str(value) for value in record.model_dump().values()] for record in records
        ]
        return render_table(headers, rows).encode("utf-8")

    df = to_dataframe(records, model)

    if fmt is OutputFormat.JSON:
        return df.to_json(orient="records", force_ascii=False).encode("utf-8")
    if fmt is OutputFormat.JSONL:
        output = df.to_json(orient="records", lines=True, force_ascii=False)
        if output and not output.endswith("\n"):
            output += "\n"
        return output.encode("utf-8")
    if fmt is OutputFormat.CSV:
        return df.to_csv(index=False, lineterminator="\n").encode("utf-8")
    if fmt is OutputFormat.PARQUET:
        buf = io.BytesIO()
        df.to_parquet(buf, index=False)
        return buf.getvalue()

    msg = f"Unsupported output format: {fmt}"
    raise ValueError(msg)
