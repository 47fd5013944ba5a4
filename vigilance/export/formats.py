"""Serializers for exported records.

All three take plain JSON-compatible data (dicts, lists, scalars) and return
text; the caller decides where it goes.
"""

import csv
import io
import json
from enum import StrEnum
from typing import Any
from xml.sax.saxutils import escape


class ExportFormat(StrEnum):
    CSV = "csv"
    JSON = "json"
    XML = "xml"


MIME_TYPES: dict[ExportFormat, str] = {
    ExportFormat.CSV: "text/csv",
    ExportFormat.JSON: "application/json",
    ExportFormat.XML: "application/xml",
}

_XML_QUOTES = {'"': "&quot;", "'": "&#39;"}


def _dump(value: Any) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)


def flatten_for_csv(data: dict[str, Any]) -> list[dict[str, Any]]:
    """One row per record, tagged with the key it was exported under."""
    rows: list[dict[str, Any]] = []
    for data_type, records in data.items():
        if not isinstance(records, list):
            continue
        for record in records:
            rows.append({"data_type": data_type, **record})
    return rows


def to_csv(rows: list[dict[str, Any]]) -> str:
    """Render rows with a header line; every cell is quoted.

    Nested values are written as JSON text; None becomes an empty cell.
    """
    if not rows:
        return ""

    headers: list[str] = []
    for row in rows:
        for key in row:
            if key not in headers:
                headers.append(key)

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_csv_cell(row.get(header)) for header in headers])
    return buffer.getvalue().rstrip("\n")


def _csv_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return _dump(value)
    return str(value)


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str, ensure_ascii=False)


def escape_xml(text: str) -> str:
    return escape(text, _XML_QUOTES)


def to_xml(items: list[dict[str, Any]], root_element: str = "data") -> str:
    """Render each mapping as an ``<item>`` under *root_element*."""
    lines = ['<?xml version="1.0" encoding="UTF-8"?>', f"<{root_element}>"]
    lines.extend(_element(item, "item") for item in items)
    lines.append(f"</{root_element}>")
    return "\n".join(lines)


def _element(obj: dict[str, Any], name: str) -> str:
    content = []
    for key, value in obj.items():
        if value is None:
            content.append(f"<{key}></{key}>")
        elif isinstance(value, (dict, list)):
            content.append(f"<{key}>{escape_xml(_dump(value))}</{key}>")
        else:
            content.append(f"<{key}>{escape_xml(str(value))}</{key}>")
    return f"<{name}>{''.join(content)}</{name}>"
