"""
SecureKV - Output Formatting

Renders decrypted key/value pairs for the terminal:
    default  key=value
    short    value
    csv      key,value header + rows
    json     {"key": "value"} (4-space indent)
    table    bordered two-column table
"""

import csv
import io
import json
from typing import Dict, Iterable, Tuple

FORMATS = ("default", "short", "csv", "json", "table")


def format_pair(key: str, value: str, fmt: str = "default") -> str:
    return format_pairs({key: value}, fmt)


def format_pairs(pairs: Dict[str, str], fmt: str = "default") -> str:
    """Render pairs (sorted by key). Unknown formats fall back to default."""
    items = sorted(pairs.items())

    if fmt == "short":
        return "\n".join(value for _, value in items)
    if fmt == "csv":
        return _csv(items)
    if fmt == "json":
        return json.dumps(dict(items), indent=4, ensure_ascii=False)
    if fmt == "table":
        return _table(items)
    return "\n".join(f"{key}={value}" for key, value in items)


def _csv(items: Iterable[Tuple[str, str]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["key", "value"])
    writer.writerows(items)
    return buf.getvalue()


def _table(items) -> str:
    items = list(items)
    key_width = max([len("key")] + [len(k) for k, _ in items])
    value_width = max([len("value")] + [len(v) for _, v in items])
    border = f"+-{'-' * key_width}-+-{'-' * value_width}-+"

    lines = [border, f"| {'key':<{key_width}} | {'value':<{value_width}} |", border]
    for key, value in items:
        lines.append(f"| {key:<{key_width}} | {value:<{value_width}} |")
    lines.append(border)
    return "\n".join(lines)
