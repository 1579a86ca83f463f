"""
Output formatters for CLI display.

Supports human-readable, JSON, and markdown output modes for both single
result dicts (summaries) and row lists (schedules, canonical projects).
"""

import json
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class OutputFormat(str, Enum):
    HUMAN = "human"
    JSON = "json"
    MARKDOWN = "markdown"


def format_result(
    result: Any,
    fmt: OutputFormat = OutputFormat.HUMAN,
    title: Optional[str] = None,
) -> str:
    """Format a result object for display."""
    if fmt == OutputFormat.JSON:
        return json.dumps(_to_dict(result), indent=2, default=str)
    elif fmt == OutputFormat.MARKDOWN:
        return _format_markdown(result, title)
    else:
        return _format_human(result, title)


def format_rows(
    rows: Sequence[Dict[str, Any]],
    columns: Sequence[str],
    fmt: OutputFormat = OutputFormat.HUMAN,
) -> str:
    """Format a list of row dicts as an aligned table (or JSON array)."""
    if fmt == OutputFormat.JSON:
        return json.dumps([dict(r) for r in rows], indent=2, default=str)

    cells = [[_format_value(r.get(c)) for c in columns] for r in rows]
    headers = [c.replace("_", " ").title() for c in columns]

    if fmt == OutputFormat.MARKDOWN:
        lines = ["| " + " | ".join(headers) + " |",
                 "|" + "|".join("---" for _ in columns) + "|"]
        lines.extend("| " + " | ".join(row) + " |" for row in cells)
        return "\n".join(lines)

    widths = [
        max([len(h)] + [len(row[i]) for row in cells])
        for i, h in enumerate(headers)
    ]
    lines = ["  ".join(h.ljust(w) for h, w in zip(headers, widths)),
             "  ".join(chr(9472) * w for w in widths)]
    for row in cells:
        lines.append("  ".join(v.ljust(w) for v, w in zip(row, widths)))
    if not cells:
        lines.append("(no rows)")
    return "\n".join(lines)


def _to_dict(result: Any) -> Dict:
    if is_dataclass(result):
        return asdict(result)
    elif isinstance(result, dict):
        return result
    elif hasattr(result, "__dict__"):
        return result.__dict__
    return {"value": str(result)}


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.2f}" if abs(value) < 1000 else f"{value:,.1f}"
    if value is None:
        return "-"
    return str(value)


def _format_human(result: Any, title: Optional[str] = None) -> str:
    lines = []
    if title:
        lines.extend([title, "=" * len(title), ""])

    data = _to_dict(result)
    max_key_len = max(len(str(k)) for k in data.keys()) if data else 0

    for key, value in data.items():
        label = key.replace("_", " ").title()
        if isinstance(value, dict):
            formatted = "\n".join(
                f"  {k}: {_format_value(v)}" for k, v in value.items()
            ) or "(none)"
            if value:
                formatted = "\n" + formatted
        elif isinstance(value, list):
            formatted = "\n".join(f"  - {_format_value(v)}" for v in value) if value else "(none)"
            if value:
                formatted = "\n" + formatted
        else:
            formatted = _format_value(value)
        lines.append(f"{label:<{max_key_len + 2}}: {formatted}")

    return "\n".join(lines)


def _format_markdown(result: Any, title: Optional[str] = None) -> str:
    lines: List[str] = []
    if title:
        lines.extend([f"# {title}", ""])

    data = _to_dict(result)
    lines.extend(["| Field | Value |", "|-------|-------|"])

    for key, value in data.items():
        label = key.replace("_", " ").title()
        if isinstance(value, (list, dict)):
            formatted = json.dumps(value, default=str) if value else "-"
        else:
            formatted = _format_value(value)
        lines.append(f"| {label} | {formatted} |")

    return "\n".join(lines)
