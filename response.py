"""Result builders shared by every tool handler.

A tool result is a list of typed content blocks (``{"type": "text", ...}``)
plus an optional ``data`` field carrying the raw payload for programmatic
consumers.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ToolResult:
    content: list[dict[str, Any]] = field(default_factory=list)
    data: Any = None

    @property
    def text(self) -> str:
        return "\n".join(block.get("text", "") for block in self.content if block.get("type") == "text")


def to_json(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)


def text_result(text: str, data: Any = None) -> ToolResult:
    """Wrap plain text as a single content block."""
    return ToolResult(content=[{"type": "text", "text": text}], data=data)


def json_result(value: Any, data: Any = None) -> ToolResult:
    """Pretty-print ``value`` as the single text block of the result."""
    return text_result(to_json(value), data=data)


def error_result(action: str, exc: Exception) -> ToolResult:
    """Describe a failed call as a text block instead of raising."""
    return text_result(f"Error {action}: {exc}")


def has_more(envelope: dict[str, Any]) -> bool:
    """A list envelope has another page when ``links.next`` is set."""
    links = envelope.get("links") or {}
    return bool(links.get("next"))


def page_summary(
    records_key: str,
    envelope: dict[str, Any],
    page: Optional[int] = None,
    include_page: bool = True,
) -> dict[str, Any]:
    """Reshape a Cliniko list envelope into the shape tools return.

    The records list is passed through verbatim; ``has_more`` is derived
    from the pagination link.
    """
    summary: dict[str, Any] = {
        records_key: envelope.get(records_key) or [],
        "total_entries": envelope.get("total_entries"),
    }
    if include_page:
        summary["page"] = page or 1
    summary["has_more"] = has_more(envelope)
    return summary
