from __future__ import annotations

import json
from typing import Any, List, Optional

from .classifier import InputKind
from .enrichment import EnrichmentResult


SCAN_HEADER = "⚠️ VirusTotal Scan Result ({subject}):"
DEGRADED_REPLY = "Lookup unavailable: the threat-intelligence lookup for {value} failed. Please try again later."


def _render_value(value: Any) -> str:
    if isinstance(value, (dict, list, tuple, bool)) or value is None:
        # compact JSON, same shape the dashboard shows for nested stats
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def format_verdict(
    kind: InputKind | str,
    result: EnrichmentResult,
    *,
    subject: Optional[str] = None,
) -> str:
    """Render an enrichment result as the assistant's annotation.

    Header naming the scan, a verdict line, then one ``key: value`` line per
    detail in insertion order.
    """
    kind_label = getattr(kind, "value", kind)
    verdict = getattr(result.verdict, "value", result.verdict)
    lines: List[str] = [
        SCAN_HEADER.format(subject=subject or str(kind_label).upper()),
        f"Verdict: **{verdict}**",
    ]
    for key, value in result.details.items():
        lines.append(f"{key}: {_render_value(value)}")
    return "\n".join(lines)


def format_degraded(value: str) -> str:
    return DEGRADED_REPLY.format(value=value)


__all__ = ["SCAN_HEADER", "DEGRADED_REPLY", "format_verdict", "format_degraded"]
