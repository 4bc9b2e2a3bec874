from __future__ import annotations

from .models import Report


def compose_report(report: Report) -> str:
    lines = [
        "📩 New report",
        f"- Chat ID: {report.target_chat}",
        f"- Link: {report.target_link}",
        f"- Reason: {report.reason}",
        f"- Reported by: {report.reporter_label}",
    ]
    return "\n".join(lines)
