# datavista_app/services/charts.py
from __future__ import annotations

from .ai_parsing import CHART_KINDS, parse_dashboard_response

UNSUPPORTED_MESSAGE = "Chart type not supported"
PALETTE = ["#3B82F6", "#10B981", "#F59E0B", "#EF4444", "#8B5CF6"]


def render_chart(spec) -> dict:
    """Chart.js-ready descriptor; unknown kinds become a textual fallback."""
    spec = spec if isinstance(spec, dict) else {}
    kind = str(spec.get("kind") or spec.get("type") or "").lower()
    title = str(spec.get("title") or "")
    if kind not in CHART_KINDS:
        return {"kind": "unsupported", "requested": kind, "title": title, "message": UNSUPPORTED_MESSAGE}

    points = [p for p in (spec.get("data") or []) if isinstance(p, dict)]
    labels, values = [], []
    for p in points:
        try:
            values.append(float(p.get("value")))
        except (TypeError, ValueError):
            continue
        labels.append(str(p.get("name", "")))
    return {
        "kind": kind,
        "title": title,
        "labels": labels,
        "values": values,
        "colors": [PALETTE[i % len(PALETTE)] for i in range(len(values))],
    }


def metric_trend(change) -> str:
    s = str(change or "").strip()
    if s.startswith("+"):
        return "up"
    if s.startswith("-"):
        return "down"
    return "neutral"


def render_dashboard(dashboard) -> dict:
    parsed = parse_dashboard_response(dashboard.ai_summary)
    if parsed.ok:
        summary = parsed.data["summary"] or dashboard.ai_summary
        insights = parsed.data["insights"]
    else:
        summary, insights = dashboard.ai_summary, []

    metrics = [dict(m, trend=metric_trend(m.get("change"))) for m in dashboard.metrics if isinstance(m, dict)]
    return {
        "title": dashboard.title,
        "summary": summary,
        "insights": insights,
        "parsed": parsed.ok,
        "metrics": metrics,
        "charts": [render_chart(c) for c in dashboard.charts],
    }
