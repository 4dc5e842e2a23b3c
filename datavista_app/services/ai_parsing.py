# datavista_app/services/ai_parsing.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Optional

CHART_KINDS = ("bar", "line", "pie", "area")

_FENCE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.S)


@dataclass(frozen=True)
class ParseResult:
    ok: bool
    data: Optional[dict] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, data: dict) -> "ParseResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "ParseResult":
        return cls(ok=False, error=error)


def extract_json(raw: str) -> Optional[Any]:
    """Best effort: fenced block first, then the outermost {...}. Never raises."""
    if not raw or not isinstance(raw, str):
        return None
    candidates = []
    m = _FENCE.search(raw)
    if m:
        candidates.append(m.group(1))
    candidates.append(raw)
    for text in candidates:
        text = text.strip()
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            continue
        try:
            return json.loads(text[start:end + 1])
        except ValueError:
            continue
    return None


def _to_number(v) -> Optional[float]:
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return float(v)
    if isinstance(v, str):
        s = v.strip().replace(",", "").rstrip("%")
        try:
            return float(s)
        except ValueError:
            return None
    return None


def _as_list(v) -> list:
    return v if isinstance(v, list) else []


def _chart(obj) -> Optional[dict]:
    if not isinstance(obj, dict):
        return None
    points = []
    for p in _as_list(obj.get("data")):
        if not isinstance(p, dict):
            continue
        value = _to_number(p.get("value"))
        if value is None:
            continue
        points.append({"name": str(p.get("name", "")), "value": value})
    config = obj.get("config")
    return {
        "kind": str(obj.get("type") or obj.get("kind") or "").strip().lower(),
        "title": str(obj.get("title") or ""),
        "data": points,
        "config": config if isinstance(config, dict) else {},
    }


def _metric(obj) -> Optional[dict]:
    if not isinstance(obj, dict) or not obj.get("name"):
        return None
    m = {"name": str(obj["name"]), "value": str(obj.get("value", ""))}
    if obj.get("change") not in (None, ""):
        m["change"] = str(obj["change"])
    return m


def parse_dashboard_response(raw: str) -> ParseResult:
    payload = extract_json(raw)
    if not isinstance(payload, dict):
        return ParseResult.failure("Model response is not a JSON object")

    charts = [c for c in (_chart(x) for x in _as_list(payload.get("charts"))) if c]
    metrics = [m for m in (_metric(x) for x in _as_list(payload.get("metrics"))) if m]
    insights = payload.get("insights") or []
    if not isinstance(insights, list):
        insights = [insights]
    return ParseResult.success({
        "summary": str(payload.get("summary") or ""),
        "insights": [str(i) for i in insights if i],
        "charts": charts,
        "metrics": metrics,
    })


def parse_blog_suggestions(raw: str) -> ParseResult:
    payload = extract_json(raw)
    if not isinstance(payload, dict):
        return ParseResult.failure("Model response is not a JSON object")
    tags = payload.get("tags") or []
    if isinstance(tags, str):
        tags = tags.split(",")
    tags = _as_list(tags)
    return ParseResult.success({
        "title": str(payload.get("title") or "").strip(),
        "summary": str(payload.get("summary") or "").strip(),
        "tags": [str(t).strip() for t in tags if str(t).strip()],
        "meta_description": str(payload.get("metaDescription") or payload.get("meta_description") or "").strip(),
    })
