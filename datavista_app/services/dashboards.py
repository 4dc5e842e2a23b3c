# datavista_app/services/dashboards.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import json
import os
from datetime import datetime
from typing import Optional

from ..extensions import db
from ..models.dashboard import Dashboard

SORTABLE = {
    "created_at": Dashboard.created_at,
    "title": Dashboard.title,
    "views": Dashboard.views,
    "size": Dashboard.file_size_bytes,
}


def create_dashboard(owner_id: int, incoming, encoded: str, raw_ai: str, parsed=None) -> Dashboard:
    charts, metrics = [], []
    if parsed is not None and parsed.ok:
        charts = parsed.data.get("charts", [])
        metrics = parsed.data.get("metrics", [])

    rec = Dashboard(
        owner_id=owner_id,
        title=os.path.splitext(incoming.filename)[0] or incoming.filename,
        file_name=incoming.filename,
        file_type=incoming.mimetype,
        file_size_bytes=incoming.size,
        encoded_content=encoded,
        ai_summary=raw_ai or "",
        charts_json=json.dumps(charts, ensure_ascii=False),
        metrics_json=json.dumps(metrics, ensure_ascii=False),
        views=0,
        rating=0,
    )
    db.session.add(rec)
    db.session.commit()
    return rec


def list_dashboards(owner_id: int, search: Optional[str] = None,
                    start: Optional[datetime] = None, end: Optional[datetime] = None,
                    sort: str = "created_at", order: str = "desc", limit: Optional[int] = None):
    q = Dashboard.query.filter(Dashboard.owner_id == owner_id)
    if search:
        like = f"%{search}%"
        q = q.filter(db.or_(Dashboard.title.ilike(like),
                            Dashboard.file_name.ilike(like),
                            Dashboard.ai_summary.ilike(like)))
    if start:
        q = q.filter(Dashboard.created_at >= start)
    if end:
        q = q.filter(Dashboard.created_at < end)

    col = SORTABLE.get(sort, Dashboard.created_at)
    q = q.order_by(col.asc() if order == "asc" else col.desc(), Dashboard.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def get_owned(dashboard_id: int, owner_id: int) -> Optional[Dashboard]:
    return Dashboard.query.filter_by(id=dashboard_id, owner_id=owner_id).first()


def record_view(dashboard: Dashboard) -> None:
    dashboard.views = (dashboard.views or 0) + 1
    db.session.add(dashboard)
    db.session.commit()


def latest_dashboards(limit: int = 6):
    return Dashboard.query.order_by(Dashboard.created_at.desc(), Dashboard.id.desc()).limit(limit).all()
