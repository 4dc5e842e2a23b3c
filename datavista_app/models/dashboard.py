# datavista_app/models/dashboard.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import json
from datetime import datetime
from ..extensions import db

class Dashboard(db.Model):
    __tablename__ = "dashboards"
    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    title = db.Column(db.String(255), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    file_type = db.Column(db.String(120), nullable=False)
    file_size_bytes = db.Column(db.Integer, nullable=True)
    encoded_content = db.Column(db.Text, nullable=False)   # base64
    ai_summary = db.Column(db.Text, nullable=False, default="")  # raw model text, may not be JSON
    charts_json = db.Column(db.Text, nullable=False, default="[]")
    metrics_json = db.Column(db.Text, nullable=False, default="[]")
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    views = db.Column(db.Integer, default=0)
    rating = db.Column(db.Float, default=0)

    owner = db.relationship("User", backref=db.backref("dashboards", lazy="dynamic"))

    @property
    def charts(self) -> list:
        return _load_list(self.charts_json)

    @property
    def metrics(self) -> list:
        return _load_list(self.metrics_json)

def _load_list(raw):
    try:
        value = json.loads(raw or "[]")
    except ValueError:
        return []
    return value if isinstance(value, list) else []
