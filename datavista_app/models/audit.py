# datavista_app/models/audit.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime
from ..extensions import db

class AuditLog(db.Model):
    __tablename__ = "audit_logs"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    action = db.Column(db.String(80), nullable=False)   # upload, export, login, blog_publish...
    ref = db.Column(db.String(120))                     # e.g., dashboard:<id> / blog:<id>
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    user = db.relationship("User", backref=db.backref("audit_logs", lazy="dynamic"))

def record(user_id: int, action: str, ref: str | None = None, description: str | None = None) -> AuditLog:
    entry = AuditLog(user_id=user_id, action=action, ref=ref, description=description)
    db.session.add(entry)
    db.session.commit()
    return entry
