# datavista_app/models/upload_record.py
from __future__ import annotations
from datetime import datetime
from ..extensions import db

def today_ref() -> str:
    return datetime.utcnow().strftime("%Y-%m-%d")

class UploadRecord(db.Model):
    __tablename__ = "upload_records"

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True, index=True)

    # daily upload counter, reset lazily when `date` is not today
    date = db.Column(db.String(10), nullable=False, default=today_ref)  # ex: "2025-09-14"
    count = db.Column(db.Integer, nullable=False, default=0)
    max_daily = db.Column(db.Integer, nullable=False, default=10)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
