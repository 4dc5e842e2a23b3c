# datavista_app/models/blog.py
from __future__ import annotations
from datetime import datetime
from ..extensions import db

class BlogArticle(db.Model):
    __tablename__ = "blog_articles"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)       # sanitized HTML
    tags = db.Column(db.String(400), default="")       # ex.: "analytics,ai"
    author = db.Column(db.String(180), nullable=False)
    summary = db.Column(db.Text, nullable=True)
    published = db.Column(db.Boolean, default=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def tag_list(self) -> list[str]:
        return [t for t in (self.tags or "").split(",") if t]

    @property
    def status(self) -> str:
        return "Published" if self.published else "Draft"
