# datavista_app/services/blog.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from flask import current_app

from ..extensions import db
from ..models.blog import BlogArticle
from .ai_client import GenerationError
from .ai_parsing import ParseResult, parse_blog_suggestions
from .sanitize import sanitize_html


def normalize_tags(tags) -> str:
    """'a, B ,a' / ['a','b'] -> 'a,b' (lower-case, unique, input order)."""
    if isinstance(tags, str):
        items: Iterable[str] = tags.split(",")
    else:
        items = tags or []
    seen, out = set(), []
    for t in items:
        t = str(t).strip().lower()
        if t and t not in seen:
            seen.add(t)
            out.append(t)
    return ",".join(out)


def _clean(title: str, content: str) -> tuple[str, str]:
    title = (title or "").strip()
    content = sanitize_html((content or "").strip())
    if not title:
        raise ValueError("Title is required")
    if not content.strip():
        raise ValueError("Content is required")
    return title, content


def create_article(author: str, title: str, content: str, tags="", published: bool = False,
                   summary: Optional[str] = None) -> BlogArticle:
    title, content = _clean(title, content)
    a = BlogArticle(
        title=title,
        content=content,
        tags=normalize_tags(tags),
        author=author,
        published=bool(published),
        summary=(summary or "").strip() or None,
    )
    db.session.add(a); db.session.commit()
    return a


def update_article(article: BlogArticle, title: str, content: str, tags="", published: Optional[bool] = None,
                   summary: Optional[str] = None, author: Optional[str] = None) -> BlogArticle:
    # last writer wins: no version check
    title, content = _clean(title, content)
    article.title = title
    article.content = content
    article.tags = normalize_tags(tags)
    if published is not None:
        article.published = bool(published)
    if summary is not None:
        article.summary = summary.strip() or None
    if author:
        article.author = author
    article.updated_at = datetime.utcnow()
    db.session.add(article); db.session.commit()
    return article


def toggle_published(article: BlogArticle) -> BlogArticle:
    article.published = not bool(article.published)
    article.updated_at = datetime.utcnow()
    db.session.add(article); db.session.commit()
    return article


def delete_article(article: BlogArticle) -> None:
    db.session.delete(article); db.session.commit()


def list_published(limit: Optional[int] = None, tag: Optional[str] = None, search: Optional[str] = None):
    q = BlogArticle.query.filter_by(published=True)
    if search:
        like = f"%{search}%"
        q = q.filter(db.or_(BlogArticle.title.ilike(like), BlogArticle.content.ilike(like)))
    if tag:
        q = q.filter(db.or_(BlogArticle.tags == tag,
                            BlogArticle.tags.like(f"{tag},%"),
                            BlogArticle.tags.like(f"%,{tag}"),
                            BlogArticle.tags.like(f"%,{tag},%")))
    q = q.order_by(BlogArticle.created_at.desc(), BlogArticle.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def all_tags() -> list[str]:
    """Distinct tags over published articles, sorted."""
    tags = set()
    for (raw,) in db.session.query(BlogArticle.tags).filter(BlogArticle.published.is_(True)):
        tags.update(t for t in (raw or "").split(",") if t)
    return sorted(tags)


def list_all():
    return BlogArticle.query.order_by(BlogArticle.created_at.desc(), BlogArticle.id.desc()).all()


def get_article(article_id: int, include_drafts: bool = False) -> Optional[BlogArticle]:
    a = db.session.get(BlogArticle, article_id)
    if a is None or (not a.published and not include_drafts):
        return None
    return a


def suggest_metadata(content: str, client) -> ParseResult:
    """AI title/summary/tags suggestion; parse and transport failures both come back as failure()."""
    if not (content or "").strip():
        return ParseResult.failure("Content is required")
    try:
        raw = client.generate_blog_summary(content)
    except GenerationError as e:
        current_app.logger.warning("Blog suggestion request failed: %s", e)
        return ParseResult.failure("AI suggestions are unavailable right now.")
    result = parse_blog_suggestions(raw)
    if not result.ok:
        current_app.logger.warning("Blog suggestion response was not valid JSON")
    return result
