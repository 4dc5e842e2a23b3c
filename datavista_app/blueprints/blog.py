# datavista_app/blueprints/blog.py
from __future__ import annotations
from flask import Blueprint, render_template, request, abort, session

from datavista_app.services.blog import list_published, get_article, all_tags

bp = Blueprint("blog", __name__)

@bp.route("/blogs")
def list_blogs():
    tag = (request.args.get("tag") or "").strip().lower() or None
    search = (request.args.get("search") or "").strip()
    articles = list_published(tag=tag, search=search or None)
    return render_template("blogs.html", articles=articles, tag=tag, search=search, tags=all_tags())

@bp.route("/blogs/<int:article_id>")
def show_blog(article_id: int):
    # admins may preview drafts
    is_admin = bool((session.get("user") or {}).get("is_admin"))
    a = get_article(article_id, include_drafts=is_admin)
    if a is None:
        abort(404)
    return render_template("blog_post.html", article=a)
