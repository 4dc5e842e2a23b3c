# datavista_app/blueprints/admin/routes.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import platform
import socket

from flask import render_template, request, redirect, url_for, flash, current_app, abort, jsonify
from sqlalchemy import text, func
from sqlalchemy.exc import SQLAlchemyError

from ..admin import admin_bp
from ...decorators import admin_required
from ...extensions import db
from ...models import User, Dashboard, BlogArticle
from ...models.audit import record
from ...services.ai_client import get_ai_client
from ...services.blog import (create_article, update_article, toggle_published, delete_article,
                              list_all, suggest_metadata)
from ...services.identity import current_user


def _system_snapshot():
    try:
        db.session.execute(text("SELECT 1"))
        db_ok, db_detail = True, "Connection OK"
    except Exception as e:
        db_ok, db_detail = False, str(e)

    key = current_app.config.get("GEMINI_API_KEY")
    statuses = [
        dict(name="Database", ok=db_ok, detail=db_detail),
        dict(name="AI model", ok=bool(key),
             detail=current_app.config.get("GEMINI_MODEL") if key else "API key not configured"),
    ]
    server = dict(
        hostname=socket.gethostname(),
        os=f"{platform.system()} {platform.release()}",
        python=platform.python_version(),
        started_at=current_app.config.get("STARTED_AT"),
    )
    return statuses, server


def _storage_failed(action: str):
    db.session.rollback()
    current_app.logger.exception("Blog %s failed", action)
    flash("Could not save the article. Please try again.", "danger")
    return redirect(url_for("admin_bp.admin"))


def _form_article():
    return dict(
        title=request.form.get("title", ""),
        content=request.form.get("content", ""),
        tags=request.form.get("tags", ""),
        summary=request.form.get("summary"),
        published=request.form.get("published") in ("1", "on", "true"),
    )


# ---------------- ADMIN: Panel ----------------
@admin_bp.route("/admin")
@admin_required
def admin():
    articles = list_all()
    published = sum(1 for a in articles if a.published)
    sys_status, server_info = _system_snapshot()
    return render_template(
        "admin/blog_list.html",
        articles=articles,
        total=len(articles),
        published=published,
        drafts=len(articles) - published,
        users_count=db.session.query(func.count(User.id)).scalar(),
        dashboards_count=db.session.query(func.count(Dashboard.id)).scalar(),
        sys_status=sys_status,
        server_info=server_info,
    )


# ---------------- ADMIN: Blog ----------------
@admin_bp.route("/admin/blogs/new", methods=["GET", "POST"])
@admin_required
def blog_new():
    if request.method == "GET":
        return render_template("admin/blog_form.html", article=None)

    u = current_user()
    data = _form_article()
    try:
        a = create_article(author=u.display_name, **data)
    except ValueError as e:
        flash(str(e), "warning")
        return render_template("admin/blog_form.html", article=None, form=data)
    except SQLAlchemyError:
        return _storage_failed("create")
    record(u.id, "blog_create", ref=f"blog:{a.id}", description=a.title)
    flash("Article created.", "success")
    return redirect(url_for("admin_bp.admin"))


@admin_bp.route("/admin/blogs/<int:article_id>/edit", methods=["GET", "POST"])
@admin_required
def blog_edit(article_id: int):
    a = db.session.get(BlogArticle, article_id)
    if a is None:
        abort(404)
    if request.method == "GET":
        return render_template("admin/blog_form.html", article=a)

    u = current_user()
    data = _form_article()
    try:
        update_article(a, author=u.display_name, **data)
    except ValueError as e:
        flash(str(e), "warning")
        return render_template("admin/blog_form.html", article=a, form=data)
    except SQLAlchemyError:
        return _storage_failed("update")
    record(u.id, "blog_update", ref=f"blog:{a.id}", description=a.title)
    flash("Article updated.", "success")
    return redirect(url_for("admin_bp.admin"))


@admin_bp.route("/admin/blogs/<int:article_id>/toggle", methods=["POST"])
@admin_required
def blog_toggle(article_id: int):
    a = db.session.get(BlogArticle, article_id)
    if a is None:
        abort(404)
    try:
        toggle_published(a)
    except SQLAlchemyError:
        return _storage_failed("publish toggle")
    record(current_user().id, "blog_publish" if a.published else "blog_unpublish", ref=f"blog:{a.id}")
    flash(f"Article is now {a.status.lower()}.", "success")
    return redirect(url_for("admin_bp.admin"))


@admin_bp.route("/admin/blogs/<int:article_id>/delete", methods=["POST"])
@admin_required
def blog_delete(article_id: int):
    a = db.session.get(BlogArticle, article_id)
    if a is None:
        abort(404)
    title = a.title
    try:
        delete_article(a)
    except SQLAlchemyError:
        return _storage_failed("delete")
    record(current_user().id, "blog_delete", ref=f"blog:{article_id}", description=title)
    flash("Article deleted.", "success")
    return redirect(url_for("admin_bp.admin"))


@admin_bp.route("/admin/blogs/suggest", methods=["POST"])
@admin_required
def blog_suggest():
    payload = request.get_json(silent=True) or {}
    content = payload.get("content") or request.form.get("content", "")
    result = suggest_metadata(content, get_ai_client())
    if not result.ok:
        return jsonify({"ok": False, "error": result.error}), 422
    return jsonify({"ok": True, "suggestions": result.data})
