# datavista_app/blueprints/dashboards.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import datetime
import re

from flask import (Blueprint, current_app, request, render_template, redirect, url_for, flash,
                   abort, jsonify, send_file)
from io import BytesIO

from datavista_app.decorators import login_required
from datavista_app.models.audit import record
from datavista_app.services.ai_client import get_ai_client
from datavista_app.services.charts import render_dashboard
from datavista_app.services.dashboards import list_dashboards, get_owned, record_view
from datavista_app.services.export import export_png, export_pdf
from datavista_app.services.file_intake import validate_uploads
from datavista_app.services.identity import current_user
from datavista_app.services.pipeline import UploadPipeline, STATUS_CREATED, STATUS_SKIPPED
from datavista_app.services.quota import get_quota_gate

bp = Blueprint("dashboards", __name__)


def _parse_day(value):
    if not value:
        return None
    try:
        return datetime.datetime.fromisoformat(value)
    except ValueError:
        return None


def _export_name(title: str) -> str:
    return (re.sub(r"[^A-Za-z0-9._-]+", "-", title or "dashboard").strip("-") or "dashboard") + "-dashboard"


def build_pipeline() -> UploadPipeline:
    cfg = current_app.config
    return UploadPipeline(
        gate=get_quota_gate(),
        client=get_ai_client(),
        concurrency=cfg.get("UPLOAD_CONCURRENCY", 1),
        atomic_quota=bool(cfg.get("QUOTA_ATOMIC")),
        logger=current_app.logger,
    )


@bp.route("/dashboard")
@login_required
def dashboard():
    user = current_user()
    search = (request.args.get("search") or "").strip()
    start = _parse_day(request.args.get("start"))
    end = _parse_day(request.args.get("end"))
    if end:
        end = end + datetime.timedelta(days=1)
    sort = request.args.get("sort", "created_at")
    order = "asc" if request.args.get("order") == "asc" else "desc"

    rows = list_dashboards(user.id, search=search or None, start=start, end=end, sort=sort, order=order)
    gate = get_quota_gate()
    return render_template(
        "dashboards.html",
        dashboards=rows,
        remaining=gate.remaining(user.id),
        max_daily=gate.get_record(user.id).max_daily,
        search=search, start=request.args.get("start", ""), end=request.args.get("end", ""),
        sort=sort, order=order,
    )


@bp.route("/api/upload-limit")
@login_required
def upload_limit():
    user = current_user()
    gate = get_quota_gate()
    rec = gate.get_record(user.id)
    return jsonify({
        "ok": True,
        "date": rec.date,
        "count": rec.count,
        "max_daily": rec.max_daily,
        "remaining": max(0, rec.max_daily - rec.count),
        "can_upload": rec.count < rec.max_daily,
    })


@bp.route("/upload", methods=["POST"])
@login_required
def upload():
    user = current_user()
    files = request.files.getlist("files") or request.files.getlist("file")
    if not any(f and f.filename for f in files):
        flash("Select at least one file.", "warning")
        return redirect(url_for("dashboards.dashboard"))

    # 1) advisory validation: rejected files never reach the pipeline
    intake = validate_uploads(files)
    for msg in intake.errors:
        flash(msg, "danger")
    if not intake.accepted:
        return redirect(url_for("dashboards.dashboard"))

    # 2) quota gate before anything else
    gate = get_quota_gate()
    if not gate.check_and_reserve(user.id):
        rec = gate.get_record(user.id)
        flash(f"Daily upload limit reached ({rec.max_daily} files per day).", "danger")
        return redirect(url_for("dashboards.dashboard"))

    # 3) encode -> generate -> persist
    try:
        report = build_pipeline().run(user.id, intake.accepted)
    except Exception:
        current_app.logger.exception("Upload pipeline failed")
        flash("Upload failed. Please try again.", "danger")
        return redirect(url_for("dashboards.dashboard"))

    for o in report.outcomes:
        if o.status == STATUS_CREATED:
            record(user.id, "upload", ref=f"dashboard:{o.dashboard_id}", description=o.file_name)
            flash(o.message, "success")
        else:
            flash(f"{o.file_name}: {o.message}", "warning" if o.status == STATUS_SKIPPED else "danger")

    created = report.created
    if len(created) == 1 and len(report.outcomes) == 1:
        return redirect(url_for("dashboards.view", dashboard_id=created[0].dashboard_id))
    return redirect(url_for("dashboards.dashboard"))


@bp.route("/dashboards/<int:dashboard_id>")
@login_required
def view(dashboard_id: int):
    d = get_owned(dashboard_id, current_user().id)
    if d is None:
        abort(404)
    record_view(d)
    return render_template("dashboard_view.html", dashboard=d, view=render_dashboard(d))


def _export(dashboard_id: int, fmt: str):
    user = current_user()
    d = get_owned(dashboard_id, user.id)
    if d is None:
        abort(404)
    try:
        if fmt == "png":
            data, mimetype = export_png(d), "image/png"
        else:
            data, mimetype = export_pdf(d), "application/pdf"
    except Exception:
        # best-effort: report and go back to the live view
        current_app.logger.exception("Export %s failed for dashboard %s", fmt, d.id)
        flash(f"Failed to export {fmt.upper()}.", "danger")
        return redirect(url_for("dashboards.view", dashboard_id=d.id))

    record(user.id, "export", ref=f"dashboard:{d.id}", description=fmt)
    return send_file(BytesIO(data), mimetype=mimetype, as_attachment=True,
                     download_name=f"{_export_name(d.title)}.{fmt}")


@bp.route("/dashboards/<int:dashboard_id>/export.png")
@login_required
def export_as_png(dashboard_id: int):
    return _export(dashboard_id, "png")


@bp.route("/dashboards/<int:dashboard_id>/export.pdf")
@login_required
def export_as_pdf(dashboard_id: int):
    return _export(dashboard_id, "pdf")
