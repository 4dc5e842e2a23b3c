# datavista_app/blueprints/core.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask import Blueprint, render_template

from datavista_app.services.blog import list_published
from datavista_app.services.dashboards import latest_dashboards

bp = Blueprint("core", __name__)

@bp.route("/")
def index():
    dashboards = latest_dashboards(limit=6)
    articles = list_published(limit=3)
    return render_template("landing.html", dashboards=dashboards, articles=articles)
